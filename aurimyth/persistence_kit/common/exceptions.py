"""基础异常定义。

所有层级的异常都继承自 FoundationError，保持异常体系的一致性。
"""

from __future__ import annotations


class FoundationError(Exception):
    """异常体系根类。

    Attributes:
        message: 错误消息
    """

    def __init__(self, message: str = "", *args: object) -> None:
        super().__init__(message, *args)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} message={self.message!r}>"


__all__ = [
    "FoundationError",
]
