"""Common 层 - 最基础层。

提供异常基类与日志系统，不依赖任何其他层。
"""

from .exceptions import FoundationError
from .logging import logger, setup_logging

__all__ = [
    "FoundationError",
    "logger",
    "setup_logging",
]
