"""Domain 层异常定义。

Domain 层异常，继承自 FoundationError。

注意：查询不到数据（GetById / Delete 等找不到记录）不是异常，
由返回值（None / False）表达。存储层（SQLAlchemy）自身的异常不在此转换，
原样抛给调用方。
"""

from __future__ import annotations

from typing import Any

from aurimyth.persistence_kit.common.exceptions import FoundationError


class DomainException(FoundationError):  # noqa: N818
    """Domain 层异常基类。"""

    pass


class RepositoryError(DomainException):
    """仓储前置条件错误基类。

    在任何 flush / 查询执行之前同步抛出，不应重试。
    """

    pass


class NullEntityError(RepositoryError):
    """变更操作收到了空实体。"""

    def __init__(self, operation: str, *args: object) -> None:
        super().__init__(f"{operation}: 实体不能为 None", *args)
        self.operation = operation


class UnidentifiedEntityError(RepositoryError):
    """更新一个没有主键的实体。"""

    def __init__(self, entity: Any, *args: object) -> None:
        super().__init__(f"实体 {type(entity).__name__} 没有 id，无法更新", *args)
        self.entity = entity


class EntityAlreadyPersistedError(RepositoryError):
    """添加一个已经持久化过的实体（已有数据库标识）。"""

    def __init__(self, entity: Any, *args: object) -> None:
        super().__init__(f"实体 {entity!r} 已持久化，不能重复添加", *args)
        self.entity = entity


class InvalidFieldPathError(RepositoryError):
    """字段路径无法在模型上解析。

    Attributes:
        model: 路径起点的模型类
        path: 完整字段路径
        segment: 解析失败的片段（整体无效时为 None）
    """

    def __init__(
        self,
        model: type,
        path: str,
        segment: str | None = None,
        reason: str = "",
        *args: object,
    ) -> None:
        message = f"无效的字段路径 {path!r}（模型: {model.__name__}）"
        if segment is not None:
            message += f"，无法解析片段 {segment!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message, *args)
        self.model = model
        self.path = path
        self.segment = segment


class EntityContractError(RepositoryError):
    """模型类不满足实体契约（缺少 id / 审计字段 / 软删除标记）。"""

    def __init__(self, model: type, missing: list[str], *args: object) -> None:
        super().__init__(
            f"模型 {model.__name__} 缺少实体契约字段: {', '.join(missing)}",
            *args,
        )
        self.model = model
        self.missing = missing


class ModelError(DomainException):
    """模型相关错误基类。"""

    pass


class VersionConflictError(ModelError):
    """版本冲突异常（乐观锁）。

    使用 VersionedEntity 时，若提交的版本号与数据库中的不一致，抛出此异常。

    Attributes:
        current_version: 当前数据库中的版本号
        expected_version: 期望的版本号
    """

    def __init__(
        self,
        message: str = "数据已被其他操作修改，请刷新后重试",
        current_version: int | None = None,
        expected_version: int | None = None,
        *args: object,
    ) -> None:
        super().__init__(message, *args)
        self.current_version = current_version
        self.expected_version = expected_version

    def __str__(self) -> str:
        if self.current_version is not None and self.expected_version is not None:
            return (
                f"{self.message} "
                f"(当前版本: {self.current_version}, 期望版本: {self.expected_version})"
            )
        return self.message


__all__ = [
    "DomainException",
    "EntityAlreadyPersistedError",
    "EntityContractError",
    "InvalidFieldPathError",
    "ModelError",
    "NullEntityError",
    "RepositoryError",
    "UnidentifiedEntityError",
    "VersionConflictError",
]
