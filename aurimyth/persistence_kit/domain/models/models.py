"""实体契约与常用组合模型。"""

from __future__ import annotations

from typing import Any

from sqlalchemy import inspect as sa_inspect

from .base import Base
from .mixins import AuditMixin, SoftDeleteMixin, UUIDMixin, VersionMixin

# 每个可被仓储管理的模型都必须按名称暴露这些属性
ENTITY_CONTRACT_FIELDS: tuple[str, ...] = (
    "id",
    "created_at",
    "created_by",
    "modified_at",
    "modified_by",
    "deleted",
)


class Entity(UUIDMixin, AuditMixin, SoftDeleteMixin, Base):
    """【常用】实体基类（UUID 主键 + 审计字段 + 软删除）"""

    __abstract__ = True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={entity_id(self)}>"


class VersionedEntity(VersionMixin, Entity):
    """实体基类 + 乐观锁"""

    __abstract__ = True


def entity_id(entity: Any) -> Any:
    """获取实体主键，不触发延迟加载。

    已持久化的实体取数据库标识（属性过期后依然可用），临时实体取已赋值的 id。
    """
    state = sa_inspect(entity)
    if state.identity is not None:
        return state.identity[0]
    return state.dict.get("id")


def missing_contract_fields(model_class: type) -> list[str]:
    """返回模型类缺少的实体契约字段。"""
    return [name for name in ENTITY_CONTRACT_FIELDS if not hasattr(model_class, name)]


def is_entity_class(model_class: type) -> bool:
    """判断模型类是否满足实体契约。"""
    return not missing_contract_fields(model_class)


def is_versioned(model_class: type) -> bool:
    """判断模型类是否启用了乐观锁。"""
    return hasattr(model_class, "version")


__all__ = [
    "ENTITY_CONTRACT_FIELDS",
    "Entity",
    "VersionedEntity",
    "entity_id",
    "is_entity_class",
    "is_versioned",
    "missing_contract_fields",
]
