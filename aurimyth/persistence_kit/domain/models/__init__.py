"""领域模型模块。

提供 ORM 模型基类、Mixin 和实体契约。
"""

from .base import Base, UTCDateTime
from .mixins import (
    AuditMixin,
    SoftDeleteMixin,
    UUIDMixin,
    VersionMixin,
)
from .models import (
    ENTITY_CONTRACT_FIELDS,
    Entity,
    VersionedEntity,
    entity_id,
    is_entity_class,
    is_versioned,
    missing_contract_fields,
)

__all__ = [
    "ENTITY_CONTRACT_FIELDS",
    # Mixins
    "AuditMixin",
    # 基类和类型装饰器
    "Base",
    # 组合模型
    "Entity",
    "SoftDeleteMixin",
    "UTCDateTime",
    "UUIDMixin",
    "VersionMixin",
    "VersionedEntity",
    "entity_id",
    "is_entity_class",
    "is_versioned",
    "missing_contract_fields",
]
