"""Domain 层模块。

包含实体契约、审计操作人、分页、仓储接口与实现。
"""

from .actor import ActorProvider, actor_scope, current_actor, resolve_actor, set_current_actor
from .exceptions import (
    DomainException,
    EntityAlreadyPersistedError,
    EntityContractError,
    InvalidFieldPathError,
    ModelError,
    NullEntityError,
    RepositoryError,
    UnidentifiedEntityError,
    VersionConflictError,
)
from .models import (
    ENTITY_CONTRACT_FIELDS,
    AuditMixin,
    Base,
    Entity,
    SoftDeleteMixin,
    UTCDateTime,
    UUIDMixin,
    VersionedEntity,
    VersionMixin,
    entity_id,
)
from .pagination import (
    PaginationParams,
    PaginationResult,
    SortParams,
    apply_default_ordering,
    paginate,
)
from .repository import (
    BaseRepository,
    IRepository,
    QueryBuilder,
    ResolvedFieldPath,
    build_query,
    resolve_field_path,
)

__all__ = [
    "ENTITY_CONTRACT_FIELDS",
    "ActorProvider",
    "AuditMixin",
    "Base",
    "BaseRepository",
    "DomainException",
    "Entity",
    "EntityAlreadyPersistedError",
    "EntityContractError",
    "IRepository",
    "InvalidFieldPathError",
    "ModelError",
    "NullEntityError",
    "PaginationParams",
    "PaginationResult",
    "QueryBuilder",
    "RepositoryError",
    "ResolvedFieldPath",
    "SoftDeleteMixin",
    "SortParams",
    "UTCDateTime",
    "UUIDMixin",
    "UnidentifiedEntityError",
    "VersionConflictError",
    "VersionMixin",
    "VersionedEntity",
    "actor_scope",
    "apply_default_ordering",
    "build_query",
    "current_actor",
    "entity_id",
    "paginate",
    "resolve_actor",
    "resolve_field_path",
    "set_current_actor",
]
