"""仓储模块。

提供字段路径解析、查询构建器、仓储接口和通用仓储实现。
"""

from .field_path import (
    PATH_SEPARATOR,
    RelationshipHop,
    ResolvedFieldPath,
    resolve_field_path,
    resolve_relationship_path,
)
from .impl import BaseRepository
from .interface import IRepository
from .query_builder import DEFAULT_INCLUDE_DELETED_DIRECTIVE, QueryBuilder, build_query

__all__ = [
    "DEFAULT_INCLUDE_DELETED_DIRECTIVE",
    "PATH_SEPARATOR",
    "BaseRepository",
    "IRepository",
    "QueryBuilder",
    "RelationshipHop",
    "ResolvedFieldPath",
    "build_query",
    "resolve_field_path",
    "resolve_relationship_path",
]
