"""查询构建器。

提供链式查询和复杂条件构建功能。构建器只负责组装 Select，不访问数据库；
计数、分页和取首条共享同一个构建器，保证它们基于同一逻辑查询。

注意：此模块定义在 domain 层（而非 infrastructure），因为查询构建是领域层的通用能力，
与特定的数据库实现无关。
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import copy
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, func, not_, or_, select
from sqlalchemy.orm import joinedload, selectinload

from aurimyth.persistence_kit.common.logging import logger
from aurimyth.persistence_kit.domain.exceptions import InvalidFieldPathError
from aurimyth.persistence_kit.domain.models import Entity
from aurimyth.persistence_kit.domain.repository.field_path import (
    resolve_field_path,
    resolve_relationship_path,
)

DEFAULT_INCLUDE_DELETED_DIRECTIVE = "deleted"

# 操作符处理函数字典（函数式编程）
_OPERATOR_HANDLERS: dict[str, Callable[[Any, Any], Any]] = {
    "gt": lambda field, value: field > value,
    "lt": lambda field, value: field < value,
    "gte": lambda field, value: field >= value,
    "lte": lambda field, value: field <= value,
    "in": lambda field, value: field.in_(value),
    "like": lambda field, value: field.like(value),
    "ilike": lambda field, value: field.ilike(value),
    "ne": lambda field, value: field != value,
}


def _handle_isnull_operator(field: Any, value: bool) -> Any:
    """处理 isnull 操作符（True=为空，False=不为空）。"""
    if value:
        return field.is_(None)
    return field.isnot(None)


class QueryBuilder[ModelType: Entity]:
    """查询构建器。

    组装顺序：预加载选项 -> 软删除过滤（除非包含已删除）-> 调用方条件 -> 排序 -> 分页。
    过滤条件之间逻辑上可交换，顺序只影响数据库优化器。

    支持操作符：__gt、__lt、__gte、__lte、__in、__like、__ilike、__isnull、__ne
    支持复杂条件：and_()、or_()、not_()
    支持关系预加载：include()（按字符串路径校验）、joinedload()、selectinload()
    支持字段路径排序：order_by("customer.name", "-created_at")、sort(field, ascending)
    """

    def __init__(
        self,
        model_class: type[ModelType],
        *,
        include_deleted_directive: str = DEFAULT_INCLUDE_DELETED_DIRECTIVE,
    ) -> None:
        """初始化查询构建器。

        Args:
            model_class: 模型类
            include_deleted_directive: includes 中表示包含已删除记录的保留指令
        """
        self._model_class = model_class
        self._include_deleted_directive = include_deleted_directive
        self._filters: list[Any] = []
        # 元素为排序表达式，或 (已解析字段路径, 是否升序)
        self._ordering: list[Any] = []
        self._load_options: list[Any] = []
        self._include_deleted = False
        self._limit: int | None = None
        self._offset: int | None = None

    @property
    def model_class(self) -> type[ModelType]:
        return self._model_class

    @property
    def includes_deleted(self) -> bool:
        """是否包含已软删除的记录。"""
        return self._include_deleted

    @property
    def has_ordering(self) -> bool:
        """是否已指定排序。"""
        return bool(self._ordering)

    def filter(self, **kwargs) -> QueryBuilder[ModelType]:
        """添加关键字过滤条件。

        支持操作符：
        - __gt: 大于
        - __lt: 小于
        - __gte: 大于等于
        - __lte: 小于等于
        - __in: 包含于
        - __like: 模糊匹配（区分大小写）
        - __ilike: 模糊匹配（不区分大小写）
        - __isnull: 是否为空
        - __ne: 不等于

        不存在的字段会被忽略；不带操作符且值为 None 的条件会被跳过。
        """
        for key, value in kwargs.items():
            if "__" in key:
                field_name, operator = key.rsplit("__", 1)
                if not hasattr(self._model_class, field_name):
                    continue

                field = getattr(self._model_class, field_name)

                if operator == "isnull":
                    self._filters.append(_handle_isnull_operator(field, value))
                elif operator in _OPERATOR_HANDLERS:
                    handler = _OPERATOR_HANDLERS[operator]
                    self._filters.append(handler(field, value))
            else:
                if hasattr(self._model_class, key) and value is not None:
                    self._filters.append(getattr(self._model_class, key) == value)

        return self

    def where(self, *conditions: ColumnElement[bool] | None) -> QueryBuilder[ModelType]:
        """添加条件表达式，None 会被忽略（即“匹配全部”）。"""
        self._filters.extend(condition for condition in conditions if condition is not None)
        return self

    def filter_by(self, *conditions: ColumnElement[bool] | None) -> QueryBuilder[ModelType]:
        """where() 的别名，保持与旧接口兼容。"""
        return self.where(*conditions)

    @staticmethod
    def and_(*conditions) -> Any:
        """创建 AND 条件。"""
        return and_(*conditions)

    @staticmethod
    def or_(*conditions) -> Any:
        """创建 OR 条件。"""
        return or_(*conditions)

    @staticmethod
    def not_(condition) -> Any:
        """创建 NOT 条件。"""
        return not_(condition)

    def include(self, *directives: str) -> QueryBuilder[ModelType]:
        """添加预加载指令。

        每个指令是一个关系路径（嵌套用 "."，如 "orders.items"），会在此处校验；
        保留指令（默认 "deleted"）不做预加载，而是让查询包含已软删除的记录。

        Raises:
            InvalidFieldPathError: 指令不是模型上的关系路径
        """
        for directive in directives:
            if not directive:
                continue
            if directive == self._include_deleted_directive:
                self._include_deleted = True
                continue
            attributes = resolve_relationship_path(self._model_class, directive)
            option = selectinload(attributes[0])
            for attribute in attributes[1:]:
                option = option.selectinload(attribute)
            self._load_options.append(option)
        return self

    def with_deleted(self, include: bool = True) -> QueryBuilder[ModelType]:
        """包含已软删除的记录（用于审计等场景）。"""
        self._include_deleted = include
        return self

    def order_by(self, *fields) -> QueryBuilder[ModelType]:
        """添加排序条件。

        字符串按字段路径解析（支持嵌套，如 "customer.name"），使用 "-" 前缀表示降序；
        其他值视为 SQLAlchemy 排序表达式直接使用。

        Raises:
            InvalidFieldPathError: 字段路径无法解析
        """
        for field in fields:
            if isinstance(field, str):
                if field.startswith("-"):
                    self.sort(field[1:], ascending=False)
                else:
                    self.sort(field)
            else:
                self._ordering.append(field)

        return self

    def sort(self, field: str, ascending: bool = True) -> QueryBuilder[ModelType]:
        """按字段路径排序。

        Raises:
            InvalidFieldPathError: 字段路径无法解析
        """
        try:
            resolved = resolve_field_path(self._model_class, field)
        except InvalidFieldPathError as exc:
            logger.warning(f"排序字段无效: {exc}")
            raise
        self._ordering.append((resolved, ascending))
        return self

    def clear_ordering(self) -> QueryBuilder[ModelType]:
        """清除已有排序。"""
        self._ordering = []
        return self

    def limit(self, limit: int | None) -> QueryBuilder[ModelType]:
        """设置返回记录数限制。"""
        self._limit = limit
        return self

    def offset(self, offset: int | None) -> QueryBuilder[ModelType]:
        """设置跳过记录数。"""
        self._offset = offset
        return self

    def joinedload(self, *relationships) -> QueryBuilder[ModelType]:
        """添加关联加载（JOIN）。字符串按关系路径校验。"""
        for rel in relationships:
            if isinstance(rel, str):
                attributes = resolve_relationship_path(self._model_class, rel)
                option = joinedload(attributes[0])
                for attribute in attributes[1:]:
                    option = option.joinedload(attribute)
                self._load_options.append(option)
            else:
                self._load_options.append(joinedload(rel))

        return self

    def selectinload(self, *relationships) -> QueryBuilder[ModelType]:
        """添加关联加载（SELECT IN）。字符串等同于 include()。"""
        for rel in relationships:
            if isinstance(rel, str):
                self.include(rel)
            else:
                self._load_options.append(selectinload(rel))

        return self

    def copy(self) -> QueryBuilder[ModelType]:
        """复制构建器，副本的后续修改不影响原构建器。"""
        clone = copy.copy(self)
        clone._filters = list(self._filters)
        clone._ordering = list(self._ordering)
        clone._load_options = list(self._load_options)
        return clone

    def _criteria(self) -> list[Any]:
        criteria: list[Any] = []
        if not self._include_deleted:
            criteria.append(self._model_class.deleted.is_(False))
        criteria.extend(self._filters)
        return criteria

    def build(self) -> Select:
        """构建查询对象。

        Returns:
            Select: SQLAlchemy 查询对象
        """
        query = select(self._model_class)

        if self._load_options:
            query = query.options(*self._load_options)

        criteria = self._criteria()
        if criteria:
            query = query.where(and_(*criteria))

        for entry in self._ordering:
            if isinstance(entry, tuple):
                resolved, ascending = entry
                query = resolved.apply(query, ascending)
            else:
                query = query.order_by(entry)

        if self._offset is not None:
            query = query.offset(self._offset)

        if self._limit is not None:
            query = query.limit(self._limit)

        return query

    def build_count(self) -> Select:
        """构建计数查询（不含排序、分页与预加载）。"""
        query = select(func.count()).select_from(self._model_class)
        criteria = self._criteria()
        if criteria:
            query = query.where(and_(*criteria))
        return query

    def build_exists(self) -> Select:
        """构建存在性查询。"""
        query = select(self._model_class.id)
        criteria = self._criteria()
        if criteria:
            query = query.where(and_(*criteria))
        return select(query.limit(1).exists())

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} model={self._model_class.__name__} "
            f"filters={len(self._filters)} include_deleted={self._include_deleted}>"
        )


def build_query[ModelType: Entity](
    model_class: type[ModelType],
    predicate: ColumnElement[bool] | None = None,
    includes: Iterable[str] = (),
    *,
    include_deleted_directive: str = DEFAULT_INCLUDE_DELETED_DIRECTIVE,
) -> QueryBuilder[ModelType]:
    """按 (条件, 预加载指令) 组装一个未执行的查询。"""
    return (
        QueryBuilder(model_class, include_deleted_directive=include_deleted_directive)
        .include(*includes)
        .where(predicate)
    )


__all__ = [
    "DEFAULT_INCLUDE_DELETED_DIRECTIVE",
    "QueryBuilder",
    "build_query",
]
