"""字段路径解析器。

把调用方在运行时传入的字符串字段名（如 "customer.name"、"Customer.Name"、"createdAt"）
解析为可用于排序/比较的类型化访问器，调用方无需为每个字段编写查询代码。

规则：
- 路径以 "." 分隔，第一个片段相对于实体根模型
- 除最后一个片段外，其余片段必须是多对一（标量）关系
- 最后一个片段必须是映射列
- 片段先按属性名精确匹配，再忽略大小写与下划线匹配
- 字符串类型的叶子字段在比较时视为非空：NULL 按空字符串处理，排序因此是全序的
- 其他类型保持其自然顺序（数值、时间等），不做任何转换

解析在构建查询时同步完成，任何片段无法解析都会在访问数据库之前抛出
InvalidFieldPathError。解析过程无副作用、结果确定，调用方可自行按 (模型, 路径) 缓存。
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Enum, Select, String, func
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import InstrumentedAttribute, Mapper, aliased
from sqlalchemy.types import TypeDecorator

from aurimyth.persistence_kit.domain.exceptions import InvalidFieldPathError

PATH_SEPARATOR = "."


def _normalize(name: str) -> str:
    return name.replace("_", "").lower()


def _mapper_of(model_class: type, path: str) -> Mapper:
    mapper = sa_inspect(model_class, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise InvalidFieldPathError(model_class, path, reason="不是 SQLAlchemy 映射类")
    return mapper


def _split(model_class: type, path: str) -> list[str]:
    if not isinstance(path, str) or not path.strip():
        raise InvalidFieldPathError(model_class, str(path), reason="字段路径不能为空")
    segments = [segment.strip() for segment in path.split(PATH_SEPARATOR)]
    for segment in segments:
        if not segment:
            raise InvalidFieldPathError(model_class, path, segment, "存在空片段")
    return segments


def _match_attribute(mapper: Mapper, model_class: type, path: str, segment: str) -> str:
    """在映射上查找片段对应的属性名。"""
    keys = list(mapper.attrs.keys())
    if segment in keys:
        return segment
    wanted = _normalize(segment)
    matches = [key for key in keys if _normalize(key) == wanted]
    if len(matches) == 1:
        return matches[0]
    if matches:
        raise InvalidFieldPathError(model_class, path, segment, f"匹配到多个属性 {matches}")
    raise InvalidFieldPathError(model_class, path, segment, f"{mapper.class_.__name__} 上不存在该属性")


def _is_string_type(column_type: Any) -> bool:
    if isinstance(column_type, TypeDecorator):
        column_type = column_type.impl_instance
    return isinstance(column_type, String) and not isinstance(column_type, Enum)


@dataclass(frozen=True)
class RelationshipHop:
    """路径中的一次关系跳转。"""

    key: str
    owner: type
    target: type


@dataclass(frozen=True)
class ResolvedFieldPath:
    """已解析的字段路径。

    Attributes:
        model_class: 路径起点模型
        path: 原始路径
        hops: 关系跳转（按顺序）
        column_key: 叶子列属性名
        is_string: 叶子列是否为字符串类型
    """

    model_class: type
    path: str
    hops: tuple[RelationshipHop, ...]
    column_key: str
    is_string: bool

    @property
    def is_nested(self) -> bool:
        return bool(self.hops)

    @property
    def canonical_path(self) -> str:
        """按真实属性名拼接的路径，如 "customer.name"。"""
        return PATH_SEPARATOR.join([*(hop.key for hop in self.hops), self.column_key])

    def _comparable(self, column: Any) -> Any:
        if self.is_string:
            return func.coalesce(column, "")
        return column

    def sort_key(self, query: Select) -> tuple[Select, Any]:
        """为查询补上关系跳转所需的外连接，返回 (查询, 排序表达式)。

        每次跳转都使用独立的别名，自引用关系（如 employee.manager.name）同样适用。
        使用外连接，关系为空的行不会被过滤掉。
        """
        owner: Any = self.model_class
        for hop in self.hops:
            target = aliased(hop.target)
            query = query.outerjoin(getattr(owner, hop.key).of_type(target))
            owner = target
        return query, self._comparable(getattr(owner, self.column_key))

    def apply(self, query: Select, ascending: bool = True) -> Select:
        """在查询上追加按该路径的排序。"""
        query, key = self.sort_key(query)
        return query.order_by(key.asc() if ascending else key.desc())

    def accessor(self) -> Callable[[Any], Any]:
        """返回内存中的取值函数 entity -> value，语义与 sort_key 一致。"""
        keys = [hop.key for hop in self.hops]
        column_key = self.column_key
        empty = "" if self.is_string else None

        def get_value(entity: Any) -> Any:
            current = entity
            for key in keys:
                current = getattr(current, key)
                if current is None:
                    return empty
            value = getattr(current, column_key)
            return empty if value is None else value

        return get_value


def resolve_field_path(model_class: type, path: str) -> ResolvedFieldPath:
    """把字段路径解析为可排序的列访问器。

    Args:
        model_class: 起点模型类
        path: 字段路径，如 "name"、"customer.name"、"Customer.Name"

    Returns:
        ResolvedFieldPath

    Raises:
        InvalidFieldPathError: 任一片段无法解析
    """
    segments = _split(model_class, path)
    hops: list[RelationshipHop] = []
    owner = model_class

    for index, segment in enumerate(segments):
        mapper = _mapper_of(owner, path)
        key = _match_attribute(mapper, model_class, path, segment)
        is_leaf = index == len(segments) - 1

        if key in mapper.relationships:
            if is_leaf:
                raise InvalidFieldPathError(model_class, path, segment, "路径必须以列结尾，而不是关系")
            relationship = mapper.relationships[key]
            if relationship.uselist:
                raise InvalidFieldPathError(model_class, path, segment, "集合关系不能用于排序")
            target = relationship.mapper.class_
            hops.append(RelationshipHop(key=key, owner=owner, target=target))
            owner = target
            continue

        if key not in mapper.column_attrs:
            raise InvalidFieldPathError(model_class, path, segment, "不是映射列")
        if not is_leaf:
            raise InvalidFieldPathError(model_class, path, segment, "列之后不能再有片段")

        column = mapper.column_attrs[key].columns[0]
        return ResolvedFieldPath(
            model_class=model_class,
            path=path,
            hops=tuple(hops),
            column_key=key,
            is_string=_is_string_type(column.type),
        )

    # 循环在叶子处必然 return 或 raise
    raise InvalidFieldPathError(model_class, path)


def resolve_relationship_path(model_class: type, path: str) -> tuple[InstrumentedAttribute, ...]:
    """把预加载指令（如 "orders"、"orders.items"）解析为关系属性链。

    与排序路径不同，这里的每个片段都必须是关系，集合关系也允许。

    Raises:
        InvalidFieldPathError: 任一片段不是关系
    """
    segments = _split(model_class, path)
    attributes: list[InstrumentedAttribute] = []
    owner = model_class

    for segment in segments:
        mapper = _mapper_of(owner, path)
        key = _match_attribute(mapper, model_class, path, segment)
        if key not in mapper.relationships:
            raise InvalidFieldPathError(model_class, path, segment, "预加载指令必须是关系")
        attributes.append(getattr(owner, key))
        owner = mapper.relationships[key].mapper.class_

    return tuple(attributes)


__all__ = [
    "PATH_SEPARATOR",
    "RelationshipHop",
    "ResolvedFieldPath",
    "resolve_field_path",
    "resolve_relationship_path",
]
