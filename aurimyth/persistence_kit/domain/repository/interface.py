"""仓储接口定义。

遵循面向对象设计原则：
- 单一职责原则：Repository只负责数据访问
- 依赖倒置原则：依赖抽象而非具体实现
- 开闭原则：对扩展开放，对修改关闭
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any
import uuid

from sqlalchemy import ColumnElement

from aurimyth.persistence_kit.domain.models import Entity
from aurimyth.persistence_kit.domain.repository.query_builder import QueryBuilder


class IRepository[ModelType: Entity](ABC):
    """仓储接口定义。

    定义所有Repository必须实现的方法。所有读取默认排除已软删除的记录；
    找不到数据时返回 None / False，不抛异常。
    """

    @abstractmethod
    async def get_by_id(self, id: uuid.UUID) -> ModelType | None:
        """根据ID获取未删除的实体。"""
        pass

    @abstractmethod
    async def add(
        self,
        entity: ModelType,
        *,
        create_new_id: bool = True,
        actor: str | None = None,
    ) -> ModelType:
        """添加实体。"""
        pass

    @abstractmethod
    async def add_range(
        self,
        entities: Sequence[ModelType],
        *,
        create_new_id: bool = True,
        actor: str | None = None,
    ) -> list[ModelType]:
        """批量添加实体。"""
        pass

    @abstractmethod
    async def update(self, entity: ModelType, *, actor: str | None = None) -> ModelType:
        """更新实体。"""
        pass

    @abstractmethod
    async def update_range(
        self,
        entities: Sequence[ModelType],
        *,
        actor: str | None = None,
    ) -> list[ModelType]:
        """批量更新实体。"""
        pass

    @abstractmethod
    async def delete(self, id: uuid.UUID, *, actor: str | None = None) -> bool:
        """软删除实体。"""
        pass

    @abstractmethod
    async def delete_range(
        self,
        ids: Iterable[uuid.UUID],
        *,
        actor: str | None = None,
    ) -> bool:
        """批量软删除实体。"""
        pass

    @abstractmethod
    async def get_all(self) -> list[ModelType]:
        """获取全部未删除实体（创建时间倒序）。"""
        pass

    @abstractmethod
    async def exists(self, target: uuid.UUID | ColumnElement[bool]) -> bool:
        """按ID或条件检查实体是否存在。"""
        pass

    @abstractmethod
    async def get_paginated(
        self,
        predicate: ColumnElement[bool] | None,
        page: int,
        size: int,
        order_by: str | None = None,
        ascending: bool = True,
        includes: Iterable[str] = (),
    ) -> tuple[int, list[ModelType]]:
        """分页查询，返回 (总数, 当前页数据)。"""
        pass

    @abstractmethod
    def query(
        self,
        predicate: ColumnElement[bool] | None = None,
        includes: Iterable[str] = (),
    ) -> QueryBuilder[ModelType]:
        """组装一个未执行、可继续组合的查询。"""
        pass

    @abstractmethod
    async def first_or_default(
        self,
        predicate: ColumnElement[bool] | None,
        order_by: str | None = None,
        ascending: bool = True,
        includes: Iterable[str] = (),
    ) -> ModelType | None:
        """按排序取第一条匹配的实体。"""
        pass

    @abstractmethod
    async def hard_delete(self, id: uuid.UUID) -> bool:
        """物理删除实体。"""
        pass

    @abstractmethod
    async def count(self, predicate: ColumnElement[bool] | None = None, **filters: Any) -> int:
        """统计未删除实体数量。"""
        pass


__all__ = [
    "IRepository",
]
