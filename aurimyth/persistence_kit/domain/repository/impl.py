"""Domain 层仓储实现 - BaseRepository 的具体实现。

提供通用的 CRUD、软删除、审计字段维护以及按字段路径排序的分页查询，
是 IRepository 接口的具体实现。

设计原则：
- Repository 不执行 commit，只执行 flush；事务边界由调用方管理
- 每个变更操作恰好 flush 一次（批量操作也只 flush 一次）
- 所有前置条件错误在 flush / 查询执行之前同步抛出
- 数据库异常不做转换，原样抛给调用方
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any
import uuid

from sqlalchemy import ColumnElement, Row, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from aurimyth.persistence_kit.common.logging import logger
from aurimyth.persistence_kit.core.config import RepositorySettings, get_settings
from aurimyth.persistence_kit.domain.actor import ActorProvider, resolve_actor
from aurimyth.persistence_kit.domain.exceptions import (
    EntityAlreadyPersistedError,
    EntityContractError,
    NullEntityError,
    UnidentifiedEntityError,
    VersionConflictError,
)
from aurimyth.persistence_kit.domain.models import (
    Entity,
    entity_id,
    is_versioned,
    missing_contract_fields,
)
from aurimyth.persistence_kit.domain.pagination import (
    PaginationParams,
    PaginationResult,
    SortParams,
    apply_default_ordering,
    paginate,
)
from aurimyth.persistence_kit.domain.repository.interface import IRepository
from aurimyth.persistence_kit.domain.repository.query_builder import QueryBuilder, build_query

_ONE_TICK = timedelta(microseconds=1)


class BaseRepository[ModelType: Entity](IRepository[ModelType]):
    """仓储基类实现。

    **重要**：模型必须满足实体契约（推荐直接继承 Entity 或 VersionedEntity）：
    id、created_at、created_by、modified_at、modified_by、deleted。

    审计操作人解析顺序：调用时的 actor 参数 -> 构造时注入的 actor_provider
    -> 上下文 actor_scope() -> RepositorySettings.default_actor。

    一个仓储实例绑定一个 AsyncSession，不能在并发任务之间共享。

    示例：
        class Customer(Entity):
            __tablename__ = "customers"
            name: Mapped[str] = mapped_column(String(100))

        repo = BaseRepository(session, Customer)
        customer = await repo.add(Customer(name="Alice"))
        total, items = await repo.get_paginated(None, page=1, size=20, order_by="name")
    """

    def __init__(
        self,
        session: AsyncSession,
        model_class: type[ModelType],
        *,
        actor_provider: ActorProvider | None = None,
        settings: RepositorySettings | None = None,
    ) -> None:
        missing = missing_contract_fields(model_class)
        if missing:
            raise EntityContractError(model_class, missing)

        self._session = session
        self._model_class = model_class
        self._actor_provider = actor_provider
        self._settings = settings or get_settings().repository
        self._versioned = is_versioned(model_class)
        logger.debug(f"初始化 {self.__class__.__name__} model={model_class.__name__}")

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def model_class(self) -> type[ModelType]:
        return self._model_class

    # ------------------------------------------------------------------
    # 审计字段
    # ------------------------------------------------------------------

    def _resolve_actor(self, override: str | None) -> str | None:
        return resolve_actor(override, self._actor_provider, self._settings.default_actor)

    @staticmethod
    def _utcnow() -> datetime:
        return datetime.now(UTC)

    @staticmethod
    def _after(previous: datetime | None, now: datetime) -> datetime:
        """保证 modified_at 严格递增。"""
        if previous is not None and now <= previous:
            return previous + _ONE_TICK
        return now

    def _stamp_new(
        self,
        entity: ModelType,
        *,
        actor: str | None,
        now: datetime,
        create_new_id: bool,
    ) -> None:
        if create_new_id or entity.id is None:
            entity.id = uuid.uuid4()
        entity.created_at = now
        entity.created_by = actor
        entity.modified_at = now
        entity.modified_by = actor
        entity.deleted = False
        if self._versioned:
            entity.version = 1

    def _stamp_modified(
        self,
        entity: ModelType,
        *,
        actor: str | None,
        now: datetime,
        previous: datetime | None,
    ) -> None:
        entity.modified_at = self._after(previous, now)
        entity.modified_by = actor

    def _mark_deleted(self, entity: ModelType, *, actor: str | None, now: datetime) -> None:
        entity.mark_deleted()
        self._stamp_modified(entity, actor=actor, now=now, previous=entity.modified_at)
        if self._versioned:
            entity.version = entity.version + 1

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------

    def query(
        self,
        predicate: ColumnElement[bool] | None = None,
        includes: Iterable[str] = (),
    ) -> QueryBuilder[ModelType]:
        """组装一个未执行、可继续组合的查询。

        includes 中的保留指令（默认 "deleted"）让查询包含已软删除的记录。

        Raises:
            InvalidFieldPathError: 预加载指令不是模型上的关系
        """
        return build_query(
            self._model_class,
            predicate,
            includes,
            include_deleted_directive=self._settings.include_deleted_directive,
        )

    async def fetch_all(self, builder: QueryBuilder[ModelType]) -> list[ModelType]:
        """执行查询并返回全部结果。"""
        result = await self._session.execute(builder.build())
        return list(result.unique().scalars().all())

    async def fetch_first(self, builder: QueryBuilder[ModelType]) -> ModelType | None:
        """执行查询并返回第一条结果。"""
        query = builder.copy().limit(1).build()
        result = await self._session.execute(query)
        return result.unique().scalars().first()

    async def get_by_id(self, id: uuid.UUID) -> ModelType | None:
        """按 ID 获取未删除的实体，不存在时返回 None。"""
        builder = self.query(self._model_class.id == id)
        return await self.fetch_first(builder)

    async def get_all(self) -> list[ModelType]:
        """获取全部未删除实体，按创建时间倒序。"""
        return await self.fetch_all(apply_default_ordering(self.query()))

    async def get_many(
        self,
        predicate: ColumnElement[bool] | None = None,
        includes: Iterable[str] = (),
        **filters: Any,
    ) -> list[ModelType]:
        """按条件获取未删除实体，按创建时间倒序。"""
        builder = self.query(predicate, includes).filter(**filters)
        return await self.fetch_all(apply_default_ordering(builder))

    async def count(self, predicate: ColumnElement[bool] | None = None, **filters: Any) -> int:
        """统计未删除实体数量。"""
        builder = self.query(predicate).filter(**filters)
        result = await self._session.execute(builder.build_count())
        return result.scalar_one()

    async def exists(self, target: uuid.UUID | ColumnElement[bool]) -> bool:
        """按 ID 或条件检查未删除实体是否存在。"""
        if isinstance(target, uuid.UUID):
            builder = self.query(self._model_class.id == target)
        else:
            builder = self.query(target)
        result = await self._session.execute(builder.build_exists())
        return bool(result.scalar())

    def sort_query(
        self,
        builder: QueryBuilder[ModelType],
        order_by: str,
        ascending: bool = True,
    ) -> QueryBuilder[ModelType]:
        """返回按字段路径重新排序的查询副本，原查询不变。

        Raises:
            InvalidFieldPathError: 字段路径无法解析
        """
        return builder.copy().clear_ordering().sort(order_by, ascending)

    async def paginate(
        self,
        builder: QueryBuilder[ModelType],
        page: int,
        size: int,
        order_by: str | None = None,
        ascending: bool = True,
    ) -> PaginationResult[ModelType]:
        """在任意组合好的查询上分页。

        未指定 order_by 时保留查询已有的排序；查询也没有排序时按创建时间倒序。

        Raises:
            InvalidFieldPathError: 排序字段无效（在查询执行之前）
        """
        params = PaginationParams.of(page, size, self._settings.max_page_size)
        sort_params = SortParams(field=order_by, ascending=ascending) if order_by else None
        return await paginate(self._session, builder, params, sort_params)

    async def get_paginated(
        self,
        predicate: ColumnElement[bool] | None,
        page: int,
        size: int,
        order_by: str | None = None,
        ascending: bool = True,
        includes: Iterable[str] = (),
    ) -> tuple[int, list[ModelType]]:
        """分页查询。

        页码与每页数量小于 1 时按 1 处理；页码超出范围时返回空列表和正确的总数。

        Args:
            predicate: 过滤条件（None 表示全部）
            page: 页码（从 1 开始）
            size: 每页数量
            order_by: 排序字段路径（支持嵌套，如 "customer.name"），为空时按创建时间倒序
            ascending: 是否升序
            includes: 预加载指令

        Returns:
            (总数, 当前页数据)

        Raises:
            InvalidFieldPathError: 排序字段或预加载指令无效（在查询执行之前）
        """
        builder = self.query(predicate, includes)
        result = await self.paginate(builder, page, size, order_by, ascending)
        return result.as_tuple()

    async def first_or_default(
        self,
        predicate: ColumnElement[bool] | None,
        order_by: str | None = None,
        ascending: bool = True,
        includes: Iterable[str] = (),
    ) -> ModelType | None:
        """按排序取第一条匹配的实体，未指定排序时取最新创建的一条。

        Raises:
            InvalidFieldPathError: 排序字段或预加载指令无效（在查询执行之前）
        """
        builder = self.query(predicate, includes)
        if order_by:
            builder.sort(order_by, ascending)
        return await self.fetch_first(apply_default_ordering(builder))

    # ------------------------------------------------------------------
    # 新增
    # ------------------------------------------------------------------

    def _check_new(self, entities: Sequence[ModelType], operation: str) -> None:
        for entity in entities:
            if entity is None:
                raise NullEntityError(operation)
            if sa_inspect(entity).key is not None:
                raise EntityAlreadyPersistedError(entity)

    async def add(
        self,
        entity: ModelType,
        *,
        create_new_id: bool = True,
        actor: str | None = None,
    ) -> ModelType:
        """添加实体（不提交）。

        生成 ID（create_new_id=False 且已有 ID 时保留调用方的 ID），写入创建/修改审计字段
        （两者取同一时刻），deleted 置为 False。

        Raises:
            NullEntityError: entity 为 None
            EntityAlreadyPersistedError: 实体已有数据库标识（持久化或游离状态）
        """
        self._check_new([entity], "add")

        self._stamp_new(
            entity,
            actor=self._resolve_actor(actor),
            now=self._utcnow(),
            create_new_id=create_new_id,
        )
        self._session.add(entity)
        await self._session.flush()
        logger.debug(f"添加实体: {entity}")
        return entity

    async def add_range(
        self,
        entities: Sequence[ModelType],
        *,
        create_new_id: bool = True,
        actor: str | None = None,
    ) -> list[ModelType]:
        """批量添加实体（不提交，只 flush 一次）。

        同一批实体的创建时间按输入顺序逐个递增一微秒，默认排序下保持插入顺序。

        Raises:
            NullEntityError: 列表中存在 None
            EntityAlreadyPersistedError: 列表中存在已持久化的实体
        """
        if not entities:
            return []
        self._check_new(entities, "add_range")

        resolved_actor = self._resolve_actor(actor)
        now = self._utcnow()
        for offset, entity in enumerate(entities):
            self._stamp_new(
                entity,
                actor=resolved_actor,
                now=now + offset * _ONE_TICK,
                create_new_id=create_new_id,
            )

        self._session.add_all(entities)
        await self._session.flush()
        logger.debug(f"批量添加 {len(entities)} 个实体: {self._model_class.__name__}")
        return list(entities)

    # ------------------------------------------------------------------
    # 更新
    # ------------------------------------------------------------------

    def _state_columns(self) -> list[Any]:
        model = self._model_class
        columns = [model.id, model.created_at, model.created_by, model.modified_at, model.deleted]
        if self._versioned:
            columns.append(model.version)
        return columns

    async def _load_persisted_state(self, ids: list[uuid.UUID]) -> dict[uuid.UUID, Row]:
        """读取数据库中的审计 / 软删除 / 版本状态（不触发 autoflush）。"""
        query = select(*self._state_columns()).where(self._model_class.id.in_(ids))
        if self._versioned:
            query = query.with_for_update()
        with self._session.no_autoflush:
            result = await self._session.execute(query)
        return {row.id: row for row in result.all()}

    @staticmethod
    def _loaded_value(entity: Any, name: str, default: Any = None) -> Any:
        """读取已加载的属性值，不触发延迟加载。"""
        return sa_inspect(entity).dict.get(name, default)

    async def _attach(self, entity: ModelType) -> ModelType:
        """确保实体属于当前 session，游离 / 临时实体会被合并。"""
        state = sa_inspect(entity)
        if state.session is self._session.sync_session and state.persistent:
            return entity
        with self._session.no_autoflush:
            return await self._session.merge(entity)

    def _check_identified(self, entities: Sequence[ModelType], operation: str) -> None:
        for entity in entities:
            if entity is None:
                raise NullEntityError(operation)
            if entity_id(entity) is None:
                raise UnidentifiedEntityError(entity)

    def _check_persisted(self, entity: ModelType, persisted: Row | None) -> Row:
        if persisted is None:
            raise UnidentifiedEntityError(entity)
        if self._versioned:
            # 未加载版本号的实体（如只设置了部分字段的临时实体）视为与数据库一致
            expected = self._loaded_value(entity, "version", persisted.version)
            if expected != persisted.version:
                raise VersionConflictError(
                    current_version=persisted.version,
                    expected_version=expected,
                )
        return persisted

    async def _apply_update(
        self,
        entity: ModelType,
        persisted: Row,
        *,
        actor: str | None,
        now: datetime,
    ) -> ModelType:
        target = await self._attach(entity)

        # 创建审计字段只在首次持久化时写入
        target.created_at = persisted.created_at
        target.created_by = persisted.created_by
        # 软删除标记单向，不允许通过 update 恢复
        if persisted.deleted:
            target.deleted = True
        if self._versioned:
            target.version = persisted.version + 1

        self._stamp_modified(target, actor=actor, now=now, previous=persisted.modified_at)
        return target

    async def update(self, entity: ModelType, *, actor: str | None = None) -> ModelType:
        """更新实体（不提交）。

        重写 modified_at / modified_by，created_at / created_by 保持数据库中的原值；
        游离实体会被合并到当前 session，返回值为 session 中的实例。

        Raises:
            NullEntityError: entity 为 None
            UnidentifiedEntityError: 实体没有 ID，或数据库中不存在该 ID
            VersionConflictError: 使用乐观锁且版本号与数据库不一致
        """
        self._check_identified([entity], "update")

        identifier = entity_id(entity)
        states = await self._load_persisted_state([identifier])
        persisted = self._check_persisted(entity, states.get(identifier))

        target = await self._apply_update(
            entity,
            persisted,
            actor=self._resolve_actor(actor),
            now=self._utcnow(),
        )
        await self._session.flush()
        logger.debug(f"更新实体: {target}")
        return target

    async def update_range(
        self,
        entities: Sequence[ModelType],
        *,
        actor: str | None = None,
    ) -> list[ModelType]:
        """批量更新实体（不提交，只 flush 一次）。

        任一实体不满足前置条件时整批不做任何修改。

        Raises:
            NullEntityError: 列表中存在 None
            UnidentifiedEntityError: 某个实体没有 ID，或数据库中不存在该 ID
            VersionConflictError: 使用乐观锁且某个实体版本号不一致
        """
        if not entities:
            return []
        self._check_identified(entities, "update_range")

        ids = [entity_id(entity) for entity in entities]
        states = await self._load_persisted_state(ids)
        # 先校验整批，任何实体都还未被修改
        persisted = [
            self._check_persisted(entity, states.get(identifier))
            for entity, identifier in zip(entities, ids, strict=True)
        ]

        resolved_actor = self._resolve_actor(actor)
        now = self._utcnow()
        targets = [
            await self._apply_update(entity, row, actor=resolved_actor, now=now)
            for entity, row in zip(entities, persisted, strict=True)
        ]
        await self._session.flush()
        logger.debug(f"批量更新 {len(targets)} 个实体: {self._model_class.__name__}")
        return targets

    # ------------------------------------------------------------------
    # 删除
    # ------------------------------------------------------------------

    async def _soft_delete_all(self, entities: list[ModelType], actor: str | None) -> int:
        if not entities:
            return 0
        resolved_actor = self._resolve_actor(actor)
        now = self._utcnow()
        for entity in entities:
            self._mark_deleted(entity, actor=resolved_actor, now=now)
        await self._session.flush()
        return len(entities)

    async def _load_active(self, builder: QueryBuilder[ModelType]) -> list[ModelType]:
        with self._session.no_autoflush:
            result = await self._session.execute(builder.build())
        return list(result.unique().scalars().all())

    async def delete(self, id: uuid.UUID, *, actor: str | None = None) -> bool:
        """软删除实体（不提交）。

        Returns:
            存在未删除的记录并已标记删除时返回 True；不存在或已删除时返回 False
        """
        entities = await self._load_active(self.query(self._model_class.id == id))
        deleted = await self._soft_delete_all(entities, actor)
        if deleted:
            logger.debug(f"软删除实体: {self._model_class.__name__} id={id}")
        return bool(deleted)

    async def delete_range(self, ids: Iterable[uuid.UUID], *, actor: str | None = None) -> bool:
        """批量软删除实体（不提交，只 flush 一次）。

        Returns:
            至少有一条未删除的记录被标记删除时返回 True
        """
        ids = list(ids)
        if not ids:
            return False
        entities = await self._load_active(self.query(self._model_class.id.in_(ids)))
        deleted = await self._soft_delete_all(entities, actor)
        logger.debug(f"批量软删除 {deleted}/{len(ids)} 个实体: {self._model_class.__name__}")
        return deleted > 0

    async def delete_where(
        self,
        predicate: ColumnElement[bool] | None,
        *,
        actor: str | None = None,
    ) -> int:
        """软删除所有匹配条件的未删除实体，返回标记删除的数量。"""
        entities = await self._load_active(self.query(predicate))
        deleted = await self._soft_delete_all(entities, actor)
        logger.debug(f"按条件软删除 {deleted} 个实体: {self._model_class.__name__}")
        return deleted

    async def hard_delete(self, id: uuid.UUID) -> bool:
        """物理删除实体（不提交，不记录审计字段）。已软删除的记录同样会被删除。"""
        entity = await self._session.get(self._model_class, id)
        if entity is None:
            return False
        await self._session.delete(entity)
        await self._session.flush()
        logger.debug(f"硬删除实体: {entity}")
        return True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self._model_class.__name__}>"


__all__ = ["BaseRepository"]
