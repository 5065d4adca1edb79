"""分页。

提供：
- PaginationParams: 页码 / 每页数量（非正数归一为 1，不报错）
- SortParams: 显式排序（字段路径 + 方向）
- PaginationResult: (总数, 当前页数据) 及页数等派生信息
- paginate(): 在组合好的查询上执行 “先计数、再排序、最后开窗”

未指定排序时使用默认排序（创建时间倒序），显式排序追加主键兜底；
无序分页的窗口边界在多次调用之间不确定，因此不允许。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from aurimyth.persistence_kit.common.logging import log_performance, logger

if TYPE_CHECKING:
    from aurimyth.persistence_kit.domain.repository.query_builder import QueryBuilder

T = TypeVar("T")


def _clamp_to_one(value: Any) -> int:
    if value is None:
        return 1
    return max(1, int(value))


class PaginationParams(BaseModel):
    """分页参数。

    Attributes:
        page: 页码（从 1 开始，小于 1 时按 1 处理）
        size: 每页数量（小于 1 时按 1 处理）
    """

    page: int = Field(default=1, description="页码（从1开始）")
    size: int = Field(default=20, description="每页数量")

    @field_validator("page", "size", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> int:
        return _clamp_to_one(value)

    @classmethod
    def of(cls, page: int | None, size: int | None, max_size: int | None = None) -> PaginationParams:
        """创建分页参数，可选地限制每页数量上限。"""
        params = cls(page=page, size=size)
        if max_size is not None and params.size > max_size:
            params = cls(page=params.page, size=max_size)
        return params

    @property
    def offset(self) -> int:
        """跳过的记录数：(page - 1) * size。"""
        return (self.page - 1) * self.size

    @property
    def limit(self) -> int:
        """返回的记录数。"""
        return self.size


class SortParams(BaseModel):
    """排序参数。

    Attributes:
        field: 字段路径（支持嵌套，如 "customer.name"）
        ascending: 是否升序
    """

    field: str = Field(..., description="排序字段路径")
    ascending: bool = Field(default=True, description="是否升序")

    @classmethod
    def parse(cls, value: str) -> SortParams:
        """从 "-field" / "field" 形式创建。"""
        if value.startswith("-"):
            return cls(field=value[1:], ascending=False)
        return cls(field=value, ascending=True)


class PaginationResult(BaseModel, Generic[T]):
    """分页结果。

    Attributes:
        total: 过滤后、分页前的总记录数
        items: 当前页数据（最后一页可能不足，超出范围时为空）
        page: 当前页码
        size: 每页数量
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total: int = Field(..., description="总记录数", ge=0)
    items: list[T] = Field(default_factory=list, description="数据列表")
    page: int = Field(default=1, description="当前页码", ge=1)
    size: int = Field(default=20, description="每页数量", ge=1)

    @classmethod
    def create(
        cls,
        items: list[T],
        total: int,
        pagination_params: PaginationParams,
    ) -> PaginationResult[T]:
        """创建分页结果。"""
        return cls(
            total=total,
            items=items,
            page=pagination_params.page,
            size=pagination_params.size,
        )

    @property
    def pages(self) -> int:
        """总页数。"""
        return (self.total + self.size - 1) // self.size

    @property
    def has_next(self) -> bool:
        """是否有下一页。"""
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        """是否有上一页。"""
        return self.page > 1

    def as_tuple(self) -> tuple[int, list[T]]:
        """返回 (总数, 当前页数据)。"""
        return self.total, self.items


def apply_default_ordering(builder: QueryBuilder) -> QueryBuilder:
    """保证查询有确定的顺序。

    未指定排序时使用创建时间倒序；已指定排序时追加主键升序，
    排序字段取值相同的记录在多次分页之间也保持同一顺序。
    """
    model_class = builder.model_class
    if builder.has_ordering:
        builder.order_by(model_class.id.asc())
    else:
        builder.order_by(model_class.created_at.desc(), model_class.id.desc())
    return builder


@log_performance(threshold=1.0)
async def paginate[ModelType](
    session: AsyncSession,
    builder: QueryBuilder,
    pagination_params: PaginationParams,
    sort_params: SortParams | None = None,
) -> PaginationResult[ModelType]:
    """在组合好的查询上分页。

    总数基于过滤后的完整集合（开窗之前）；窗口为 offset=(page-1)*size, limit=size。
    构建器不会被修改。

    Raises:
        InvalidFieldPathError: 排序字段无效（在任何查询执行之前）
    """
    query_builder = builder.copy()
    if sort_params is not None:
        query_builder.clear_ordering().sort(sort_params.field, sort_params.ascending)
    apply_default_ordering(query_builder)

    # 先构建全部语句，字段路径错误在访问数据库前暴露
    count_query = query_builder.build_count()
    page_query = (
        query_builder
        .offset(pagination_params.offset)
        .limit(pagination_params.limit)
        .build()
    )

    total = (await session.execute(count_query)).scalar_one()
    if total <= pagination_params.offset:
        items: list[Any] = []
    else:
        result = await session.execute(page_query)
        items = list(result.unique().scalars().all())

    logger.debug(
        f"分页查询 {query_builder.model_class.__name__}: "
        f"page={pagination_params.page} size={pagination_params.size} "
        f"total={total} items={len(items)}"
    )
    return PaginationResult.create(items=items, total=total, pagination_params=pagination_params)


__all__ = [
    "PaginationParams",
    "PaginationResult",
    "SortParams",
    "apply_default_ordering",
    "paginate",
]
