"""实体功能 Mixins (按需组合)。

设计理念：
1. 组合优于继承：使用 Mixin 模式，按需组合功能。
2. 类型安全：完全采用 Mapped[] 类型注解。
3. 审计字段由仓储统一写入，模型本身不做隐式时间戳（不依赖 server_default / onupdate），
   保证 created_at 与 modified_at 在同一次变更中取同一时刻。
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import Boolean, Integer, String, false, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import Uuid as SQLAlchemyUuid

from .base import UTCDateTime


class UUIDMixin:
    """UUID 主键 Mixin

    主键由仓储在创建时生成（调用方显式指定的除外），这里的 default 只兜底
    绕过仓储直接写入 session 的情况。
    """

    id: Mapped[uuid.UUID] = mapped_column(
        SQLAlchemyUuid(as_uuid=True),  # 2.0 会自动适配 PG(uuid) 和其他数据库(char(32))
        primary_key=True,
        default=uuid.uuid4,
        sort_order=-1,
        comment="UUID主键",
    )


class AuditMixin:
    """审计字段 Mixin：创建/修改时间与操作人"""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        index=True,
        sort_order=90,
        comment="创建时间(UTC)",
    )

    created_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        sort_order=91,
        comment="创建人",
    )

    modified_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        sort_order=92,
        comment="最后修改时间(UTC)",
    )

    modified_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        sort_order=93,
        comment="最后修改人",
    )


class SoftDeleteMixin:
    """软删除 Mixin

    - deleted = False: 未删除
    - deleted = True: 已删除（单向，不提供恢复）
    """

    deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
        index=True,
        sort_order=98,
        comment="软删除标记",
    )

    @property
    def is_deleted(self) -> bool:
        """判断是否已删除。"""
        return bool(self.deleted)

    def mark_deleted(self) -> None:
        """标记为已删除。"""
        self.deleted = True


class VersionMixin:
    """乐观锁版本号 Mixin

    版本号由仓储在每次变更时递增并校验，版本不一致时抛出 VersionConflictError。
    """

    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        server_default=text("1"),
        nullable=False,
        sort_order=99,
        comment="乐观锁版本号",
    )


__all__ = [
    "AuditMixin",
    "SoftDeleteMixin",
    "UUIDMixin",
    "VersionMixin",
]
