"""声明式基类与跨数据库类型装饰器。"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """始终以 UTC 带时区 datetime 读写的类型装饰器。

    自动适配不同数据库：
    - PostgreSQL 等原生支持时区的数据库：写入/读取 timestamptz
    - SQLite 等会丢弃时区的数据库：读取时补上 UTC 时区

    写入时朴素 datetime 视为 UTC。
    """

    impl = DateTime
    cache_ok = True

    def __init__(self) -> None:
        super().__init__(timezone=True)

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return value
        if not isinstance(value, datetime):
            raise TypeError(f"Expected datetime, got {type(value)}")
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 声明式基类"""


__all__ = [
    "Base",
    "UTCDateTime",
]
