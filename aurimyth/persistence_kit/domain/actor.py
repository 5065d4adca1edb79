"""审计操作人解析。

审计字段（created_by / modified_by）的操作人按以下优先级解析：
1. 调用时显式传入的 actor
2. 仓储构造时注入的 actor_provider
3. 当前上下文中通过 actor_scope() 设置的操作人
4. RepositorySettings.default_actor

操作人保存在 ContextVar 中，每个请求/任务拥有独立的值，不会在并发调用之间串扰。

用法:
    async with session.begin():
        with actor_scope("alice"):
            await repo.add(customer)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar

ActorProvider = Callable[[], str | None]

_current_actor: ContextVar[str | None] = ContextVar("current_actor", default=None)


def current_actor() -> str | None:
    """获取当前上下文的操作人。"""
    return _current_actor.get()


def set_current_actor(actor: str | None) -> None:
    """设置当前上下文的操作人（通常由请求中间件调用）。"""
    _current_actor.set(actor)


@contextmanager
def actor_scope(actor: str | None) -> Iterator[str | None]:
    """在代码块内临时指定操作人，退出时恢复。"""
    token = _current_actor.set(actor)
    try:
        yield actor
    finally:
        _current_actor.reset(token)


def resolve_actor(
    override: str | None = None,
    provider: ActorProvider | None = None,
    default: str | None = None,
) -> str | None:
    """按优先级解析操作人。空字符串视为未指定。"""
    if override:
        return override
    if provider is not None:
        actor = provider()
        if actor:
            return actor
    return current_actor() or default


__all__ = [
    "ActorProvider",
    "actor_scope",
    "current_actor",
    "resolve_actor",
    "set_current_actor",
]
