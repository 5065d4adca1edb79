"""审计操作人解析测试。"""

from __future__ import annotations

from aurimyth.persistence_kit.domain.actor import (
    actor_scope,
    current_actor,
    resolve_actor,
    set_current_actor,
)


def test_resolution_priority():
    with actor_scope("scoped"):
        assert resolve_actor("explicit", lambda: "provided", "default") == "explicit"
        assert resolve_actor(None, lambda: "provided", "default") == "provided"
        assert resolve_actor(None, None, "default") == "scoped"

    assert resolve_actor(None, None, "default") == "default"
    assert resolve_actor() is None


def test_empty_values_count_as_unset():
    assert resolve_actor("", lambda: "", "default") == "default"
    assert resolve_actor(None, lambda: None, None) is None


def test_scope_restores_previous_actor():
    with actor_scope("outer"):
        with actor_scope("inner") as actor:
            assert actor == "inner"
            assert current_actor() == "inner"
        assert current_actor() == "outer"

    assert current_actor() is None


def test_set_current_actor():
    with actor_scope(None):
        set_current_actor("middleware")
        assert current_actor() == "middleware"

    assert current_actor() is None
