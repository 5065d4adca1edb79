"""字段路径解析器测试。"""

from __future__ import annotations

import pytest
from sqlalchemy import select

from aurimyth.persistence_kit.domain.exceptions import InvalidFieldPathError
from aurimyth.persistence_kit.domain.repository.field_path import (
    resolve_field_path,
    resolve_relationship_path,
)
from tests.models import Customer, Employee, Order


class TestResolveFieldPath:
    def test_resolves_direct_column(self):
        resolved = resolve_field_path(Customer, "name")

        assert resolved.column_key == "name"
        assert resolved.is_string
        assert not resolved.is_nested
        assert resolved.canonical_path == "name"

    def test_matching_ignores_case_and_underscores(self):
        assert resolve_field_path(Customer, "createdAt").column_key == "created_at"
        assert resolve_field_path(Customer, "NAME").column_key == "name"

        resolved = resolve_field_path(Order, "Customer.Name")
        assert resolved.canonical_path == "customer.name"
        assert [hop.key for hop in resolved.hops] == ["customer"]
        assert resolved.hops[0].target is Customer

    def test_self_referential_path(self):
        resolved = resolve_field_path(Employee, "manager.manager.name")

        assert [hop.key for hop in resolved.hops] == ["manager", "manager"]
        assert all(hop.target is Employee for hop in resolved.hops)

    def test_non_string_leaf_keeps_natural_type(self):
        assert not resolve_field_path(Order, "amount").is_string
        assert not resolve_field_path(Order, "created_at").is_string

    @pytest.mark.parametrize(
        ("model", "path", "segment"),
        [
            (Customer, "", None),
            (Customer, "   ", None),
            (Order, "customer..name", ""),
            (Customer, "missing", "missing"),
            (Order, "Missing.Field", "Missing"),
            (Order, "customer", "customer"),
            (Customer, "name.length", "name"),
            (Customer, "orders.number", "orders"),
            (Order, "customer.unknown", "unknown"),
        ],
    )
    def test_invalid_paths_raise(self, model, path, segment):
        with pytest.raises(InvalidFieldPathError) as exc_info:
            resolve_field_path(model, path)

        assert exc_info.value.model is model
        assert exc_info.value.segment == segment

    def test_unmapped_class_raises(self):
        class NotMapped:
            name = "x"

        with pytest.raises(InvalidFieldPathError):
            resolve_field_path(NotMapped, "name")

    def test_resolution_is_deterministic(self):
        assert resolve_field_path(Order, "customer.name") == resolve_field_path(Order, "customer.name")


class TestSortKey:
    def test_string_leaf_is_coalesced_and_joined(self):
        resolved = resolve_field_path(Order, "customer.name")

        sql = str(resolved.apply(select(Order), ascending=True))

        assert "LEFT OUTER JOIN" in sql
        assert "coalesce" in sql.lower()
        assert "ASC" in sql

    def test_each_hop_gets_its_own_join(self):
        resolved = resolve_field_path(Employee, "manager.manager.name")

        sql = str(resolved.apply(select(Employee), ascending=False))

        assert sql.count("LEFT OUTER JOIN") == 2
        assert "DESC" in sql

    def test_non_string_leaf_is_not_coalesced(self):
        resolved = resolve_field_path(Order, "amount")

        sql = str(resolved.apply(select(Order)))

        assert "coalesce" not in sql.lower()
        assert "JOIN" not in sql


class TestAccessor:
    def test_missing_relation_and_null_string_read_as_empty(self):
        get_name = resolve_field_path(Order, "customer.name").accessor()

        assert get_name(Order(number="1", customer=None)) == ""
        assert get_name(Order(number="2", customer=Customer(name=None))) == ""
        assert get_name(Order(number="3", customer=Customer(name="bob"))) == "bob"

    def test_non_string_null_stays_none(self):
        get_amount = resolve_field_path(Order, "amount").accessor()

        assert get_amount(Order(number="1", amount=None)) is None
        assert get_amount(Order(number="2", amount=7)) == 7


class TestResolveRelationshipPath:
    def test_resolves_collection_and_nested_relationships(self):
        (orders,) = resolve_relationship_path(Customer, "orders")
        nested = resolve_relationship_path(Customer, "orders.customer")

        assert orders is Customer.orders
        assert [attribute.key for attribute in nested] == ["orders", "customer"]
        assert nested[1].class_ is Order

    def test_column_is_not_a_relationship(self):
        with pytest.raises(InvalidFieldPathError) as exc_info:
            resolve_relationship_path(Customer, "name")

        assert exc_info.value.segment == "name"
