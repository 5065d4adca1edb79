"""实体契约与模型测试。"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta, timezone

from aurimyth.persistence_kit.domain.models import (
    ENTITY_CONTRACT_FIELDS,
    UTCDateTime,
    entity_id,
    is_entity_class,
    is_versioned,
    missing_contract_fields,
)
from tests.models import Customer, Invoice, Order, Tag


def test_entity_subclasses_satisfy_contract():
    assert is_entity_class(Customer)
    assert is_entity_class(Order)
    assert is_entity_class(Invoice)
    assert missing_contract_fields(Customer) == []


def test_plain_model_reports_missing_contract_fields():
    assert not is_entity_class(Tag)
    assert missing_contract_fields(Tag) == [
        name for name in ENTITY_CONTRACT_FIELDS if name != "id"
    ]


def test_versioned_detection():
    assert is_versioned(Invoice)
    assert not is_versioned(Customer)


def test_soft_delete_flag_is_one_way_marker():
    customer = Customer(name="alice")
    customer.deleted = False
    assert not customer.is_deleted

    customer.mark_deleted()

    assert customer.is_deleted
    assert customer.deleted is True


def test_utc_datetime_treats_naive_values_as_utc():
    column_type = UTCDateTime()
    naive = datetime(2024, 1, 2, 3, 4, 5)

    bound = column_type.process_bind_param(naive, None)

    assert bound == naive.replace(tzinfo=UTC)


def test_utc_datetime_converts_aware_values_to_utc():
    column_type = UTCDateTime()
    shanghai = timezone(timedelta(hours=8))
    value = datetime(2024, 1, 2, 8, 0, tzinfo=shanghai)

    bound = column_type.process_bind_param(value, None)
    loaded = column_type.process_result_value(datetime(2024, 1, 2, 0, 0), None)

    assert bound.tzinfo == UTC
    assert bound.hour == 0
    assert loaded == datetime(2024, 1, 2, 0, 0, tzinfo=UTC)
    assert column_type.process_bind_param(None, None) is None


def test_entity_repr_contains_id():
    customer = Customer(name="bob")
    assert repr(customer).startswith("<Customer id=")


def test_entity_id_reads_without_loading():
    supplied = uuid.uuid4()

    assert entity_id(Customer(id=supplied, name="a")) == supplied
    assert entity_id(Customer(name="b")) is None


async def test_entity_id_survives_expiry(session, customer_repo):
    customer = await customer_repo.add(Customer(name="a"))
    original_id = customer.id

    session.expire(customer)

    assert entity_id(customer) == original_id
    assert repr(customer) == f"<Customer id={original_id}>"
