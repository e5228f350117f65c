"""Unit tests for OrderDjangoRepository.

Covers:
- Aggregate creation (Order + OrderItems) atomically.
- Read with prefetch_related, invalid and unknown IDs.
- Compare-and-set status update.
- Log append and lineage copy.
- Search and summary.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.orders.constants import OrderStatus, Priority, Role
from modules.orders.events import OrderCreated
from modules.orders.exceptions import TransitionConflict
from modules.orders.models import Order, OrderItem, OrderLogEntry
from modules.orders.repositories.django_repository import (
    OUTBOX_TOPIC,
    OrderDjangoRepository,
)
from modules.orders.repositories.interfaces import IOrderRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return OrderDjangoRepository()


@pytest.fixture()
def order_data(product_a, product_b):
    return {
        "customer_name": "Construtora Lima",
        "delivery_date": date(2024, 11, 30),
        "priority": Priority.ALTA,
        "external_ref": "PO-55",
        "items": [
            {
                "product_id": product_a.id,
                "product_name": product_a.name,
                "quantity": 2,
                "unit_price": product_a.price,
            },
            {
                "product_id": product_b.id,
                "product_name": product_b.name,
                "quantity": 1,
                "unit_price": product_b.price,
            },
        ],
    }


# ===========================================================================
# Instantiation
# ===========================================================================


class TestRepositoryInstantiation:
    def test_is_instance_of_interface(self):
        assert isinstance(OrderDjangoRepository(), IOrderRepository)


# ===========================================================================
# create
# ===========================================================================


class TestCreate:
    def test_creates_order_with_items(self, repo, order_data):
        order = repo.create(order_data)

        assert order.order_number.startswith("ORD-")
        assert order.status == OrderStatus.ANALISE_PCP
        assert order.priority == Priority.ALTA
        assert order.external_ref == "PO-55"
        assert OrderItem.objects.filter(order=order).count() == 2

    def test_total_is_sum_of_items(self, repo, order_data):
        order = repo.create(order_data)
        assert order.total_value == Decimal("250.00")

    def test_positions_follow_input_order(self, repo, order_data, product_a):
        order = repo.create(order_data)
        items = list(OrderItem.objects.filter(order=order))
        assert [i.position for i in items] == [0, 1]
        assert items[0].product_id == product_a.id

    def test_remainder_fields(self, repo, order_data):
        parent = repo.create(order_data)
        child = repo.create(
            {
                **order_data,
                "status": OrderStatus.EM_PRODUCAO,
                "batch_number": "LOTE-202401010800",
                "parent": parent,
            }
        )
        assert child.status == OrderStatus.EM_PRODUCAO
        assert child.batch_number == "LOTE-202401010800"
        assert child.parent == parent
        assert list(parent.remainders.all()) == [child]


# ===========================================================================
# get_by_id / get_for_update
# ===========================================================================


class TestGet:
    def test_get_by_id(self, repo, order_data):
        order = repo.create(order_data)
        fetched = repo.get_by_id(str(order.id))
        assert fetched == order
        assert len(fetched.items.all()) == 2

    def test_unknown_id(self, repo):
        assert repo.get_by_id(str(uuid4())) is None

    def test_invalid_id(self, repo):
        assert repo.get_by_id("not-a-uuid") is None

    def test_get_for_update_invalid_id(self, repo):
        assert repo.get_for_update("not-a-uuid") is None


# ===========================================================================
# apply_transition
# ===========================================================================


class TestApplyTransition:
    def test_updates_status_version_and_fields(self, repo, order_data):
        order = repo.create(order_data)
        repo.apply_transition(
            order, OrderStatus.EM_PRODUCAO, {"batch_number": "LOTE-202401010800"}
        )

        assert order.status == OrderStatus.EM_PRODUCAO
        assert order.version == 1
        stored = Order.objects.get(pk=order.pk)
        assert stored.status == OrderStatus.EM_PRODUCAO
        assert stored.version == 1
        assert stored.batch_number == "LOTE-202401010800"

    def test_stale_copy_conflicts(self, repo, order_data):
        order = repo.create(order_data)
        stale = Order.objects.get(pk=order.pk)
        repo.apply_transition(order, OrderStatus.EM_PRODUCAO)

        with pytest.raises(TransitionConflict):
            repo.apply_transition(stale, OrderStatus.EM_PRODUCAO)
        assert Order.objects.get(pk=order.pk).version == 1

    def test_in_memory_order_can_still_be_saved(self, repo, order_data):
        order = repo.create(order_data)
        repo.apply_transition(order, OrderStatus.EM_PRODUCAO)
        order.customer_name = "Construtora Lima S.A."
        order.save()
        assert Order.objects.get(pk=order.pk).customer_name == "Construtora Lima S.A."


# ===========================================================================
# Log
# ===========================================================================


class TestLog:
    def test_sequence_increases(self, repo, order_data, actor):
        order = repo.create(order_data)
        first = repo.append_log_entry(order, OrderStatus.CRIADO, actor(Role.VENDAS))
        second = repo.append_log_entry(
            order,
            OrderStatus.ANALISE_PCP,
            actor(Role.VENDAS),
            previous_stage=OrderStatus.CRIADO,
        )
        assert (first.sequence, second.sequence) == (1, 2)
        assert list(order.log_entries.all()) == [second, first]

    def test_changes_are_json_normalized(self, repo, order_data, actor):
        order = repo.create(order_data)
        ref = uuid4()
        entry = repo.append_log_entry(
            order,
            OrderStatus.CRIADO,
            actor(Role.VENDAS),
            changes={"ref": ref, "value": Decimal("1.50")},
        )
        entry.refresh_from_db()
        assert entry.changes == {"ref": str(ref), "value": "1.50"}

    def test_copy_log_keeps_sequence_and_actor(self, repo, order_data, actor):
        source = repo.create(order_data)
        target = repo.create(order_data)
        repo.append_log_entry(source, OrderStatus.CRIADO, actor(Role.VENDAS), note="a")
        repo.append_log_entry(source, OrderStatus.ANALISE_PCP, actor(Role.PCP), note="b")

        copied = repo.copy_log(source, target)

        assert copied == 2
        rows = list(target.log_entries.values_list("sequence", "note", "user_id"))
        assert rows == [(2, "b", "user-pcp"), (1, "a", "user-vendas")]
        assert OrderLogEntry.objects.filter(order=source).count() == 2


# ===========================================================================
# Outbox
# ===========================================================================


class TestRecordEvents:
    def test_events_become_outbox_rows(self, repo, order_data):
        order = repo.create(order_data)
        order.add_domain_event(
            OrderCreated(aggregate_id=order.id, payload={"total_value": Decimal("9.90")})
        )

        assert repo.record_events(order) == 1

        row = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert row.event_type == "OrderCreated"
        assert row.topic == OUTBOX_TOPIC
        assert row.status == EventStatus.PENDING
        assert row.payload["payload"] == {"total_value": "9.90"}
        assert order.domain_events == []


# ===========================================================================
# list / summary
# ===========================================================================


class TestListAndSummary:
    def test_search_matches_customer_and_reference(self, repo, order_data):
        order = repo.create(order_data)
        repo.create({**order_data, "customer_name": "Outra", "external_ref": ""})

        assert list(repo.list(search="lima")) == [order]
        assert list(repo.list(search="po-55")) == [order]
        assert list(repo.list(search=str(order.id))) == [order]

    def test_filters(self, repo, order_data):
        repo.create(order_data)
        assert repo.list({"status__in": [OrderStatus.EM_PRODUCAO]}).count() == 0
        assert repo.list({"status__in": [OrderStatus.ANALISE_PCP]}).count() == 1

    def test_summary(self, repo, order_data):
        repo.create(order_data)
        repo.create({**order_data, "priority": Priority.BAIXA})

        data = repo.summary()

        assert data["total_orders"] == 2
        assert data["total_value"] == Decimal("500.00")
        assert data["by_status"] == {OrderStatus.ANALISE_PCP: 2}
        assert data["by_priority"] == {Priority.ALTA: 1, Priority.BAIXA: 1}

    def test_empty_summary(self, repo):
        data = repo.summary()
        assert data["total_orders"] == 0
        assert data["total_value"] == Decimal("0.00")
