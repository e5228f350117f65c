"""Unit tests for Order DRF Serializers.

Covers:
- CreateOrderSerializer: nested items validation.
- Transition input serializers: optional concurrency and emulation fields.
- OrderSerializer: nested items and newest-first log.
- OrderListSerializer: lightweight list output.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.serializers import (
    AdvanceOrderSerializer,
    CreateOrderSerializer,
    InvoiceSerializer,
    OrderListSerializer,
    OrderSerializer,
    ProductionReportSerializer,
    RejectOrderSerializer,
)

pytestmark = pytest.mark.unit


# ===========================================================================
# Input
# ===========================================================================


class TestCreateOrderSerializer:
    def _payload(self, **overrides):
        payload = {
            "customer_name": "Metalúrgica Souza",
            "delivery_date": "2024-10-01",
            "items": [{"product_id": str(uuid4()), "quantity": 2}],
        }
        payload.update(overrides)
        return payload

    def test_valid(self):
        serializer = CreateOrderSerializer(data=self._payload())
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["priority"] == "MEDIA"
        assert serializer.validated_data["external_ref"] == ""

    def test_empty_items(self):
        serializer = CreateOrderSerializer(data=self._payload(items=[]))
        assert not serializer.is_valid()
        assert "items" in serializer.errors

    def test_zero_quantity(self):
        items = [{"product_id": str(uuid4()), "quantity": 0}]
        serializer = CreateOrderSerializer(data=self._payload(items=items))
        assert not serializer.is_valid()

    def test_unknown_priority(self):
        serializer = CreateOrderSerializer(data=self._payload(priority="URGENTE"))
        assert not serializer.is_valid()
        assert "priority" in serializer.errors

    def test_missing_delivery_date(self):
        payload = self._payload()
        del payload["delivery_date"]
        serializer = CreateOrderSerializer(data=payload)
        assert not serializer.is_valid()


class TestTransitionSerializers:
    def test_advance_minimal(self):
        serializer = AdvanceOrderSerializer(data={"status": "EM_MONTAGEM"})
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["notes"] == ""
        assert "batch_number" not in serializer.validated_data

    def test_advance_rejects_unknown_status(self):
        serializer = AdvanceOrderSerializer(data={"status": "CANCELADO"})
        assert not serializer.is_valid()

    def test_view_role_and_expected_status(self):
        serializer = AdvanceOrderSerializer(
            data={
                "status": "EM_MONTAGEM",
                "expected_status": "QUALIDADE_PENDENTE",
                "view_role": "QUALIDADE",
            }
        )
        assert serializer.is_valid(), serializer.errors

    def test_production_report_defaults(self):
        serializer = ProductionReportSerializer(
            data={"produced": [{"product_id": str(uuid4()), "quantity_produced": 0}]}
        )
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["confirm_partial"] is False

    def test_negative_production(self):
        serializer = ProductionReportSerializer(
            data={"produced": [{"product_id": str(uuid4()), "quantity_produced": -1}]}
        )
        assert not serializer.is_valid()

    def test_blank_reason_reaches_the_service(self):
        serializer = RejectOrderSerializer(data={"reason": "  "})
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["reason"] == ""

    def test_invoice_number_is_required_key(self):
        assert not InvoiceSerializer(data={}).is_valid()


# ===========================================================================
# Output
# ===========================================================================


class TestOrderSerializer:
    def test_output(self, order_at):
        order = order_at(OrderStatus.EM_PRODUCAO)
        data = OrderSerializer(order).data

        assert data["order_number"] == order.order_number
        assert data["status"] == "EM_PRODUCAO"
        assert data["batch_number"] == order.batch_number
        assert data["total_value"] == "1200.00"
        assert data["parent_id"] is None
        assert data["version"] == 1
        assert [i["product_sku"] for i in data["items"]] == ["PAINEL-400", "QUADRO-CMD"]

    def test_log_is_newest_first(self, order_at):
        order = order_at(OrderStatus.EM_PRODUCAO)
        logs = OrderSerializer(order).data["logs"]
        assert [entry["stage"] for entry in logs] == [
            "EM_PRODUCAO",
            "ANALISE_PCP",
            "CRIADO",
        ]
        assert logs[0]["changes"] == {"batch_number": order.batch_number}

    def test_list_output_is_lightweight(self, create_order):
        data = OrderListSerializer(create_order()).data
        assert "items" not in data
        assert "logs" not in data
        assert data["status"] == "ANALISE_PCP"
