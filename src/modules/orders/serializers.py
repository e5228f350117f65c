"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, Priority, Role
from modules.orders.models import Order, OrderItem, OrderLogEntry

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the sales intake payload."""

    customer_name = serializers.CharField(max_length=255)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    delivery_date = serializers.DateField()
    priority = serializers.ChoiceField(
        choices=Priority.choices, required=False, default=Priority.MEDIA
    )
    external_ref = serializers.CharField(
        max_length=64, required=False, default="", allow_blank=True
    )


class TransitionSerializer(serializers.Serializer):
    """Fields shared by every transition request."""

    expected_status = serializers.ChoiceField(
        choices=OrderStatus.choices, required=False, allow_null=True
    )
    view_role = serializers.ChoiceField(
        choices=Role.choices, required=False, allow_null=True
    )


class AdvanceOrderSerializer(TransitionSerializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    batch_number = serializers.CharField(max_length=32, required=False)
    invoice_number = serializers.CharField(max_length=64, required=False)


class ProducedQuantitySerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity_produced = serializers.IntegerField(min_value=0)


class SplitOrderSerializer(TransitionSerializer):
    produced = ProducedQuantitySerializer(many=True, allow_empty=True)


class ProductionReportSerializer(SplitOrderSerializer):
    confirm_partial = serializers.BooleanField(required=False, default=False)


class RejectOrderSerializer(TransitionSerializer):
    reason = serializers.CharField(allow_blank=True, trim_whitespace=True)


class ObservationSerializer(TransitionSerializer):
    observation = serializers.CharField(
        required=False, default="", allow_blank=True
    )


class InvoiceSerializer(TransitionSerializer):
    invoice_number = serializers.CharField(max_length=64, allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "position",
            "quantity",
            "quantity_produced",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class OrderLogEntrySerializer(serializers.ModelSerializer):
    """Read serializer for audit log entries (newest first)."""

    class Meta:
        model = OrderLogEntry
        fields = [
            "sequence",
            "stage",
            "previous_stage",
            "timestamp",
            "user_id",
            "user_name",
            "note",
            "changes",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and log."""

    items = OrderItemSerializer(many=True, read_only=True)
    logs = OrderLogEntrySerializer(source="log_entries", many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "external_ref",
            "batch_number",
            "invoice_number",
            "customer_name",
            "status",
            "priority",
            "delivery_date",
            "total_value",
            "parent_id",
            "version",
            "created_at",
            "updated_at",
            "items",
            "logs",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists and department queues."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "external_ref",
            "batch_number",
            "customer_name",
            "status",
            "priority",
            "delivery_date",
            "total_value",
            "version",
            "created_at",
        ]
        read_only_fields = fields
