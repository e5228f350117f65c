"""Order, OrderItem, and OrderLogEntry models.

Business rules implemented:
- Status only changes through ``OrderService`` (compare-and-set update in
  the repository); saving an instance whose status was edited in memory
  raises ``InvalidOrderStatus``.
- ``total_value`` is computed once at creation and never recomputed.
- ``OrderItem`` snapshots product name and price at order time.
- ``OrderLogEntry`` rows are append-only: updates and deletes raise
  ``AuditLogImmutable``.
- ``version`` guards concurrent transitions (optimistic concurrency).
- Order number auto-generated as human-readable identifier.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    INITIAL_STATUS,
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    OrderStatus,
    Priority,
    get_transition,
)
from modules.orders.exceptions import AuditLogImmutable, InvalidOrderStatus
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` (``ORD-YYYYMMDD-XXXXXX``) is generated on first save;
    the UUIDv7 ``id`` is used for all internal references and API look-ups.
    ``parent`` points to the order a remainder was split from.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    external_ref: models.CharField = models.CharField(
        max_length=64, blank=True, default=""
    )
    batch_number: models.CharField = models.CharField(
        max_length=32, blank=True, default=""
    )
    customer_name: models.CharField = models.CharField(max_length=255)
    status: models.CharField = models.CharField(
        max_length=24,
        choices=OrderStatus.choices,
        default=INITIAL_STATUS,
    )
    priority: models.CharField = models.CharField(
        max_length=8,
        choices=Priority.choices,
        default=Priority.MEDIA,
    )
    delivery_date: models.DateField = models.DateField()
    total_value: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    invoice_number: models.CharField = models.CharField(
        max_length=64, blank=True, default=""
    )
    parent: models.ForeignKey = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="remainders",
    )
    version: models.PositiveIntegerField = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._persisted_status = instance.__dict__.get("status")
        return instance

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_blocked(self) -> bool:
        return self.status == OrderStatus.REPROVADO

    def can_transition_to(self, new_status: str) -> bool:
        return get_transition(self.status, new_status) is not None

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        persisted_status = getattr(self, "_persisted_status", None)
        if persisted_status is not None and persisted_status != self.status:
            raise InvalidOrderStatus(
                "Order status only changes through OrderService transitions."
            )
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)
        self._persisted_status = self.status

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an order.

    ``quantity`` starts as the requested amount; a partial delivery
    rewrites it to the produced amount (possibly zero) and the remainder
    moves to a new order.  ``unit_price`` and ``product_name`` never
    follow later changes to the product record.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name: models.CharField = models.CharField(max_length=255)
    position: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        default=0
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField()
    quantity_produced: models.PositiveIntegerField = models.PositiveIntegerField(
        null=True, blank=True
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "product"],
                name="order_items_unique_product",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity}"


class OrderLogEntry(models.Model):
    """Append-only audit trail entry.

    ``sequence`` is strictly increasing per order; the log is read newest
    first, so the creation entry is always the tail.  ``changes`` holds the
    structured fields attached alongside the transition.
    """

    id = models.BigAutoField(primary_key=True)
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="log_entries",
    )
    sequence: models.PositiveIntegerField = models.PositiveIntegerField()
    stage: models.CharField = models.CharField(
        max_length=24,
        choices=OrderStatus.choices,
    )
    previous_stage: models.CharField = models.CharField(  # noqa: DJ01
        max_length=24,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    timestamp: models.DateTimeField = models.DateTimeField(default=timezone.now)
    user_id: models.CharField = models.CharField(max_length=64)
    user_name: models.CharField = models.CharField(max_length=150)
    note: models.TextField = models.TextField(blank=True, default="")
    changes: models.JSONField = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "order_log_entries"
        ordering = ["-sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "sequence"],
                name="order_log_unique_sequence",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise AuditLogImmutable(f"Log entry {self.pk} cannot be changed.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise AuditLogImmutable(f"Log entry {self.pk} cannot be deleted.")

    def __str__(self) -> str:
        return f"{self.order_id} #{self.sequence}: {self.stage}"
