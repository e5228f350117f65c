"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + OrderItems + log) is persisted atomically.

Concurrency control on status changes is two-fold: the service reads
the order with ``select_for_update()`` and ``apply_transition`` writes
with a compare-and-set ``UPDATE`` filtered on status and ``version``.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, F, Max, Q, QuerySet, Sum
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.exceptions import TransitionConflict
from modules.orders.models import Order, OrderItem, OrderLogEntry
from modules.orders.repositories.interfaces import IOrderRepository

if TYPE_CHECKING:
    from modules.accounts.identity import ActingUser

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


def order_search_q(term: str) -> Q:
    """Case-insensitive match on the fields users search orders by."""
    term = term.strip()
    query = (
        Q(customer_name__icontains=term)
        | Q(order_number__icontains=term)
        | Q(external_ref__icontains=term)
        | Q(batch_number__icontains=term)
    )
    try:
        query |= Q(id=UUID(term))
    except ValueError:
        pass
    return query


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``customer_name``, ``delivery_date`` (required)
        - ``items`` (required): list of dicts with ``product_id``,
          ``product_name``, ``quantity``, ``unit_price``
        - ``priority``, ``external_ref``, ``batch_number``, ``status``,
          ``parent`` (optional)
        """
        items = data.get("items", [])
        total = sum(
            (item["quantity"] * item["unit_price"] for item in items),
            Decimal("0.00"),
        )
        order = Order(
            customer_name=data["customer_name"],
            delivery_date=data["delivery_date"],
            external_ref=data.get("external_ref") or "",
            batch_number=data.get("batch_number") or "",
            parent=data.get("parent"),
            total_value=total,
        )
        if data.get("priority"):
            order.priority = data["priority"]
        if data.get("status"):
            order.status = data["status"]
        order.save()

        for position, item_data in enumerate(items):
            OrderItem(
                order=order,
                product_id=item_data["product_id"],
                product_name=item_data["product_name"],
                position=item_data.get("position", position),
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            ).save()

        log = logger.bind(order_id=str(order.id), item_count=len(items))
        log.info("order.persisted", total_value=str(total))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _queryset(self) -> QuerySet:
        return Order.objects.prefetch_related("items__product", "log_entries")

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        ``prefetch_related`` loads items, items -> product and the log
        in separate batched queries.  Returns ``None`` for non-existent
        or invalid IDs.
        """
        try:
            return self._queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must run inside ``transaction.atomic``.  Returns ``None`` for
        non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items__product", "log_entries")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
    ) -> QuerySet:
        """List orders newest first.

        ``filters`` are ORM lookups (``status__in``, ``priority`` ...);
        ``search`` matches customer name, order number, external
        reference, batch number or the exact id.
        """
        queryset = self._queryset()
        if filters:
            queryset = queryset.filter(**filters)
        if search and search.strip():
            queryset = queryset.filter(order_search_q(search))
        return queryset

    def summary(self) -> Dict[str, Any]:
        by_status = {
            row["status"]: row["count"]
            for row in Order.objects.values("status").annotate(count=Count("id"))
        }
        by_priority = {
            row["priority"]: row["count"]
            for row in Order.objects.values("priority").annotate(count=Count("id"))
        }
        totals = Order.objects.aggregate(count=Count("id"), value=Sum("total_value"))
        return {
            "total_orders": totals["count"] or 0,
            # SQLite sums decimals without their scale.
            "total_value": Decimal(totals["value"] or 0).quantize(Decimal("0.01")),
            "by_status": by_status,
            "by_priority": by_priority,
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order and its pending events."""
        entity.save()
        event_count = self.record_events(entity)
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    @transaction.atomic
    def apply_transition(
        self,
        order: Order,
        new_status: str,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> Order:
        """Compare-and-set the status, bump ``version`` and write ``fields``.

        The ``UPDATE`` is filtered on the status and version the caller
        read; zero affected rows means another transition won the race.
        """
        fields = dict(fields or {})
        updated = Order.objects.filter(
            pk=order.pk,
            status=order.status,
            version=order.version,
        ).update(
            status=new_status,
            version=F("version") + 1,
            updated_at=timezone.now(),
            **fields,
        )
        if updated == 0:
            logger.warning(
                "order.transition_conflict",
                order_id=str(order.id),
                expected_status=order.status,
                expected_version=order.version,
            )
            raise TransitionConflict(
                f"Pedido {order.order_number} foi alterado por outro usuário. "
                "Atualize e tente novamente."
            )

        order.status = new_status
        order.version += 1
        for name, value in fields.items():
            setattr(order, name, value)
        order._persisted_status = new_status
        return order

    @transaction.atomic
    def append_log_entry(
        self,
        order: Order,
        stage: str,
        actor: ActingUser,
        note: str = "",
        previous_stage: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> OrderLogEntry:
        """Append the newest log entry (sequence = current max + 1)."""
        last = OrderLogEntry.objects.filter(order=order).aggregate(
            last=Max("sequence")
        )["last"]
        entry = OrderLogEntry(
            order=order,
            sequence=(last or 0) + 1,
            stage=stage,
            previous_stage=previous_stage,
            timestamp=timestamp or timezone.now(),
            user_id=actor.id,
            user_name=actor.name,
            note=note,
            changes=_normalize_for_json(changes or {}),
        )
        entry.save()
        return entry

    @transaction.atomic
    def copy_log(self, source: Order, target: Order) -> int:
        """Copy the lineage of ``source`` onto ``target``.

        Copies are new rows keeping the original sequence, timestamps and
        actors, so the target's log reads exactly like the source's.
        """
        copies = [
            OrderLogEntry(
                order=target,
                sequence=entry.sequence,
                stage=entry.stage,
                previous_stage=entry.previous_stage,
                timestamp=entry.timestamp,
                user_id=entry.user_id,
                user_name=entry.user_name,
                note=entry.note,
                changes=entry.changes,
            )
            for entry in OrderLogEntry.objects.filter(order=source).order_by(
                "sequence"
            )
        ]
        OrderLogEntry.objects.bulk_create(copies)
        return len(copies)

    @transaction.atomic
    def update_items(
        self, order: Order, changes: Mapping[str, Mapping[str, Any]]
    ) -> None:
        for item in OrderItem.objects.filter(order=order):
            item_changes = changes.get(str(item.id))
            if not item_changes:
                continue
            for name, value in item_changes.items():
                setattr(item, name, value)
            item.save(update_fields=[*item_changes, "subtotal"])

    def record_events(self, order: Order) -> int:
        events = order.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic=OUTBOX_TOPIC,
            )
        order.clear_domain_events()
        return len(events)


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
