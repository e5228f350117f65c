"""Tasks assíncronas do módulo de pedidos."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


def event_from_outbox(row: OutboxEvent) -> DomainEvent:
    """Rebuild the domain event stored in an outbox row.

    Raises:
        LookupError: no handler subscribed for ``row.event_type``.
    """
    event_class = event_bus.event_type(row.event_type)
    if event_class is None:
        raise LookupError(f"Evento sem handler registrado: {row.event_type}")
    data = row.payload
    return event_class(
        aggregate_id=UUID(row.aggregate_id),
        payload=data.get("payload", {}),
        event_id=UUID(data["event_id"]),
        occurred_on=datetime.fromisoformat(data["occurred_on"]),
    )


@shared_task(name="orders.relay_outbox_events")
def relay_outbox_events(batch_size: int | None = None) -> dict[str, int]:
    """Publish pending (or previously failed) outbox events on the event bus.

    Rows are locked with ``skip_locked`` so concurrent workers never relay
    the same event twice.  Rows that exhausted ``OUTBOX_MAX_RETRIES`` stay
    ``FAILED``.
    """
    batch_size = batch_size or settings.OUTBOX_RELAY_BATCH_SIZE
    published = failed = 0

    with transaction.atomic():
        rows = list(
            OutboxEvent.objects.select_for_update(skip_locked=True)
            .filter(
                status__in=[EventStatus.PENDING, EventStatus.FAILED],
                retry_count__lt=settings.OUTBOX_MAX_RETRIES,
            )
            .order_by("created_at")[:batch_size]
        )
        for row in rows:
            log = logger.bind(outbox_id=str(row.id), event_type=row.event_type)
            try:
                event_bus.publish(event_from_outbox(row))
            except Exception as exc:
                log.error("outbox.relay_failed", error=str(exc))
                row.mark_as_failed(str(exc))
                failed += 1
                continue
            row.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
