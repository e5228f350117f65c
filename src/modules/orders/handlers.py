"""Event handlers for order workflow events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCreated,
    OrderRejected,
    OrderSplit,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            f"Processando evento de criação do pedido {event.aggregate_id}",
            order_id=str(event.aggregate_id),
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            f"Pedido {event.aggregate_id} movido para "
            f"{event.payload.get('new_status')}",
            order_id=str(event.aggregate_id),
            old_status=event.payload.get("old_status"),
            new_status=event.payload.get("new_status"),
        )


class OrderRejectedHandler(IEventHandler[OrderRejected]):
    def handle(self, event: OrderRejected) -> None:
        logger.warning(
            f"Pedido {event.aggregate_id} bloqueado pela qualidade",
            order_id=str(event.aggregate_id),
            reason=event.payload.get("reason"),
        )


class OrderSplitHandler(IEventHandler[OrderSplit]):
    def handle(self, event: OrderSplit) -> None:
        logger.info(
            f"Entrega parcial do pedido {event.aggregate_id}",
            order_id=str(event.aggregate_id),
            remainder_id=event.payload.get("remainder_id"),
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_rejected_handler = OrderRejectedHandler()
order_split_handler = OrderSplitHandler()
