from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCreated,
            OrderRejected,
            OrderSplit,
            OrderStatusChanged,
        )
        from modules.orders.handlers import (
            order_created_handler,
            order_rejected_handler,
            order_split_handler,
            order_status_changed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
        event_bus.subscribe(OrderRejected, order_rejected_handler)
        event_bus.subscribe(OrderSplit, order_split_handler)
