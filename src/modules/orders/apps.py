from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"
    verbose_name = "Orders"

    def ready(self) -> None:
        from modules.orders import events, handlers
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe_many(
            {
                events.OrderCreated: handlers.order_created_handler,
                events.OrderCancelled: handlers.order_cancelled_handler,
                events.OrderStatusChanged: handlers.order_status_changed_handler,
                events.GuestOrderConverted: handlers.guest_order_converted_handler,
            }
        )
