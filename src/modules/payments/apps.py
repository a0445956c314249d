from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.payments"
    label = "payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        from modules.payments import events, handlers
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe_many(
            {
                events.PaymentIntentCreated: handlers.payment_intent_created_handler,
                events.PaymentSucceeded: handlers.payment_succeeded_handler,
                events.PaymentFailed: handlers.payment_failed_handler,
                events.PaymentRefunded: handlers.payment_refunded_handler,
            }
        )
