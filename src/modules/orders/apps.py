from django.apps import AppConfig
from django.conf import settings
from django.core import checks

REPOSITORY_BACKENDS = ("django", "memory")


def check_repository_backend(app_configs=None, **kwargs):
    backend = getattr(settings, "ORDERS_REPOSITORY_BACKEND", "django")
    if backend in REPOSITORY_BACKENDS:
        return []
    return [
        checks.Error(
            f"Unknown ORDERS_REPOSITORY_BACKEND: {backend!r}",
            hint=f"Use one of {', '.join(REPOSITORY_BACKENDS)}.",
            id="orders.E001",
        )
    ]


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"
    verbose_name = "Shipment orders"

    def ready(self) -> None:
        from modules.orders.repositories.in_memory import in_memory_backend

        checks.register(check_repository_backend)
        # Process-wide store for ORDERS_REPOSITORY_BACKEND=memory.
        self.memory_backend = in_memory_backend()
