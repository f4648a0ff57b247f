"""Order URL configuration.

``/orders/``, ``/orders/{order_id}/`` and ``/orders/{order_id}/cancel/``.
"""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.orders.views import OrderViewSet

router = SimpleRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
