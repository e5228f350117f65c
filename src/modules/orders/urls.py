"""Order workflow routes.

- ``orders/``: list (filters, search, ordering) and sales intake.
- ``orders/summary/`` and ``orders/queue/<ROLE>/``: management report and
  department queues.
- ``orders/<id>/<action>/``: department actions (batch, production,
  split, reject, return-to-quality, finish-assembly, invoice) and the
  generic ``advance``, which also releases blocked orders.
"""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.orders.views import OrderViewSet

router = SimpleRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
