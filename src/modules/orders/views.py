"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.serializers import Serializer
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.identity import acting_user_from
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.constants import BATCH_NUMBER, INVOICE_NUMBER, Role
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    ProducedQuantityDTO,
)
from modules.orders.exceptions import (
    DepartmentPermissionDenied,
    OrderError,
    OrderNotFound,
    ProductNotFound,
    TransitionConflict,
    ValidationFailed,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdvanceOrderSerializer,
    CreateOrderSerializer,
    InvoiceSerializer,
    ObservationSerializer,
    OrderListSerializer,
    OrderSerializer,
    ProductionReportSerializer,
    RejectOrderSerializer,
    SplitOrderSerializer,
    TransitionSerializer,
)
from modules.orders.services import OrderService, SplitResult
from modules.products.repositories.django_repository import ProductDjangoRepository

_ERROR_STATUS = (
    (OrderNotFound, status.HTTP_404_NOT_FOUND),
    (ProductNotFound, status.HTTP_404_NOT_FOUND),
    (DepartmentPermissionDenied, status.HTTP_403_FORBIDDEN),
    (TransitionConflict, status.HTTP_409_CONFLICT),
    (ValidationFailed, status.HTTP_400_BAD_REQUEST),
)

TRANSITION_ACTIONS = {
    "advance",
    "batch",
    "production",
    "split",
    "reject",
    "return_to_quality",
    "finish_assembly",
    "invoice",
}


def error_response(exc: OrderError) -> Response:
    """Translate a domain exception into ``{"detail": ...}``."""
    for exc_class, http_status in _ERROR_STATUS:
        if isinstance(exc, exc_class):
            return Response({"detail": str(exc)}, status=http_status)
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _produced(data: Dict[str, Any]) -> list[ProducedQuantityDTO]:
    return [
        ProducedQuantityDTO(
            product_id=entry["product_id"],
            quantity_produced=entry["quantity_produced"],
        )
        for entry in data.get("produced", [])
    ]


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "delivery_date", "total_value", "status", "priority"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Define escopos de throttling por ação."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "queue", "summary"}:
            throttle_scope = "order_listing"
        elif self.action in TRANSITION_ACTIONS:
            throttle_scope = "order_transition"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders()

    def _paginated(self, request: Request, queryset) -> Response:
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def _transition(
        self,
        request: Request,
        serializer_class: type[Serializer],
        command: Callable[..., Any],
    ) -> Response:
        """Validate the payload, run ``command`` and render its result.

        ``command`` receives the validated data, the acting user and the
        common ``expected_status`` / ``view_role`` keyword arguments.
        """
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        actor = acting_user_from(request.user)
        try:
            result = command(
                data,
                actor,
                expected_status=data.get("expected_status"),
                view_role=data.get("view_role"),
            )
        except OrderError as exc:
            return error_response(exc)

        if isinstance(result, SplitResult):
            return Response(
                {
                    "original": OrderSerializer(result.original).data,
                    "remainder": (
                        OrderSerializer(result.remainder).data
                        if result.remainder
                        else None
                    ),
                }
            )
        return Response(OrderSerializer(result).data)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/ (sales intake)"""
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        try:
            dto = CreateOrderDTO(
                customer_name=data["customer_name"],
                items=[
                    CreateOrderItemDTO(
                        product_id=item["product_id"],
                        quantity=item["quantity"],
                    )
                    for item in data["items"]
                ],
                delivery_date=data["delivery_date"],
                priority=data["priority"],
                external_ref=data.get("external_ref", ""),
            )
        except DTOValidationError as exc:
            return Response(
                {"detail": [error["msg"] for error in exc.errors()]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.create_order(dto, acting_user_from(request.user))
        except OrderError as exc:
            return error_response(exc)

        out = OrderSerializer(order)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, priority, batch, delivery range, search) is
        handled by ``OrderFilter``; ordering by ``OrderingFilter``.
        """
        queryset = self.filter_queryset(self.get_queryset())
        return self._paginated(request, queryset)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk or "")
        except OrderNotFound as exc:
            return error_response(exc)
        serializer = OrderSerializer(order)
        return Response(serializer.data)

    @action(detail=False, methods=["get"], url_path=r"queue/(?P<role>[A-Z_]+)")
    def queue(self, request: Request, role: str | None = None) -> Response:
        """GET /api/v1/orders/queue/{ROLE}/ (orders waiting on a department)"""
        if role not in Role.values:
            return Response(
                {"detail": f"Departamento {role} desconhecido."},
                status=status.HTTP_404_NOT_FOUND,
            )
        try:
            queryset = self._service.department_queue(
                role,
                acting_user_from(request.user),
                search=request.query_params.get("search"),
            )
        except OrderError as exc:
            return error_response(exc)
        queryset = OrderingFilter().filter_queryset(request, queryset, self)
        return self._paginated(request, queryset)

    @action(detail=False, methods=["get"])
    def summary(self, request: Request) -> Response:
        """GET /api/v1/orders/summary/ (management report)"""
        try:
            report = self._service.status_summary(acting_user_from(request.user))
        except OrderError as exc:
            return error_response(exc)
        return Response(report.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def advance(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/advance/ (generic Transition Engine)"""

        def command(data, actor, **kwargs):
            extra_fields = {
                name: data[name]
                for name in (BATCH_NUMBER, INVOICE_NUMBER)
                if name in data
            }
            return self._service.advance_order(
                pk,
                data["status"],
                actor,
                notes=data.get("notes", ""),
                extra_fields=extra_fields or None,
                **kwargs,
            )

        return self._transition(request, AdvanceOrderSerializer, command)

    @action(detail=True, methods=["post"])
    def batch(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/batch/ (PCP confirms the batch)"""
        return self._transition(
            request,
            TransitionSerializer,
            lambda data, actor, **kwargs: self._service.confirm_production_batch(
                pk, actor, **kwargs
            ),
        )

    @action(detail=True, methods=["post"])
    def production(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/production/ (production report)"""
        return self._transition(
            request,
            ProductionReportSerializer,
            lambda data, actor, **kwargs: self._service.report_production(
                pk,
                _produced(data),
                actor,
                confirm_partial=data.get("confirm_partial", False),
                **kwargs,
            ),
        )

    @action(detail=True, methods=["post"])
    def split(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/split/ (partial delivery)"""
        return self._transition(
            request,
            SplitOrderSerializer,
            lambda data, actor, **kwargs: self._service.split_order(
                pk, _produced(data), actor, **kwargs
            ),
        )

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/reject/ (quality block)"""
        return self._transition(
            request,
            RejectOrderSerializer,
            lambda data, actor, **kwargs: self._service.reject_order(
                pk, data["reason"], actor, **kwargs
            ),
        )

    @action(detail=True, methods=["post"], url_path="return-to-quality")
    def return_to_quality(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/return-to-quality/"""
        return self._transition(
            request,
            ObservationSerializer,
            lambda data, actor, **kwargs: self._service.return_to_quality(
                pk, data.get("observation", ""), actor, **kwargs
            ),
        )

    @action(detail=True, methods=["post"], url_path="finish-assembly")
    def finish_assembly(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/finish-assembly/"""
        return self._transition(
            request,
            ObservationSerializer,
            lambda data, actor, **kwargs: self._service.finish_assembly(
                pk, actor, observation=data.get("observation", ""), **kwargs
            ),
        )

    @action(detail=True, methods=["post"])
    def invoice(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/invoice/ (billing)"""
        return self._transition(
            request,
            InvoiceSerializer,
            lambda data, actor, **kwargs: self._service.issue_invoice(
                pk, data["invoice_number"], actor, **kwargs
            ),
        )
