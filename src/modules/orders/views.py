"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are not caught here: ``domain_exception_handler``
renders them with the status code of their category.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderListQuerySerializer,
    OrderPageSerializer,
    OrderSerializer,
)
from modules.orders.services import build_order_service

IDEMPOTENCY_HEADER = "Idempotency-Key"


class OrderViewSet(ViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` built by the composition root (DIP).
    Does **not** touch the ORM: all storage access goes through the
    service/repository layer.
    """

    lookup_field = "order_id"
    lookup_value_regex = "[^/]+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Scoped throttling per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @extend_schema(
        request=CreateOrderSerializer,
        responses={201: OrderSerializer},
        parameters=[
            OpenApiParameter(
                IDEMPOTENCY_HEADER,
                str,
                OpenApiParameter.HEADER,
                required=False,
                description="Retries with the same key and body return the same order.",
            )
        ],
    )
    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Replays of an idempotent request answer 201 with the stored order.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = serializer.to_dto(idempotency_key=request.headers.get(IDEMPOTENCY_HEADER))
        order = self._service.create_order(dto)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    @extend_schema(parameters=[OrderListQuerySerializer], responses=OrderPageSerializer)
    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?page=&page_size=&status="""
        query = OrderListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        page = self._service.list_orders(**query.validated_data)
        return Response(OrderPageSerializer(page).data)

    @extend_schema(responses=OrderSerializer)
    def retrieve(self, request: Request, order_id: str) -> Response:
        """GET /api/v1/orders/{order_id}/"""
        order = self._service.get_order(order_id)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @extend_schema(request=None, responses=OrderSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, order_id: str) -> Response:
        """POST /api/v1/orders/{order_id}/cancel/"""
        order = self._service.cancel_order(order_id)
        return Response(OrderSerializer(order).data)
