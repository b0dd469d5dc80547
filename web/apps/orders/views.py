"""HTTP views for the orders app.

This module contains DRF API views for the orders API. Views are kept
intentionally small: they validate requests (via Pydantic), map them to
domain requests, delegate to the ``OrderCoordinator`` and render the result.

The views obtain a configured coordinator from ``get_order_coordinator()``
on every request so tests can swap the wiring without touching view logic.

Idempotency: when an ``Idempotency-Key`` header is provided, the create
endpoint stores the final response on the key. Retries with the same payload
replay it with an ``Idempotent-Replay: true`` header; reusing the key with a
different payload returns HTTP 409. Retryable errors are not stored: the key
is released and a retry runs the request again.

Errors: every ``FulfillmentError`` becomes ``{"detail": code, "message":
text}`` with the status code carried by the error class.
"""

from django.conf import settings
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .errors import FulfillmentError
from .idempotency import IdempotencyConflict, claim_key, is_pending, release_key, store_response
from .schemas import (
    CreateOrderDTO,
    OrderReadDTO,
    PublicTrackingDTO,
    TrackOrderDTO,
    UpdateOrderStatusDTO,
    dump,
)

ACTOR_HEADER = "X-Actor-Id"


def error_body(err: FulfillmentError) -> dict:
    return {"detail": err.code, "message": err.message}


def invalid_payload(exc: PydanticValidationError) -> Response:
    errors = [
        {"path": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
        for e in exc.errors(include_url=False)
    ]
    return Response({"detail": "VALIDATION_ERROR", "errors": errors}, status=status.HTTP_400_BAD_REQUEST)


def _int_param(request, name: str, default: int) -> int:
    try:
        return max(1, int(request.GET.get(name, default)))
    except (TypeError, ValueError):
        return default


class OrdersCollectionView(APIView):
    """List orders (admin) and create an order (public).

    Creation validates the payload with a Pydantic DTO, lets the coordinator
    reserve stock, consume the coupon and persist the order in a single
    transaction, and returns the created resource. It supports idempotency
    via the ``Idempotency-Key`` header.
    """
    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        page = _int_param(request, "page", 1)
        page_size = min(_int_param(request, "page_size", 20), getattr(settings, "ORDERS_PAGE_SIZE_MAX", 100))
        result = providers.get_order_coordinator().list_orders(page, page_size)
        return Response(
            {
                "count": result.count,
                "page": result.page,
                "page_size": result.page_size,
                "results": [dump(OrderReadDTO.model_validate(o)) for o in result.results],
            },
            status=200,
        )

    def post(self, request):
        """Create a new order.

        Args:
            request (Request): DRF request with JSON body and optional
                ``Idempotency-Key`` header.

        Returns:
            Response: One of the following responses.
            - 201 with the order when it is created.
            - the stored status and body when the same idempotency key and
              payload are retried. 409 STOCK_CONFLICT and 503 answers are
              not stored; a retry runs the request again.
            - 409 with {detail: "IDEMPOTENCY_CONFLICT"} when the same key is
              reused with a different payload.
            - 400 for DTO validation errors.
            - 404 for an unknown coupon code.
            - 422 for business rule violations (unavailable product, invalid
              size, insufficient stock, invalid coupon).
            - 409 with {detail: "STOCK_CONFLICT"} when stock was taken by a
              concurrent order; retry is safe.
            - 503 with {detail: "UPSTREAM_UNAVAILABLE"} when the database
              failed and the transaction was rolled back.
        """
        idem_key = request.headers.get("Idempotency-Key")

        # 1) Pydantic validation
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return invalid_payload(e)

        # 2) Idempotency get-or-create
        rec = None
        if idem_key:
            try:
                existing, rec = claim_key(idem_key, request.data)
            except IdempotencyConflict:
                return Response({"detail": "IDEMPOTENCY_CONFLICT"}, status=status.HTTP_409_CONFLICT)
            if existing:
                if is_pending(rec):
                    return Response({"detail": "IDEMPOTENCY_IN_PROGRESS"}, status=status.HTTP_409_CONFLICT)
                resp = Response(rec.response_body, status=rec.response_status)
                resp["Idempotent-Replay"] = "true"
                return resp

        # 3) Coordinator
        try:
            order = providers.get_order_coordinator().create_order(dto.to_request())
        except FulfillmentError as e:
            body = error_body(e)
            if rec:
                if e.retryable:
                    release_key(rec)
                else:
                    store_response(rec, e.status_code, body)
            return Response(body, status=e.status_code)
        except Exception:
            if rec:
                release_key(rec)
            raise

        # 4) Response
        body = dump(OrderReadDTO.model_validate(order))
        if rec:
            store_response(rec, status.HTTP_201_CREATED, body, order_id=order.id)
        return Response(body, status=status.HTTP_201_CREATED)


class RetrieveOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid):
        try:
            order = providers.get_order_coordinator().get_order(oid)
        except FulfillmentError as e:
            return Response(error_body(e), status=e.status_code)
        return Response(dump(OrderReadDTO.model_validate(order)), status=200)


class OrderStatusView(APIView):
    """Change an order's status (admin).

    The acting admin is identified by the ``X-Actor-Id`` header set by the
    authenticating edge and recorded on the history entry.
    """
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_status"

    def patch(self, request, oid):
        try:
            dto = UpdateOrderStatusDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return invalid_payload(e)

        try:
            order = providers.get_order_coordinator().transition_status(
                oid,
                dto.status,
                payment_status=dto.payment_status,
                note=dto.note,
                actor=request.headers.get(ACTOR_HEADER),
            )
        except FulfillmentError as e:
            return Response(error_body(e), status=e.status_code)
        return Response(dump(OrderReadDTO.model_validate(order)), status=200)


class TrackOrderView(APIView):
    """Public order tracking by tracking number and/or mobile number."""
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_track"

    def post(self, request):
        try:
            dto = TrackOrderDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return invalid_payload(e)

        try:
            orders = providers.get_order_coordinator().track_orders(dto.tracking_number, dto.mobile)
        except FulfillmentError as e:
            return Response(error_body(e), status=e.status_code)
        return Response({"results": [dump(PublicTrackingDTO.model_validate(o)) for o in orders]}, status=200)
