"""HTTP view for the public coupon preview.

The preview runs the same ``CouponEngine`` the order coordinator uses,
against the live catalog, without consuming the coupon. Inactive products
are left out of the cart so they neither count towards the subtotal nor the
eligible total.
"""

import logging

from django.utils import timezone
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.catalog.repository import CatalogRepository

from .domain import CouponEngine, CouponRejection
from .repository import CouponRepository
from .schemas import ApplyCouponDTO, CouponPreviewOut

logger = logging.getLogger("coupons")


class ApplyCouponView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "coupons_apply"

    def post(self, request):
        """Evaluate a coupon for a cart.

        Returns:
            Response: 200 with the evaluation when the coupon is valid, 422
            with the same body and the rejection message otherwise, 404 for
            an unknown code, 400 for payload errors.
        """
        try:
            dto = ApplyCouponDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return Response(
                {"detail": "VALIDATION_ERROR", "errors": [e2["msg"] for e2 in e.errors(include_url=False)]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        products = CatalogRepository().get_products_by_ids(i.product_id for i in dto.items)
        active = {pid: p for pid, p in products.items() if p.is_active}
        evaluation = CouponEngine(CouponRepository()).evaluate(dto.code, dto.items, active, timezone.now())

        body = CouponPreviewOut(
            is_valid=evaluation.is_valid,
            code=dto.code,
            message=evaluation.message,
            discount_amount=evaluation.discount_amount,
            cart_subtotal=evaluation.cart_subtotal,
            eligible_total=evaluation.eligible_total,
        ).model_dump(by_alias=True, mode="json")

        if evaluation.is_valid:
            return Response(body, status=200)
        logger.info("coupon rejected", extra={"code": dto.code, "reason": evaluation.rejection.value})
        status_code = 404 if evaluation.rejection is CouponRejection.NOT_FOUND else 422
        return Response({**body, "detail": evaluation.rejection.value}, status=status_code)
