"""Coupon records, scope variant and the discount engine.

``CouponEngine.evaluate`` is pure apart from a single coupon lookup: it never
increments usage. The order coordinator consumes the coupon later, inside the
same transaction that reserves stock and inserts the order, so a coupon is
only used up by an order that actually commits.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional, Protocol

from apps.catalog.domain import ProductSnapshot, money

ZERO = Decimal("0.00")


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ScopeKind(str, Enum):
    ALL = "all"
    CATEGORIES = "categories"
    PRODUCTS = "products"


@dataclass(frozen=True)
class CouponScope:
    """Which products a coupon discounts.

    A tagged variant: ``kind`` says how ``ids`` are interpreted. ``ids`` is
    empty for ``ALL`` and non-empty otherwise, so a coupon can never target
    categories and products at the same time.
    """

    kind: ScopeKind
    ids: frozenset[str] = frozenset()

    def __post_init__(self):
        if self.kind is ScopeKind.ALL and self.ids:
            raise ValueError("A coupon that applies to all products cannot list ids")
        if self.kind is not ScopeKind.ALL and not self.ids:
            raise ValueError(f"A {self.kind.value}-scoped coupon needs at least one id")

    @classmethod
    def all_products(cls) -> "CouponScope":
        return cls(ScopeKind.ALL)

    @classmethod
    def for_categories(cls, ids: Iterable[str]) -> "CouponScope":
        return cls(ScopeKind.CATEGORIES, frozenset(str(i) for i in ids))

    @classmethod
    def for_products(cls, ids: Iterable[str]) -> "CouponScope":
        return cls(ScopeKind.PRODUCTS, frozenset(str(i) for i in ids))

    def covers(self, product: ProductSnapshot) -> bool:
        if self.kind is ScopeKind.ALL:
            return True
        if self.kind is ScopeKind.CATEGORIES:
            return product.category_id in self.ids
        return product.id in self.ids


def normalize_code(code: str) -> str:
    return code.strip().upper()


@dataclass(frozen=True)
class CouponRecord:
    """A coupon as stored, validated on construction.

    Attributes:
        id: Coupon identifier (UUID string).
        code: Upper-case unique code.
        type: Percentage or fixed amount.
        value: Percentage (0 < v <= 100) or fixed amount (> 0).
        usage_limit: Maximum number of orders that may use the coupon.
        used_count: Orders that have used it so far.
        valid_from: Start of the validity window.
        valid_until: End of the validity window, after ``valid_from``.
        is_active: Manual on/off switch.
        scope: Products the discount applies to.
        min_order_amount: Minimum full-cart subtotal, if any.
        max_discount_amount: Cap for percentage coupons, if any.
    """

    id: str
    code: str
    type: CouponType
    value: Decimal
    usage_limit: int
    used_count: int
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True
    scope: CouponScope = CouponScope.all_products()
    min_order_amount: Optional[Decimal] = None
    max_discount_amount: Optional[Decimal] = None
    description: str = ""

    def __post_init__(self):
        validate_coupon_record(self)


def validate_coupon_record(coupon: CouponRecord) -> None:
    """Check the invariants every stored coupon must satisfy.

    Raises:
        ValueError: Describing the first violated rule.
    """
    if coupon.code != normalize_code(coupon.code) or not coupon.code:
        raise ValueError("Coupon code must be non-empty, trimmed and upper-case")
    if coupon.value <= 0:
        raise ValueError("Discount value must be positive")
    if coupon.type is CouponType.PERCENTAGE and coupon.value > 100:
        raise ValueError("Percentage value cannot exceed 100")
    if coupon.type is CouponType.FIXED and coupon.max_discount_amount is not None:
        raise ValueError('Fixed coupons cannot have a "max discount amount"')
    if coupon.max_discount_amount is not None and coupon.max_discount_amount <= 0:
        raise ValueError("Max discount must be positive")
    if coupon.min_order_amount is not None and coupon.min_order_amount < 0:
        raise ValueError("Minimum order amount cannot be negative")
    if coupon.usage_limit <= 0:
        raise ValueError("Usage limit must be a positive integer")
    if not 0 <= coupon.used_count <= coupon.usage_limit:
        raise ValueError("Used count must be between 0 and the usage limit")
    if coupon.valid_until <= coupon.valid_from:
        raise ValueError('"Valid until" date must be after "valid from" date')


class CouponRejection(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    NOT_YET_VALID = "NOT_YET_VALID"
    EXPIRED = "EXPIRED"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    MIN_ORDER_NOT_MET = "MIN_ORDER_NOT_MET"
    NOT_APPLICABLE = "NOT_APPLICABLE"


@dataclass(frozen=True)
class CouponEvaluation:
    is_valid: bool
    discount_amount: Decimal
    message: str
    coupon: Optional[CouponRecord] = None
    rejection: Optional[CouponRejection] = None
    cart_subtotal: Decimal = ZERO
    eligible_total: Decimal = ZERO

    @classmethod
    def no_coupon(cls) -> "CouponEvaluation":
        return cls(is_valid=False, discount_amount=ZERO, message="")


class CartLineLike(Protocol):
    product_id: str
    product_size_id: str
    quantity: int


class CouponStorePort(Protocol):
    """Port for coupon persistence used by the engine and the coordinator."""

    def find_by_code(self, code: str) -> Optional[CouponRecord]:
        raise NotImplementedError()

    def increment_usage(self, coupon_id: str) -> bool:
        """Consume one use if the coupon is still usable. Returns False otherwise."""
        raise NotImplementedError()


class CouponEngine:
    """Validates a coupon against a cart and prices the discount."""

    def __init__(self, store: CouponStorePort):
        self.store = store

    def evaluate(
        self,
        code: str,
        lines: Iterable[CartLineLike],
        products: Mapping[str, ProductSnapshot],
        now: datetime,
    ) -> CouponEvaluation:
        """Evaluate ``code`` for the given cart.

        Validity checks run in a fixed order (active, validity window, usage
        limit) before any money is computed. The minimum order amount is
        compared against the full cart subtotal, while the discount itself
        is computed only from the eligible subtotal.

        Args:
            code: Coupon code as typed by the customer.
            lines: Cart lines (product id, size id, quantity).
            products: Resolved catalog snapshots keyed by product id.
            now: Evaluation instant (timezone-aware).

        Returns:
            CouponEvaluation: ``is_valid`` with the rounded discount, or a
            rejection reason and message. Never raises for invalid coupons.
        """
        coupon = self.store.find_by_code(normalize_code(code))
        if coupon is None:
            return _reject(CouponRejection.NOT_FOUND, "Invalid coupon code.")

        if not coupon.is_active:
            return _reject(CouponRejection.INACTIVE, "This coupon is not active.")
        if now < coupon.valid_from:
            return _reject(CouponRejection.NOT_YET_VALID, "This coupon is not yet valid.")
        if now > coupon.valid_until:
            return _reject(CouponRejection.EXPIRED, "This coupon has expired.")
        if coupon.used_count >= coupon.usage_limit:
            return _reject(CouponRejection.USAGE_LIMIT_REACHED, "This coupon has reached its usage limit.")

        cart_subtotal = ZERO
        eligible_total = ZERO
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                continue
            size = product.find_size(line.product_size_id)
            if size is None:
                continue
            line_total = product.unit_price(size) * line.quantity
            cart_subtotal += line_total
            if coupon.scope.covers(product):
                eligible_total += line_total
        cart_subtotal = money(cart_subtotal)
        eligible_total = money(eligible_total)

        if coupon.min_order_amount is not None and cart_subtotal < coupon.min_order_amount:
            return _reject(
                CouponRejection.MIN_ORDER_NOT_MET,
                f"Minimum order amount of {money(coupon.min_order_amount)} is required.",
                cart_subtotal,
                eligible_total,
            )
        if eligible_total == ZERO and coupon.scope.kind is not ScopeKind.ALL:
            return _reject(
                CouponRejection.NOT_APPLICABLE,
                "This coupon does not apply to any items in your cart.",
                cart_subtotal,
                eligible_total,
            )

        return CouponEvaluation(
            is_valid=True,
            discount_amount=compute_discount(coupon, eligible_total),
            message="Coupon applied successfully!",
            coupon=coupon,
            cart_subtotal=cart_subtotal,
            eligible_total=eligible_total,
        )


def compute_discount(coupon: CouponRecord, eligible_total: Decimal) -> Decimal:
    """Discount for ``eligible_total``, never more than ``eligible_total``."""
    if coupon.type is CouponType.FIXED:
        return money(min(coupon.value, eligible_total))
    discount = eligible_total * coupon.value / Decimal(100)
    if coupon.max_discount_amount is not None:
        discount = min(discount, coupon.max_discount_amount)
    return money(min(discount, eligible_total))


def _reject(reason: CouponRejection, message: str, cart_subtotal=ZERO, eligible_total=ZERO) -> CouponEvaluation:
    return CouponEvaluation(
        is_valid=False,
        discount_amount=ZERO,
        message=message,
        rejection=reason,
        cart_subtotal=cart_subtotal,
        eligible_total=eligible_total,
    )
