# Overview: Service-layer operations for coupons; the discount evaluator and admin CRUD.

"""
Coupon evaluation and administration.

evaluate() is a pure predicate: it reads a coupon and never mutates it. The
only place used_count moves is redeem_in_transaction, called from order
creation inside the order's own transaction with the coupon row locked.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ..errors import Conflict, InvalidInput, NotFound
from ..extensions import db
from ..models import Coupon
from ..models.coupons import DISCOUNT_PERCENTAGE, DISCOUNT_TYPES
from ..validation import Field, Schema, paginate, parse_bool_arg, validate_payload
from .transactions import atomic, lock_for_update
from storefront.time_utils import utcnow


CENT = Decimal("0.01")


@dataclass(frozen=True)
class CouponEvaluation:
    valid: bool
    discount_amount: Decimal
    message: str
    coupon: Optional[Coupon] = None

    def to_dict(self) -> dict:
        result = {
            "valid": self.valid,
            "discount_amount": float(self.discount_amount),
            "message": self.message,
        }
        if self.valid and self.coupon is not None:
            result["coupon"] = {
                "code": self.coupon.code,
                "discount_type": self.coupon.discount_type,
                "discount_value": float(self.coupon.discount_value),
            }
        return result


def _rupees(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount:.2f}"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def find_coupon(code: str) -> Coupon | None:
    return db.session.query(Coupon).filter(Coupon.code == normalize_code(code)).first()


def compute_discount(coupon: Coupon, order_amount: Decimal) -> Decimal:
    """
    percentage: order_amount * value / 100, capped at max_discount when set.
    fixed: the full value, independent of the order amount.
    """
    value = Decimal(coupon.discount_value)
    if coupon.discount_type == DISCOUNT_PERCENTAGE:
        discount = order_amount * value / Decimal(100)
        if coupon.max_discount is not None:
            discount = min(discount, Decimal(coupon.max_discount))
    else:
        discount = value
    return discount.quantize(CENT, rounding=ROUND_HALF_UP)


def evaluate_coupon(coupon: Coupon | None, order_amount: Decimal, now=None) -> CouponEvaluation:
    """
    Check order, first failure wins:
    exists, is_active, valid_from <= now <= valid_to, minimum order value,
    usage limit.
    """
    zero = Decimal("0.00")
    if coupon is None:
        return CouponEvaluation(False, zero, "Invalid coupon code")

    if not coupon.is_active:
        return CouponEvaluation(False, zero, "Coupon is inactive", coupon)

    now = now or utcnow()
    if now < coupon.valid_from:
        return CouponEvaluation(False, zero, "Coupon is not yet valid", coupon)
    if now > coupon.valid_to:
        return CouponEvaluation(False, zero, "Coupon has expired", coupon)

    minimum = Decimal(coupon.min_order_value or 0)
    if order_amount < minimum:
        return CouponEvaluation(
            False, zero, f"Minimum order amount of ₹{_rupees(minimum)} required", coupon
        )

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return CouponEvaluation(False, zero, "Coupon usage limit exceeded", coupon)

    discount = compute_discount(coupon, order_amount)
    return CouponEvaluation(
        True, discount, f"Coupon applied! You saved ₹{_rupees(discount)}", coupon
    )


def evaluate(code: str, order_amount) -> CouponEvaluation:
    """evaluate(code, order_amount) -> {valid, discount_amount, message}."""
    return evaluate_coupon(find_coupon(code), Decimal(str(order_amount)))


VALIDATE_SCHEMA = Schema(
    fields=(
        Field("code", required=True, label="Coupon code"),
        Field("amount", "number", required=True, min_value=Decimal("0"), inclusive_min=True,
              label="Order amount"),
    ),
)


def validate_request(params: dict) -> CouponEvaluation:
    data = validate_payload(params, VALIDATE_SCHEMA)
    return evaluate(data["code"], data["amount"])


def redeem_in_transaction(code: str, order_amount: Decimal) -> CouponEvaluation:
    """
    Lock the coupon row, re-evaluate and count one use. No commit.

    Raises InvalidInput with the evaluator's message when the coupon is not
    (or no longer) applicable, which rolls back the surrounding order.
    """
    coupon = lock_for_update(
        db.session.query(Coupon).filter(Coupon.code == normalize_code(code))
    ).first()
    result = evaluate_coupon(coupon, order_amount)
    if not result.valid:
        raise InvalidInput(result.message)
    coupon.used_count = (coupon.used_count or 0) + 1
    return result


# ---------------------------------------------------------------------------
# Admin CRUD
# ---------------------------------------------------------------------------

def _percentage_cap(record: dict) -> None:
    if (
        record.get("discount_type") == DISCOUNT_PERCENTAGE
        and record.get("discount_value") is not None
        and Decimal(record["discount_value"]) > 100
    ):
        raise InvalidInput("Percentage discount cannot exceed 100%")


def _date_window(record: dict) -> None:
    start, end = record.get("valid_from"), record.get("valid_to")
    if start is not None and end is not None and end < start:
        raise InvalidInput("Valid to date must be after valid from date")


def _usage_not_below_used(record: dict) -> None:
    limit = record.get("usage_limit")
    if limit is not None and record.get("used_count", 0) > limit:
        raise InvalidInput("Usage limit cannot be lower than the number of times already used")


COUPON_CHECKS = (_percentage_cap, _date_window, _usage_not_below_used)

COUPON_FIELDS = (
    Field("code", required=True, upper=True, max_length=64),
    Field("description", "text"),
    Field("discount_type", required=True, choices=DISCOUNT_TYPES, message="Invalid discount type"),
    Field("discount_value", "number", required=True, min_value=Decimal("0"),
          message="Discount value must be positive"),
    Field("min_order_value", "number", min_value=Decimal("0"), inclusive_min=True,
          label="Minimum order value"),
    Field("max_discount", "number", min_value=Decimal("0"), label="Maximum discount"),
    Field("usage_limit", "int", min_value=1, inclusive_min=True, label="Usage limit"),
    Field("valid_from", "datetime", required=True),
    Field("valid_to", "datetime", required=True),
    Field("is_active", "bool", default=True),
)

COUPON_SCHEMA = Schema(
    fields=COUPON_FIELDS,
    required_message="Required fields are missing",
    checks=COUPON_CHECKS,
)

COUPON_COLUMNS = tuple(f.name for f in COUPON_FIELDS)


def list_coupons(args, pagination) -> tuple[list[Coupon], dict]:
    query = db.session.query(Coupon)

    active = parse_bool_arg(args, "is_active")
    if active is not None:
        query = query.filter(Coupon.is_active.is_(active))

    search = (args.get("search") or "").strip()
    if search:
        query = query.filter(Coupon.code.ilike(f"%{search}%"))

    return paginate(query.order_by(Coupon.created_at.desc(), Coupon.id.desc()), pagination)


def get_coupon(coupon_id: int) -> Coupon:
    coupon = db.session.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFound("Coupon not found")
    return coupon


def _ensure_code_free(code: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Coupon).filter(Coupon.code == code)
    if exclude_id is not None:
        query = query.filter(Coupon.id != exclude_id)
    if query.first():
        raise Conflict("Coupon code already exists")


def create_coupon(payload: dict) -> Coupon:
    data = validate_payload(payload, COUPON_SCHEMA)

    def _op():
        _ensure_code_free(data["code"])
        coupon = Coupon(**{k: data.get(k) for k in COUPON_COLUMNS if k in data})
        db.session.add(coupon)
        return coupon

    return atomic(_op)


def update_coupon(coupon_id: int, payload: dict) -> Coupon:
    """
    Partial update. Cross-field rules are checked against the merged record,
    so changing only discount_type to percentage still caps the stored value.
    """
    patch = validate_payload(payload, Schema(fields=COUPON_FIELDS), partial=True)
    for name in ("code", "discount_type", "discount_value", "valid_from", "valid_to"):
        if name in patch and patch[name] is None:
            raise InvalidInput("Required fields are missing")

    def _op():
        coupon = get_coupon(coupon_id)
        merged = {name: getattr(coupon, name) for name in COUPON_COLUMNS}
        merged["used_count"] = coupon.used_count
        merged.update(patch)
        for check in COUPON_CHECKS:
            check(merged)

        if "code" in patch and patch["code"] != coupon.code:
            _ensure_code_free(patch["code"], exclude_id=coupon.id)

        for key, value in patch.items():
            setattr(coupon, key, value)
        return coupon

    return atomic(_op)


def delete_coupon(coupon_id: int) -> None:
    def _op():
        db.session.delete(get_coupon(coupon_id))

    atomic(_op)
