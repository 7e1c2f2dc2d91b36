# promotions/services.py
"""
Coupon engine.

Validation and discount calculation are pure reads. Usage is recorded only
by ``redeem_coupon``, which must run inside the transaction that creates
the order the coupon is applied to.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from .exceptions import CouponInvalidError
from .models import Coupon, CouponUsage, normalize_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CouponCheck:
    valid: bool
    reason: Optional[str] = None


def get_coupon(code):
    code = normalize_code(code)
    if not code:
        raise CouponInvalidError('Please enter a coupon code')
    try:
        return Coupon.objects.get(code=code)
    except Coupon.DoesNotExist:
        raise CouponInvalidError('Invalid coupon code')


def has_used(coupon, user):
    if user is None or not getattr(user, 'pk', None) or coupon.pk is None:
        return False
    return CouponUsage.objects.filter(coupon=coupon, user=user).exists()


def validate_coupon(coupon, user, order_amount, now=None):
    """Run the coupon checks in order; the first failing check is the reason."""
    now = now or timezone.now()

    if not coupon.is_active:
        return CouponCheck(False, 'Coupon is not active')
    if now < coupon.valid_from:
        return CouponCheck(False, 'Coupon is not yet valid')
    if now > coupon.valid_until:
        return CouponCheck(False, 'Coupon has expired')
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return CouponCheck(False, 'Coupon usage limit reached')
    if order_amount < coupon.min_order_amount:
        currency = getattr(settings, 'STORE_CURRENCY', 'INR')
        return CouponCheck(False, f'Minimum order amount is {currency} {coupon.min_order_amount}')
    if has_used(coupon, user):
        return CouponCheck(False, 'You have already used this coupon')

    return CouponCheck(True)


def calculate_discount(coupon, order_amount):
    """Discount in whole currency units, never more than ``order_amount``."""
    if coupon.discount_type == 'percentage':
        discount = order_amount * coupon.discount_value // 100
        if coupon.max_discount is not None:
            discount = min(discount, coupon.max_discount)
    else:
        discount = coupon.discount_value

    return max(0, min(discount, order_amount))


def preview_coupon(code, user, order_amount, now=None):
    """Validate and price a coupon without recording any usage."""
    coupon = get_coupon(code)
    check = validate_coupon(coupon, user, order_amount, now=now)
    if not check.valid:
        raise CouponInvalidError(check.reason)
    return coupon, calculate_discount(coupon, order_amount)


def redeem_coupon(coupon, user, order, discount_amount):
    """
    Record one use of ``coupon`` by ``user`` for ``order``.

    The counter is bumped with a single conditional UPDATE so two checkouts
    racing for the last use cannot both succeed, and the (coupon, user)
    unique constraint rejects a second use by the same user.
    """
    updated = Coupon.objects.filter(pk=coupon.pk, is_active=True).filter(
        Q(usage_limit__isnull=True) | Q(used_count__lt=F('usage_limit'))
    ).update(used_count=F('used_count') + 1, updated_at=timezone.now())
    if not updated:
        raise CouponInvalidError('Coupon usage limit reached')

    try:
        with transaction.atomic():
            usage = CouponUsage.objects.create(
                coupon=coupon,
                user=user,
                order=order,
                discount_amount=discount_amount,
            )
    except IntegrityError:
        raise CouponInvalidError('You have already used this coupon')

    logger.info(f"Coupon {coupon.code} redeemed by user {user.pk} on order {order.order_number}")
    return usage
