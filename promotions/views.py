# promotions/views.py
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_POST

from cart.views import get_or_create_cart, get_cart_totals
from core.http import request_data, error_response
from .exceptions import CouponInvalidError
from .models import Coupon, CouponUsage
from .services import preview_coupon


def _merchandise_amount(user):
    """Cart amount coupons apply to: prices after product discounts, before fees."""
    _, totals = get_cart_totals(get_or_create_cart(user))
    return totals['total_amount'] - totals['total_discount']


@login_required
@require_POST
def apply_coupon(request):
    """Check a coupon against the current cart. Nothing is recorded until the order is placed."""
    data = request_data(request)
    coupon_code = (data.get('code') or data.get('coupon_code') or '').strip()

    order_amount = _merchandise_amount(request.user)
    try:
        coupon, discount = preview_coupon(coupon_code, request.user, order_amount)
    except CouponInvalidError as e:
        return error_response(e.message)

    return JsonResponse({
        'success':        True,
        'code':           coupon.code,
        'discount':       discount,
        'discount_type':  coupon.discount_type,
        'discount_value': coupon.discount_value,
        'order_amount':   order_amount,
        'message':        f'Coupon applied! You save {discount}',
    })


@login_required
def my_coupons(request):
    """Available coupons and the user's coupon history."""
    now = timezone.now()
    used_ids = set(CouponUsage.objects.filter(user=request.user).values_list('coupon_id', flat=True))

    available = []
    for coupon in Coupon.objects.filter(is_active=True, valid_from__lte=now, valid_until__gte=now):
        can_use = coupon.id not in used_ids and (
            coupon.usage_limit is None or coupon.used_count < coupon.usage_limit
        )
        available.append({
            'code':             coupon.code,
            'description':      coupon.description,
            'label':            coupon.label,
            'min_order_amount': coupon.min_order_amount,
            'valid_until':      coupon.valid_until.isoformat(),
            'can_use':          can_use,
        })

    used = [
        {
            'code':            usage.coupon.code,
            'order_number':    usage.order.order_number if usage.order else None,
            'discount_amount': usage.discount_amount,
            'used_at':         usage.created_at.isoformat(),
        }
        for usage in CouponUsage.objects.filter(user=request.user).select_related('coupon', 'order')
    ]

    return JsonResponse({
        'available_coupons': available,
        'used_coupons':      used,
        'total_saved':       sum(u['discount_amount'] for u in used),
    })
