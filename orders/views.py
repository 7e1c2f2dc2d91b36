# orders/views.py
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from cart.views import get_or_create_cart, get_cart_totals
from core.http import request_data, error_response
from .exceptions import (
    StoreError,
    EmptyCartError,
    CancellationNotAllowedError,
    PersistenceError,
)
from .models import Order
from .services import place_order, cancel_order, order_timeline, orders_for_user


# ─────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────

def serialize_order(order, with_items=True):
    data = {
        'id':               order.id,
        'order_number':     order.order_number,
        'status':           order.status,
        'status_display':   order.get_status_display(),
        'payment_method':   order.payment_method,
        'payment_status':   order.payment_status,
        'currency':         order.currency,
        'total_amount':     order.total_amount,
        'total_discount':   order.total_discount,
        'coupon_code':      order.coupon_code,
        'coupon_discount':  order.coupon_discount,
        'platform_fee':     order.platform_fee,
        'shipping_fee':     order.shipping_fee,
        'final_amount':     order.final_amount,
        'shipping_address': order.shipping_snapshot,
        'can_be_cancelled': order.can_be_cancelled,
        'created_at':       order.created_at.isoformat(),
        'updated_at':       order.updated_at.isoformat(),
    }
    if with_items:
        data['items'] = [
            {
                'product_id': item.product_id,
                'name':       item.name,
                'price':      item.price,
                'discount':   item.discount,
                'quantity':   item.quantity,
                'image':      item.image,
                'bgcolor':    item.bgcolor,
                'line_total': item.line_total,
            }
            for item in order.items.all()
        ]
    return data


# ─────────────────────────────────────────────────────────────
# CHECKOUT
# ─────────────────────────────────────────────────────────────

@login_required
def checkout(request):
    cart = get_or_create_cart(request.user)
    lines, totals = get_cart_totals(cart)
    if not lines:
        return error_response(EmptyCartError.default_message)

    default = request.user.default_address
    return JsonResponse({
        'items':            lines,
        'totals':           totals,
        'addresses':        [
            dict(a.as_snapshot(), id=a.id, is_default=a.is_default)
            for a in request.user.addresses.all()
        ],
        'default_address':  default.id if default else None,
        'payment_methods':  [key for key, _ in Order.PAYMENT_METHODS],
    })


# ─────────────────────────────────────────────────────────────
# PLACE ORDER
# ─────────────────────────────────────────────────────────────

@login_required
@require_POST
def place_order_view(request):
    data = request_data(request)
    try:
        order = place_order(
            request.user,
            shipping_details=data,
            payment_method=data.get('payment_method') or 'cod',
            coupon_code=(data.get('coupon_code') or '').strip() or None,
        )
    except PersistenceError as e:
        return error_response(e.message, status=500)
    except StoreError as e:
        return error_response(e.message)
    except ValueError as e:
        return error_response(str(e))

    return JsonResponse({'success': True, 'order': serialize_order(order)}, status=201)


# ─────────────────────────────────────────────────────────────
# ORDER MANAGEMENT
# ─────────────────────────────────────────────────────────────

@login_required
def order_list(request):
    orders = orders_for_user(request.user)
    status_filter = request.GET.get('status')
    if status_filter and status_filter != 'all':
        orders = orders.filter(status=status_filter)
    return JsonResponse({'orders': [serialize_order(o) for o in orders]})


@login_required
def recent_orders(request):
    return JsonResponse({
        'success': True,
        'orders':  [serialize_order(o) for o in orders_for_user(request.user, limit=5)],
    })


@login_required
def order_detail(request, order_number):
    order = get_object_or_404(Order, order_number=order_number, customer=request.user)
    return JsonResponse({'order': serialize_order(order)})


@login_required
def track_order(request, order_number):
    order = get_object_or_404(Order, order_number=order_number, customer=request.user)
    return JsonResponse({
        'success':  True,
        'order':    serialize_order(order),
        'timeline': order_timeline(order.status),
        'history':  [
            {
                'from_status': h.from_status,
                'to_status':   h.to_status,
                'notes':       h.notes,
                'created_at':  h.created_at.isoformat(),
            }
            for h in order.status_history.all()
        ],
    })


@login_required
@require_POST
def cancel_order_view(request, order_number):
    order = get_object_or_404(Order, order_number=order_number, customer=request.user)
    try:
        cancel_order(order, request.user)
    except CancellationNotAllowedError as e:
        return error_response(e.message)
    return JsonResponse({'success': True, 'message': 'Order cancelled successfully'})
