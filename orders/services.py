# orders/services.py
"""
Order workflow: turning a cart into an order, moving orders through their
lifecycle, and the read-side helpers the views share.
"""

import logging
import random
import string

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from cart.models import CartItem
from catalog.models import resolve_products
from promotions.services import get_coupon, validate_coupon, calculate_discount, redeem_coupon
from users.models import Address
from .exceptions import (
    StoreError,
    EmptyCartError,
    ProductUnavailableError,
    DuplicateOrderIdentifierError,
    InvalidTransitionError,
    CancellationNotAllowedError,
    InvalidPaymentStatusError,
    CouponInvalidError,
    PersistenceError,
)
from .models import Order, OrderItem, OrderStatusHistory
from .pricing import StoreSettings, compute_totals

logger = logging.getLogger(__name__)


ORDER_FLOW = ['pending', 'confirmed', 'processing', 'shipped', 'delivered']

TIMELINE_LABELS = {
    'pending':    'Order placed',
    'confirmed':  'Order confirmed',
    'processing': 'Being prepared',
    'shipped':    'On the way',
    'delivered':  'Delivered',
}

# Forward one step at a time; anything not yet delivered may be cancelled.
ALLOWED_TRANSITIONS = {
    'pending':    {'confirmed', 'cancelled'},
    'confirmed':  {'processing', 'cancelled'},
    'processing': {'shipped', 'cancelled'},
    'shipped':    {'delivered', 'cancelled'},
    'delivered':  set(),
    'cancelled':  set(),
}

CANCELLABLE_STATUSES = ('pending', 'confirmed')

STATUS_TIMESTAMPS = {
    'confirmed': 'confirmed_at',
    'shipped':   'shipped_at',
    'delivered': 'delivered_at',
    'cancelled': 'cancelled_at',
}

PAYMENT_TRANSITIONS = {
    'pending': {'paid', 'failed'},
    'failed':  {'paid'},
    'paid':    set(),
}

PAYMENT_METHODS = dict(Order.PAYMENT_METHODS)

SHIPPING_FIELDS = ('fullname', 'phone', 'address', 'city', 'state', 'pincode')


# ─────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────

def generate_order_number(prefix='ORD', now=None):
    now = now or timezone.now()
    millis = int(now.timestamp() * 1000)
    random_str = ''.join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"{prefix}{millis}{random_str}"


def can_transition(current_status, new_status):
    return new_status in ALLOWED_TRANSITIONS.get(current_status, set())


def order_timeline(status):
    """Progress of an order through the five forward statuses."""
    cancelled = status == 'cancelled'
    reached = ORDER_FLOW.index(status) if status in ORDER_FLOW else -1

    return [
        {
            'status':    step,
            'label':     TIMELINE_LABELS[step],
            'completed': not cancelled and index <= reached,
            'current':   not cancelled and step == status,
            'cancelled': cancelled,
        }
        for index, step in enumerate(ORDER_FLOW)
    ]


def resolve_shipping(user, shipping_details=None):
    """
    Build the shipping snapshot from a saved address id or explicit fields.
    Blank fields fall back to the default address, then to the profile.
    """
    shipping_details = shipping_details or {}

    address_id = shipping_details.get('address_id')
    if address_id:
        try:
            return Address.objects.get(id=address_id, user=user).as_snapshot()
        except (Address.DoesNotExist, ValueError):
            raise ValueError('Selected address not found.')

    default = user.default_address
    fallback = default.as_snapshot() if default else {}
    fallback.setdefault('fullname', user.display_name or 'Customer')
    fallback.setdefault('phone', user.contact or '')

    snapshot = {}
    for field in SHIPPING_FIELDS:
        value = str(shipping_details.get(field) or '').strip()
        snapshot[field] = value or fallback.get(field, '')
    return snapshot


def _snapshot_lines(cart_items, products, now):
    lines = []
    for item in cart_items:
        product = products.get(item.product_id)
        if product is None:
            raise ProductUnavailableError(
                'A product in your cart is no longer available.', product_id=item.product_id
            )
        if not product.is_available(item.quantity):
            raise ProductUnavailableError(
                f'"{product.name}" is out of stock.', product_id=product.id
            )
        lines.append({
            'product':  product,
            'name':     product.name,
            'price':    product.price,
            'discount': product.current_discount(now),
            'quantity': item.quantity,
            'image':    product.image,
            'bgcolor':  product.bgcolor,
        })
    return lines


def _insert_order(order_number, fields):
    """Insert one order row; a clash on the order number is reported, not raised raw."""
    try:
        with transaction.atomic():
            return Order.objects.create(order_number=order_number, **fields)
    except IntegrityError as exc:
        if Order.objects.filter(order_number=order_number).exists():
            raise DuplicateOrderIdentifierError(f'Order number {order_number} already in use') from exc
        raise


def _create_order(fields, store, now):
    for attempt in range(1, store.order_number_max_attempts + 1):
        order_number = generate_order_number(store.order_number_prefix, now)
        try:
            return _insert_order(order_number, fields)
        except DuplicateOrderIdentifierError as exc:
            logger.warning(f"Order number collision on attempt {attempt}: {exc}")
    raise PersistenceError('Could not allocate a unique order number. Please try again.')


# ─────────────────────────────────────────────────────────────
# PLACE ORDER
# ─────────────────────────────────────────────────────────────

def place_order(user, shipping_details=None, payment_method='cod', coupon_code=None, store=None, now=None):
    """
    Turn the user's cart into an order.

    Everything from reading the cart to clearing it runs in one transaction:
    the order, its items, the coupon usage, the first history row and the
    emptied cart are committed together or not at all.
    """
    store = store or StoreSettings.from_settings()
    now = now or timezone.now()

    payment_method = (payment_method or 'cod').strip()
    if payment_method not in PAYMENT_METHODS:
        raise ValueError(f'Unknown payment method: "{payment_method}".')

    shipping = resolve_shipping(user, shipping_details)

    try:
        with transaction.atomic():
            cart_items = list(
                CartItem.objects.select_for_update()
                .filter(cart__customer=user)
                .order_by('created_at', 'id')
            )
            if not cart_items:
                raise EmptyCartError()

            products = resolve_products([item.product_id for item in cart_items], for_update=True)
            lines = _snapshot_lines(cart_items, products, now)
            totals = compute_totals(lines, store.platform_fee, store.shipping_fee)

            coupon = None
            if coupon_code:
                coupon = get_coupon(coupon_code)
                check = validate_coupon(coupon, user, totals.merchandise_amount, now=now)
                if not check.valid:
                    raise CouponInvalidError(check.reason)
                totals = compute_totals(
                    lines, store.platform_fee, store.shipping_fee,
                    coupon_discount=calculate_discount(coupon, totals.merchandise_amount),
                )

            order = _create_order({
                'customer':          user,
                'status':            'pending',
                'currency':          store.currency,
                'coupon':            coupon,
                'coupon_code':       coupon.code if coupon else '',
                'payment_method':    payment_method,
                'payment_status':    'pending',
                'shipping_fullname': shipping['fullname'],
                'shipping_phone':    shipping['phone'],
                'shipping_address':  shipping['address'],
                'shipping_city':     shipping['city'],
                'shipping_state':    shipping['state'],
                'shipping_pincode':  shipping['pincode'],
                **totals.as_dict(),
            }, store, now)

            OrderItem.objects.bulk_create([
                OrderItem(
                    order    = order,
                    product  = line['product'],
                    name     = line['name'],
                    price    = line['price'],
                    discount = line['discount'],
                    quantity = line['quantity'],
                    image    = line['image'],
                    bgcolor  = line['bgcolor'],
                )
                for line in lines
            ])

            if coupon:
                redeem_coupon(coupon, user, order, totals.coupon_discount)

            OrderStatusHistory.objects.create(
                order      = order,
                to_status  = 'pending',
                notes      = 'Order created',
                changed_by = user,
            )

            CartItem.objects.filter(id__in=[item.id for item in cart_items]).delete()

    except StoreError:
        raise
    except DatabaseError as exc:
        logger.error(f"place_order failed for user {user.pk}: {exc}", exc_info=True)
        raise PersistenceError() from exc

    logger.info(
        f"Order {order.order_number} created for {user.email}: "
        f"final {order.final_amount} {order.currency}, payment {payment_method}"
    )
    return order


# ─────────────────────────────────────────────────────────────
# STATUS CHANGES
# ─────────────────────────────────────────────────────────────

def _apply_status(order, allowed_from, new_status, actor, notes, now):
    """Conditional write: only applies while the order is still in ``allowed_from``."""
    from_status = order.status
    fields = {'status': new_status, 'updated_at': now}
    if new_status in STATUS_TIMESTAMPS:
        fields[STATUS_TIMESTAMPS[new_status]] = now

    with transaction.atomic():
        updated = Order.objects.filter(pk=order.pk, status__in=allowed_from).update(**fields)
        if not updated:
            return False
        OrderStatusHistory.objects.create(
            order       = order,
            from_status = from_status,
            to_status   = new_status,
            notes       = notes,
            changed_by  = actor,
        )

    order.refresh_from_db()
    return True


def update_order_status(order, new_status, actor=None, notes='', now=None):
    now = now or timezone.now()
    current = order.status

    if not can_transition(current, new_status):
        raise InvalidTransitionError(f'Cannot change order status from "{current}" to "{new_status}".')

    if not _apply_status(order, [current], new_status, actor, notes, now):
        order.refresh_from_db()
        raise InvalidTransitionError(
            f'Order {order.order_number} changed to "{order.status}" before this update was applied.'
        )

    logger.info(f"Order {order.order_number} status {current} -> {new_status}")
    return order


def cancel_order(order, user, now=None):
    now = now or timezone.now()

    if order.customer_id != user.pk:
        raise CancellationNotAllowedError('You can only cancel your own orders.')
    if order.status not in CANCELLABLE_STATUSES:
        raise CancellationNotAllowedError('Cannot cancel this order')

    if not _apply_status(order, CANCELLABLE_STATUSES, 'cancelled', user, 'Cancelled by customer', now):
        raise CancellationNotAllowedError('Cannot cancel this order')

    logger.info(f"Order {order.order_number} cancelled by customer {user.pk}")
    return order


def update_payment_status(order, new_status, actor=None, now=None):
    now = now or timezone.now()
    current = order.payment_status

    if new_status not in PAYMENT_TRANSITIONS.get(current, set()):
        raise InvalidPaymentStatusError(f'Cannot change payment status from "{current}" to "{new_status}".')

    fields = {'payment_status': new_status, 'updated_at': now}
    if new_status == 'paid':
        fields['paid_at'] = now

    updated = Order.objects.filter(pk=order.pk, payment_status=current).update(**fields)
    order.refresh_from_db()
    if not updated:
        raise InvalidPaymentStatusError(
            f'Payment status of {order.order_number} changed to "{order.payment_status}" before this update was applied.'
        )

    logger.info(f"Order {order.order_number} payment {current} -> {new_status} (by {getattr(actor, 'pk', None)})")
    return order


# ─────────────────────────────────────────────────────────────
# READ SIDE
# ─────────────────────────────────────────────────────────────

def orders_for_user(user, limit=None):
    orders = Order.objects.filter(customer=user).prefetch_related('items').order_by('-created_at', '-id')
    if limit:
        orders = orders[:limit]
    return orders
