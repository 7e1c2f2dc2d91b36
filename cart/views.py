# cart/views.py
import logging

from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import F, Sum
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_POST

from catalog.models import Product
from core.http import request_data, error_response
from orders.pricing import StoreSettings, compute_totals
from .models import Cart, CartItem

logger = logging.getLogger(__name__)


# ============================================
# HELPER FUNCTIONS
# ============================================

def get_or_create_cart(user):
    cart, _ = Cart.objects.get_or_create(customer=user)
    return cart


def cart_lines(cart, now=None):
    """Price every cart row against the current catalog."""
    now = now or timezone.now()
    lines = []
    for item in cart.items.select_related('product'):
        product = item.product
        lines.append({
            'item_id':       item.id,
            'product_id':    product.id,
            'name':          product.name,
            'image':         product.image,
            'bgcolor':       product.bgcolor,
            'price':         product.price,
            'discount':      product.current_discount(now),
            'quantity':      item.quantity,
            'in_stock':      product.is_available(item.quantity),
        })
    return lines


def get_cart_totals(cart, store=None, now=None):
    """Calculate all cart totals with the same arithmetic the order uses."""
    store = store or StoreSettings.from_settings()
    lines = cart_lines(cart, now=now)
    totals = compute_totals(lines, store.platform_fee, store.shipping_fee)
    data = totals.as_dict()
    data['item_count'] = sum(line['quantity'] for line in lines)
    return lines, data


def add_to_cart(user, product, quantity=1):
    """Add ``quantity`` units; an existing row for the product is incremented."""
    if quantity < 1:
        raise ValueError('Quantity must be at least 1')
    cart = get_or_create_cart(user)
    with transaction.atomic():
        item, created = CartItem.objects.get_or_create(
            cart=cart, product=product, defaults={'quantity': quantity}
        )
        if not created:
            CartItem.objects.filter(id=item.id).update(
                quantity=F('quantity') + quantity, updated_at=timezone.now()
            )
    return cart


def remove_from_cart(user, product, all_units=False):
    """
    Remove one unit of ``product`` (or every unit with ``all_units``).
    Returns False when the product was not in the cart.
    """
    cart = get_or_create_cart(user)
    with transaction.atomic():
        item = CartItem.objects.select_for_update().filter(cart=cart, product=product).first()
        if item is None:
            return False
        if all_units or item.quantity <= 1:
            item.delete()
        else:
            item.quantity -= 1
            item.save(update_fields=['quantity', 'updated_at'])
    return True


def clear_cart(user):
    CartItem.objects.filter(cart__customer=user).delete()


def cart_payload(cart):
    lines, totals = get_cart_totals(cart)
    return {'items': lines, 'totals': totals}


# ============================================
# CART VIEW PAGE
# ============================================

@login_required
def cart_view(request):
    """Display cart contents"""
    cart = get_or_create_cart(request.user)
    return JsonResponse(cart_payload(cart))


# ============================================
# ADD / REMOVE
# ============================================

@login_required
@require_POST
def add_to_cart_view(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    data = request_data(request)
    try:
        quantity = int(data.get('quantity', 1))
        cart = add_to_cart(request.user, product, quantity)
    except (TypeError, ValueError):
        return error_response('Quantity must be a positive number')

    logger.info(f"Product {product.id} added to cart of user {request.user.pk}")
    payload = cart_payload(cart)
    payload.update({'success': True, 'message': 'Product added to cart'})
    return JsonResponse(payload)


@login_required
@require_POST
def remove_from_cart_view(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    all_units = request_data(request).get('all') in (True, 'true', '1', 'on', 'yes')
    if not remove_from_cart(request.user, product, all_units=all_units):
        return error_response('Product is not in your cart', status=404)

    payload = cart_payload(get_or_create_cart(request.user))
    payload['success'] = True
    return JsonResponse(payload)


@login_required
@require_POST
def clear_cart_view(request):
    clear_cart(request.user)
    return JsonResponse({'success': True, 'message': 'Cart cleared'})


@login_required
def get_cart_count(request):
    total = CartItem.objects.filter(cart__customer=request.user).aggregate(total=Sum('quantity'))['total'] or 0
    return JsonResponse({'cart_count': total})
