# wishlist/views.py
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from cart.models import CartItem
from cart.views import get_or_create_cart
from catalog.models import Product
from catalog.views import serialize_product
from .models import Wishlist


def get_or_create_wishlist(user):
    wishlist, _ = Wishlist.objects.get_or_create(user=user)
    return wishlist


@transaction.atomic
def move_product_to_cart(user, product):
    """
    Take ``product`` off the wishlist and put one unit in the cart,
    unless the cart already holds it. Returns True when a unit was added.
    """
    get_or_create_wishlist(user).discard(product)
    _, added = CartItem.objects.get_or_create(
        cart=get_or_create_cart(user), product=product, defaults={'quantity': 1}
    )
    return added


@login_required
def wishlist_view(request):
    wishlist = get_or_create_wishlist(request.user)
    items = wishlist.items.select_related('product', 'product__category')
    return JsonResponse({
        'items':      [serialize_product(item.product) for item in items],
        'item_count': wishlist.count,
    })


@login_required
@require_POST
def toggle_wishlist(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    wishlist = get_or_create_wishlist(request.user)

    added = wishlist.toggle(product)
    if added:
        message = f'"{product.name}" added to your wishlist!'
    else:
        message = f'"{product.name}" removed from your wishlist.'

    return JsonResponse({
        'added':          added,
        'wishlist_count': wishlist.count,
        'message':        message,
        'product_id':     product_id,
    })


@login_required
@require_POST
def add_to_wishlist(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    wishlist = get_or_create_wishlist(request.user)
    wishlist.add(product)
    return JsonResponse({'success': True, 'wishlist_count': wishlist.count})


@login_required
@require_POST
def remove_from_wishlist(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    wishlist = get_or_create_wishlist(request.user)
    wishlist.discard(product)
    return JsonResponse({'success': True, 'wishlist_count': wishlist.count, 'product_id': product_id})


@login_required
@require_POST
def move_to_cart(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    added = move_product_to_cart(request.user, product)
    return JsonResponse({
        'success':        True,
        'added_to_cart':  added,
        'wishlist_count': get_or_create_wishlist(request.user).count,
        'message':        f'"{product.name}" moved to cart!',
    })


@login_required
def wishlist_count(request):
    return JsonResponse({'wishlist_count': get_or_create_wishlist(request.user).count})
