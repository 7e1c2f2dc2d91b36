# catalog/views.py
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone

from .models import Product


SORT_OPTIONS = {
    'newest':    ['-created_at', '-id'],
    'lowprice':  ['price', 'id'],
    'highprice': ['-price', 'id'],
    'popular':   ['-rating', '-view_count', '-created_at'],
}


def serialize_product(product, now=None):
    now = now or timezone.now()
    return {
        'id':                 product.id,
        'name':               product.name,
        'slug':               product.slug,
        'category':           product.category.name if product.category_id else None,
        'image':              product.image,
        'price':              product.price,
        'discount':           product.current_discount(now),
        'selling_price':      product.selling_price(now),
        'in_stock':           product.is_available(),
        'stock_quantity':     product.stock_quantity,
        'rating':             float(product.rating),
        'rating_count':       product.rating_count,
        'flash_sale':         product.flash_sale_active(now),
        'flash_sale_price':   product.flash_sale_price,
        'flash_sale_ends_at': product.flash_sale_ends_at.isoformat() if product.flash_sale_ends_at else None,
        'bgcolor':            product.bgcolor,
        'panelcolor':         product.panelcolor,
        'textcolor':          product.textcolor,
    }


@login_required
def shop(request):
    """Product listing with the shop's filter and sort options."""
    sortby = request.GET.get('sortby') or 'popular'
    filter_by = request.GET.get('filter', '')

    products = Product.objects.select_related('category')
    if filter_by == 'discounted':
        products = products.filter(discount__gt=0)

    products = products.order_by(*SORT_OPTIONS.get(sortby, SORT_OPTIONS['popular']))

    now = timezone.now()
    return JsonResponse({
        'sortby':   sortby if sortby in SORT_OPTIONS else 'popular',
        'products': [serialize_product(p, now) for p in products],
    })


@login_required
def search(request):
    query = request.GET.get('q', '').strip()
    results = []
    if query:
        now = timezone.now()
        results = [
            serialize_product(p, now)
            for p in Product.objects.filter(name__icontains=query).select_related('category')
        ]
    return JsonResponse({'query': query, 'results': results})


@login_required
def product_detail(request, product_id):
    product = get_object_or_404(Product.objects.select_related('category'), id=product_id)
    data = serialize_product(product)
    data.update({
        'description': product.description,
        'features':    product.features,
    })
    return JsonResponse({'product': data})
