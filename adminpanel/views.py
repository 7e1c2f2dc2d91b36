# adminpanel/views.py
import logging

from django.contrib.auth.decorators import login_required, user_passes_test
from django.db import transaction
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from catalog.models import Product
from catalog.views import serialize_product
from core.http import request_data, error_response, form_errors
from orders.exceptions import InvalidTransitionError, InvalidPaymentStatusError
from orders.models import Order
from orders.services import update_order_status, update_payment_status
from orders.views import serialize_order
from .forms import ProductForm, CouponForm

logger = logging.getLogger(__name__)


# Helper function to check if user is admin
def is_admin(user):
    return user.is_authenticated and (user.is_staff or user.user_type == 'owner')


# ==================== ORDERS ====================

@login_required
@user_passes_test(is_admin)
def order_list(request):
    """All orders, newest first, optionally filtered by status"""
    orders = Order.objects.select_related('customer').prefetch_related('items').order_by('-created_at', '-id')

    status_filter = request.GET.get('status', '')
    if status_filter and status_filter != 'all':
        orders = orders.filter(status=status_filter)

    return JsonResponse({
        'orders':         [dict(serialize_order(o), customer=o.customer.email) for o in orders],
        'status_filter':  status_filter,
        'order_statuses': [key for key, _ in Order.ORDER_STATUS],
    })


@login_required
@user_passes_test(is_admin)
@require_POST
def order_update_status(request, order_number):
    order = get_object_or_404(Order, order_number=order_number)
    data = request_data(request)
    new_status = (data.get('status') or '').strip()

    try:
        update_order_status(order, new_status, actor=request.user, notes=data.get('notes', ''))
    except InvalidTransitionError as e:
        return error_response(e.message, status=409)

    return JsonResponse({'success': True, 'order': serialize_order(order, with_items=False)})


@login_required
@user_passes_test(is_admin)
@require_POST
def order_update_payment(request, order_number):
    order = get_object_or_404(Order, order_number=order_number)
    new_status = (request_data(request).get('payment_status') or '').strip()

    try:
        update_payment_status(order, new_status, actor=request.user)
    except InvalidPaymentStatusError as e:
        return error_response(e.message, status=409)

    return JsonResponse({'success': True, 'order': serialize_order(order, with_items=False)})


# ==================== PRODUCTS ====================

@login_required
@user_passes_test(is_admin)
@require_POST
def product_add(request):
    form = ProductForm(request_data(request))
    if not form.is_valid():
        return error_response('Please correct the errors below.', errors=form_errors(form))

    product = form.save()
    logger.info(f"Product {product.id} created by {request.user.email}")
    return JsonResponse({'success': True, 'product': serialize_product(product)}, status=201)


@login_required
@user_passes_test(is_admin)
@require_POST
def product_edit(request, product_id):
    """Partial update: fields left out keep their current values"""
    product = get_object_or_404(Product, id=product_id)

    data = model_to_dict(product, fields=ProductForm._meta.fields)
    data.update(request_data(request))
    form = ProductForm(data, instance=product)
    if not form.is_valid():
        return error_response('Please correct the errors below.', errors=form_errors(form))

    product = form.save()
    return JsonResponse({'success': True, 'product': serialize_product(product)})


@login_required
@user_passes_test(is_admin)
@require_POST
def product_delete(request, product_id):
    """Placed orders keep their item snapshots; only the back-reference is cleared"""
    product = get_object_or_404(Product, id=product_id)
    with transaction.atomic():
        product.delete()
    logger.info(f"Product {product_id} deleted by {request.user.email}")
    return JsonResponse({'success': True, 'deleted': product_id})


# ==================== COUPONS ====================

@login_required
@user_passes_test(is_admin)
@require_POST
def coupon_add(request):
    form = CouponForm(request_data(request))
    if not form.is_valid():
        return error_response('Please correct the errors below.', errors=form_errors(form))

    coupon = form.save()
    return JsonResponse({
        'success': True,
        'message': f'Coupon {coupon.code} created successfully',
        'code':    coupon.code,
    }, status=201)
