# users/views.py
import logging

from django.conf import settings
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import F
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_POST

from catalog.models import Product
from catalog.views import serialize_product
from core.http import request_data, error_response, form_errors
from .forms import AddressForm, ProfileForm
from .models import User, Address, RecentlyViewed

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────

def serialize_address(address):
    data = address.as_snapshot()
    data.update({'id': address.id, 'is_default': address.is_default})
    return data


@transaction.atomic
def add_address(user, cleaned_data):
    """Save a new address; the user's first address becomes the default."""
    is_first = not user.addresses.exists()
    return Address.objects.create(user=user, is_default=is_first, **cleaned_data)


@transaction.atomic
def set_default_address(user, address_id):
    address = get_object_or_404(Address, id=address_id, user=user)
    user.addresses.exclude(id=address.id).filter(is_default=True).update(is_default=False)
    if not address.is_default:
        address.is_default = True
        address.save(update_fields=['is_default', 'updated_at'])
    return address


@transaction.atomic
def delete_address(user, address_id):
    """Delete an address, promoting the newest remaining one if it was the default."""
    address = get_object_or_404(Address, id=address_id, user=user)
    was_default = address.is_default
    address.delete()
    if was_default:
        replacement = user.addresses.order_by('-created_at', '-id').first()
        if replacement:
            replacement.is_default = True
            replacement.save(update_fields=['is_default', 'updated_at'])


@transaction.atomic
def track_view(user, product, now=None):
    """Move ``product`` to the front of the user's recently viewed list."""
    now = now or timezone.now()
    limit = getattr(settings, 'RECENTLY_VIEWED_LIMIT', 20)

    RecentlyViewed.objects.update_or_create(
        user=user, product=product, defaults={'viewed_at': now}
    )
    stale_ids = list(
        RecentlyViewed.objects.filter(user=user).values_list('id', flat=True)[limit:]
    )
    if stale_ids:
        RecentlyViewed.objects.filter(id__in=stale_ids).delete()

    Product.objects.filter(id=product.id).update(view_count=F('view_count') + 1)


# ==================== LOGIN ====================

def user_login(request):
    """
    GET answers anonymous callers bounced here by login_required;
    POST signs in with email and password.
    """
    if request.method != 'POST':
        if request.user.is_authenticated:
            return JsonResponse({'success': True, 'email': request.user.email})
        return error_response('Please log in to continue.', status=401, next=request.GET.get('next', ''))

    data = request_data(request)
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''

    try:
        user_obj = User.objects.get(email=email)
        user = authenticate(request, username=user_obj.username, password=password)
    except User.DoesNotExist:
        user = None

    if user is None:
        return error_response('Invalid email or password', status=401)

    login(request, user)
    logger.info(f"User {user.pk} logged in")
    return JsonResponse({'success': True, 'email': user.email, 'fullname': user.display_name})


@login_required
@require_POST
def user_logout(request):
    logout(request)
    return JsonResponse({'success': True, 'message': 'You have been logged out successfully.'})


# ==================== PROFILE ====================

@login_required
def profile_view(request):
    user = request.user
    return JsonResponse({
        'id':        user.id,
        'email':     user.email,
        'fullname':  user.display_name,
        'contact':   user.contact,
        'addresses': [serialize_address(a) for a in user.addresses.all()],
        'orders':    user.orders.count(),
    })


@login_required
@require_POST
def profile_update(request):
    form = ProfileForm(request_data(request))
    if not form.is_valid():
        return error_response('Please correct the errors below.', errors=form_errors(form))

    user = request.user
    user.fullname = form.cleaned_data['fullname'] or user.fullname
    user.contact = form.cleaned_data['contact'] or user.contact
    user.save(update_fields=['fullname', 'contact', 'updated_at'])
    return JsonResponse({'success': True, 'message': 'Profile updated successfully'})


# ==================== ADDRESSES ====================

@login_required
def address_list(request):
    return JsonResponse({
        'addresses': [serialize_address(a) for a in request.user.addresses.all()],
    })


@login_required
@require_POST
def address_add(request):
    form = AddressForm(request_data(request))
    if not form.is_valid():
        return error_response('Please fill in all required address fields.', errors=form_errors(form))

    address = add_address(request.user, form.cleaned_data)
    return JsonResponse({'success': True, 'address': serialize_address(address)}, status=201)


@login_required
@require_POST
def address_set_default(request, address_id):
    address = set_default_address(request.user, address_id)
    return JsonResponse({'success': True, 'address': serialize_address(address)})


@login_required
@require_POST
def address_delete(request, address_id):
    delete_address(request.user, address_id)
    return JsonResponse({'success': True})


# ==================== RECENTLY VIEWED ====================

@login_required
@require_POST
def track_view_api(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    track_view(request.user, product)
    return JsonResponse({'success': True})


@login_required
def recently_viewed(request):
    entries = RecentlyViewed.objects.filter(user=request.user).select_related('product', 'product__category')
    return JsonResponse({
        'success':  True,
        'products': [
            {'product': serialize_product(e.product), 'viewed_at': e.viewed_at.isoformat()}
            for e in entries
        ],
    })
