# reviews/views.py
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.contrib.auth.decorators import login_required
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from catalog.models import Product
from core.http import request_data, error_response, form_errors
from .exceptions import ReviewError
from .forms import ReviewForm
from .models import Review

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────

def serialize_review(review):
    return {
        'id':         review.id,
        'customer':   review.customer.display_name,
        'rating':     review.rating,
        'title':      review.title,
        'comment':    review.comment,
        'created_at': review.created_at.isoformat(),
    }


def refresh_product_rating(product):
    """Recompute the stored average and count from the product's reviews."""
    stats = Review.objects.filter(product=product).aggregate(average=Avg('rating'), count=Count('id'))
    average = Decimal(str(stats['average'] or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    Product.objects.filter(pk=product.pk).update(rating=average, rating_count=stats['count'])
    product.rating = average
    product.rating_count = stats['count']
    return product


@transaction.atomic
def add_review(user, product, rating, title='', comment=''):
    """
    Save ``user``'s review of ``product`` and refresh the product's rating.
    A second review by the same user is refused by the unique constraint.
    """
    try:
        with transaction.atomic():
            review = Review.objects.create(
                product=product, customer=user, rating=rating, title=title, comment=comment,
            )
    except IntegrityError:
        raise ReviewError('You have already reviewed this product')

    refresh_product_rating(product)
    logger.info(f"Review {review.id} ({rating}/5) added to product {product.id} by user {user.pk}")
    return review


# ==================== REVIEWS ====================

@login_required
def product_reviews(request, product_id):
    product = get_object_or_404(Product, id=product_id)
    reviews = product.reviews.select_related('customer')
    return JsonResponse({
        'product_id':   product.id,
        'rating':       float(product.rating),
        'rating_count': product.rating_count,
        'reviews':      [serialize_review(r) for r in reviews],
    })


@login_required
@require_POST
def write_review(request, product_id):
    product = get_object_or_404(Product, id=product_id)

    form = ReviewForm(request_data(request))
    if not form.is_valid():
        return error_response('Please correct the errors below.', errors=form_errors(form))

    try:
        review = add_review(request.user, product, **form.cleaned_data)
    except ReviewError as e:
        return error_response(e.message)

    return JsonResponse({
        'success':      True,
        'message':      'Review added successfully',
        'review':       serialize_review(review),
        'rating':       float(product.rating),
        'rating_count': product.rating_count,
    }, status=201)
