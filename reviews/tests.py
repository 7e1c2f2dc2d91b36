import json
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse

from catalog.models import Product
from .exceptions import ReviewError
from .models import Review
from .views import add_review


def make_user(username):
    return get_user_model().objects.create_user(
        username=username, email=f'{username}@example.com', password='secret123'
    )


class AddReviewTests(TestCase):

    def setUp(self):
        self.product = Product.objects.create(name='Frame', slug='frame', price=500)
        self.asha = make_user('asha')
        self.ravi = make_user('ravi')

    def test_rating_is_recomputed(self):
        add_review(self.asha, self.product, 5)
        add_review(self.ravi, self.product, 4)

        self.product.refresh_from_db()
        self.assertEqual(self.product.rating, Decimal('4.50'))
        self.assertEqual(self.product.rating_count, 2)

    def test_average_is_rounded_to_two_places(self):
        add_review(self.asha, self.product, 5)
        add_review(self.ravi, self.product, 4)
        add_review(make_user('meera'), self.product, 4)

        self.product.refresh_from_db()
        self.assertEqual(self.product.rating, Decimal('4.33'))
        self.assertEqual(self.product.rating_count, 3)

    def test_second_review_by_same_user_is_refused(self):
        add_review(self.asha, self.product, 5)

        with self.assertRaisesMessage(ReviewError, 'You have already reviewed this product'):
            add_review(self.asha, self.product, 1)

        self.product.refresh_from_db()
        self.assertEqual(self.product.rating, Decimal('5.00'))
        self.assertEqual(self.product.rating_count, 1)
        self.assertEqual(Review.objects.count(), 1)

    def test_database_rejects_out_of_range_rating(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            Review.objects.create(product=self.product, customer=self.asha, rating=6)


class ReviewViewTests(TestCase):

    def setUp(self):
        self.user = make_user('asha')
        self.client.force_login(self.user)
        self.product = Product.objects.create(name='Frame', slug='frame', price=500)
        self.url = reverse('reviews:write_review', args=[self.product.id])

    def post_json(self, data):
        return self.client.post(self.url, data=json.dumps(data), content_type='application/json')

    def test_write_review(self):
        response = self.post_json({'rating': 4, 'title': ' Comfortable ', 'comment': 'Light and sturdy.'})

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['rating'], 4.0)
        self.assertEqual(data['rating_count'], 1)
        self.assertEqual(data['review']['title'], 'Comfortable')

    def test_duplicate_review_is_400(self):
        self.post_json({'rating': 4})
        response = self.post_json({'rating': 2})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'You have already reviewed this product')

    def test_rating_must_be_between_1_and_5(self):
        for rating in (0, 6, 'five'):
            response = self.post_json({'rating': rating})
            self.assertEqual(response.status_code, 400)
            self.assertIn('rating', response.json()['errors'])
        self.assertFalse(Review.objects.exists())

    def test_list_reviews(self):
        add_review(make_user('ravi'), self.product, 3, comment='Fine')
        data = self.client.get(reverse('reviews:product_reviews', args=[self.product.id])).json()

        self.assertEqual(data['rating_count'], 1)
        self.assertEqual([r['comment'] for r in data['reviews']], ['Fine'])

    def test_unknown_product_is_404(self):
        response = self.client.post(reverse('reviews:write_review', args=[999999]), {'rating': 5})
        self.assertEqual(response.status_code, 404)

    def test_popular_sort_follows_reviews(self):
        other = Product.objects.create(name='Lens', slug='lens', price=300)
        add_review(make_user('ravi'), other, 5)
        add_review(make_user('meera'), self.product, 2)

        response = self.client.get(reverse('catalog:shop'), {'sortby': 'popular'})
        self.assertEqual([p['id'] for p in response.json()['products']], [other.id, self.product.id])
