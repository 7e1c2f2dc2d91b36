from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from .models import Category, Product, resolve_products


class ProductPricingTests(TestCase):

    def setUp(self):
        self.now = timezone.now()
        self.product = Product.objects.create(name='Round Frame', slug='round-frame', price=500, discount=50)

    def test_selling_price_uses_regular_discount(self):
        self.assertEqual(self.product.current_discount(self.now), 50)
        self.assertEqual(self.product.selling_price(self.now), 450)

    def test_active_flash_sale_wins_when_deeper(self):
        self.product.is_flash_sale = True
        self.product.flash_sale_price = 300
        self.product.flash_sale_ends_at = self.now + timedelta(hours=1)

        self.assertTrue(self.product.flash_sale_active(self.now))
        self.assertEqual(self.product.current_discount(self.now), 200)
        self.assertEqual(self.product.selling_price(self.now), 300)

    def test_flash_sale_never_lowers_the_regular_discount(self):
        self.product.is_flash_sale = True
        self.product.flash_sale_price = 480
        self.assertEqual(self.product.current_discount(self.now), 50)

    def test_expired_flash_sale_is_ignored(self):
        self.product.is_flash_sale = True
        self.product.flash_sale_price = 300
        self.product.flash_sale_ends_at = self.now - timedelta(minutes=1)

        self.assertFalse(self.product.flash_sale_active(self.now))
        self.assertEqual(self.product.selling_price(self.now), 450)

    def test_availability_checks_flag_and_quantity(self):
        self.product.stock_quantity = 2
        self.assertTrue(self.product.is_available(2))
        self.assertFalse(self.product.is_available(3))

        self.product.in_stock = False
        self.assertFalse(self.product.is_available())


class ProductConstraintTests(TestCase):

    def test_clean_rejects_discount_above_price(self):
        product = Product(name='Bad', slug='bad', price=100, discount=150)
        with self.assertRaises(ValidationError):
            product.clean()

    def test_clean_requires_sale_price_for_flash_sale(self):
        product = Product(name='Sale', slug='sale', price=100, is_flash_sale=True)
        with self.assertRaises(ValidationError):
            product.clean()

    def test_database_rejects_discount_above_price(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            Product.objects.create(name='Bad', slug='bad', price=100, discount=150)

    def test_resolve_products_skips_missing_ids(self):
        kept = Product.objects.create(name='Kept', slug='kept', price=100)
        gone = Product.objects.create(name='Gone', slug='gone', price=100)
        gone_id = gone.id
        gone.delete()

        found = resolve_products([kept.id, gone_id, kept.id])
        self.assertEqual(list(found), [kept.id])


class ShopViewTests(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='shopper', email='shopper@example.com', password='secret123'
        )
        self.client.force_login(self.user)
        category = Category.objects.create(name='Frames', slug='frames')
        self.cheap = Product.objects.create(name='Cheap Frame', slug='cheap', price=200, category=category)
        self.pricey = Product.objects.create(name='Pricey Lens', slug='pricey', price=900, discount=100)

    def test_shop_sorts_by_low_price(self):
        response = self.client.get(reverse('catalog:shop'), {'sortby': 'lowprice'})
        self.assertEqual(response.status_code, 200)
        names = [p['name'] for p in response.json()['products']]
        self.assertEqual(names, ['Cheap Frame', 'Pricey Lens'])

    def test_shop_filters_discounted(self):
        response = self.client.get(reverse('catalog:shop'), {'filter': 'discounted'})
        products = response.json()['products']
        self.assertEqual([p['id'] for p in products], [self.pricey.id])
        self.assertEqual(products[0]['selling_price'], 800)

    def test_unknown_sort_falls_back_to_popular(self):
        response = self.client.get(reverse('catalog:shop'), {'sortby': 'random'})
        self.assertEqual(response.json()['sortby'], 'popular')

    def test_search_is_case_insensitive(self):
        response = self.client.get(reverse('catalog:search'), {'q': 'frame'})
        self.assertEqual([p['id'] for p in response.json()['results']], [self.cheap.id])

    def test_product_detail(self):
        response = self.client.get(reverse('catalog:product_detail', args=[self.cheap.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['product']['category'], 'Frames')

    def test_missing_product_is_404(self):
        response = self.client.get(reverse('catalog:product_detail', args=[999999]))
        self.assertEqual(response.status_code, 404)

    def test_login_required(self):
        self.client.logout()
        response = self.client.get(reverse('catalog:shop'))
        self.assertEqual(response.status_code, 302)
