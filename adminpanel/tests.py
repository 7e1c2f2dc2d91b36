import json

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from cart.views import add_to_cart
from catalog.models import Product
from orders.pricing import StoreSettings
from orders.services import place_order
from promotions.models import Coupon
from .views import is_admin


def make_user(username, **extra):
    return get_user_model().objects.create_user(
        username=username, email=f'{username}@example.com', password='secret123', **extra
    )


class AdminPanelTestCase(TestCase):

    def setUp(self):
        self.admin = make_user('owner', user_type='owner')
        self.customer = make_user('customer')
        self.product = Product.objects.create(name='Frame', slug='frame', price=500, discount=50)
        self.client.force_login(self.admin)

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')


class AccessTests(AdminPanelTestCase):

    def test_is_admin(self):
        self.assertTrue(is_admin(self.admin))
        self.assertTrue(is_admin(make_user('staff', is_staff=True)))
        self.assertFalse(is_admin(self.customer))

    def test_customers_are_redirected(self):
        self.client.force_login(self.customer)
        response = self.client.get(reverse('adminpanel:order_list'))
        self.assertEqual(response.status_code, 302)


class OrderAdminTests(AdminPanelTestCase):

    def setUp(self):
        super().setUp()
        add_to_cart(self.customer, self.product)
        self.order = place_order(self.customer, store=StoreSettings())

    def test_order_list_filters_by_status(self):
        data = self.client.get(reverse('adminpanel:order_list'), {'status': 'pending'}).json()
        self.assertEqual([o['order_number'] for o in data['orders']], [self.order.order_number])
        self.assertEqual(data['orders'][0]['customer'], 'customer@example.com')

        data = self.client.get(reverse('adminpanel:order_list'), {'status': 'shipped'}).json()
        self.assertEqual(data['orders'], [])

    def test_status_update(self):
        url = reverse('adminpanel:order_update_status', args=[self.order.order_number])
        response = self.post_json(url, {'status': 'confirmed', 'notes': 'stock checked'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['order']['status'], 'confirmed')
        latest = self.order.status_history.first()
        self.assertEqual(latest.changed_by, self.admin)

    def test_invalid_status_update_is_409(self):
        url = reverse('adminpanel:order_update_status', args=[self.order.order_number])
        response = self.post_json(url, {'status': 'delivered'})

        self.assertEqual(response.status_code, 409)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'pending')

    def test_payment_update(self):
        url = reverse('adminpanel:order_update_payment', args=[self.order.order_number])
        self.assertEqual(self.post_json(url, {'payment_status': 'paid'}).status_code, 200)
        self.assertEqual(self.post_json(url, {'payment_status': 'failed'}).status_code, 409)

    def test_unknown_order_is_404(self):
        url = reverse('adminpanel:order_update_status', args=['ORDMISSING'])
        self.assertEqual(self.post_json(url, {'status': 'confirmed'}).status_code, 404)

    def test_deleting_product_keeps_order_items(self):
        response = self.client.post(reverse('adminpanel:product_delete', args=[self.product.id]))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Product.objects.filter(id=self.product.id).exists())
        item = self.order.items.get()
        self.assertIsNone(item.product_id)
        self.assertEqual((item.name, item.price, item.discount), ('Frame', 500, 50))


class CatalogAdminTests(AdminPanelTestCase):

    def test_add_product(self):
        response = self.post_json(reverse('adminpanel:product_add'), {
            'name': 'Aviator', 'slug': 'aviator', 'price': 1200, 'discount': 200,
            'in_stock': True, 'stock_quantity': 10,
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['product']['selling_price'], 1000)

    def test_add_product_rejects_discount_above_price(self):
        response = self.post_json(reverse('adminpanel:product_add'), {
            'name': 'Broken', 'slug': 'broken', 'price': 100, 'discount': 200,
            'in_stock': True, 'stock_quantity': 10,
        })
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Product.objects.filter(slug='broken').exists())

    def test_edit_is_partial(self):
        response = self.post_json(reverse('adminpanel:product_edit', args=[self.product.id]), {'price': 600})

        self.assertEqual(response.status_code, 200)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price, 600)
        self.assertEqual(self.product.name, 'Frame')
        self.assertEqual(self.product.discount, 50)

    def test_add_coupon(self):
        payload = {
            'code': 'welcome', 'discount_type': 'fixed', 'discount_value': 100,
            'min_order_amount': 0, 'valid_from': '2024-01-01T00:00:00',
            'valid_until': '2030-01-01T00:00:00', 'is_active': True,
        }
        response = self.post_json(reverse('adminpanel:coupon_add'), payload)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['code'], 'WELCOME')
        self.assertTrue(Coupon.objects.filter(code='WELCOME').exists())

        duplicate = self.post_json(reverse('adminpanel:coupon_add'), payload)
        self.assertEqual(duplicate.status_code, 400)
        self.assertIn('code', duplicate.json()['errors'])
