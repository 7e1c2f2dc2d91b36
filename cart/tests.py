import json

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from catalog.models import Product
from .models import CartItem
from .views import add_to_cart, remove_from_cart, clear_cart, get_cart_totals, get_or_create_cart


class CartTests(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='cart-user', email='cart@example.com', password='secret123'
        )
        self.frame = Product.objects.create(name='Frame', slug='frame', price=500, discount=50)
        self.lens = Product.objects.create(name='Lens', slug='lens', price=300)

    def quantities(self):
        return dict(CartItem.objects.filter(cart__customer=self.user).values_list('product_id', 'quantity'))

    def test_adding_same_product_increments_quantity(self):
        add_to_cart(self.user, self.frame)
        add_to_cart(self.user, self.frame, quantity=2)
        self.assertEqual(self.quantities(), {self.frame.id: 3})

    def test_add_rejects_non_positive_quantity(self):
        with self.assertRaises(ValueError):
            add_to_cart(self.user, self.frame, quantity=0)

    def test_remove_takes_off_one_unit(self):
        add_to_cart(self.user, self.frame, quantity=2)

        self.assertTrue(remove_from_cart(self.user, self.frame))
        self.assertEqual(self.quantities(), {self.frame.id: 1})

        self.assertTrue(remove_from_cart(self.user, self.frame))
        self.assertEqual(self.quantities(), {})

    def test_remove_all_units(self):
        add_to_cart(self.user, self.frame, quantity=3)
        add_to_cart(self.user, self.lens)

        remove_from_cart(self.user, self.frame, all_units=True)
        self.assertEqual(self.quantities(), {self.lens.id: 1})

    def test_remove_missing_product(self):
        self.assertFalse(remove_from_cart(self.user, self.frame))

    def test_clear_cart(self):
        add_to_cart(self.user, self.frame)
        add_to_cart(self.user, self.lens)
        clear_cart(self.user)
        self.assertEqual(self.quantities(), {})

    def test_totals(self):
        add_to_cart(self.user, self.frame)
        add_to_cart(self.user, self.lens)

        lines, totals = get_cart_totals(get_or_create_cart(self.user))

        self.assertEqual([line['name'] for line in lines], ['Frame', 'Lens'])
        self.assertEqual(totals['total_amount'], 800)
        self.assertEqual(totals['total_discount'], 50)
        self.assertEqual(totals['platform_fee'], 20)
        self.assertEqual(totals['final_amount'], 770)
        self.assertEqual(totals['item_count'], 2)

    @override_settings(STORE_PLATFORM_FEE=0, STORE_SHIPPING_FEE=40)
    def test_totals_follow_store_settings(self):
        add_to_cart(self.user, self.lens, quantity=2)
        _, totals = get_cart_totals(get_or_create_cart(self.user))
        self.assertEqual(totals['final_amount'], 640)

    def test_deleting_a_product_drops_it_from_carts(self):
        add_to_cart(self.user, self.frame)
        self.frame.delete()
        self.assertEqual(self.quantities(), {})


class CartViewTests(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='cart-user', email='cart@example.com', password='secret123'
        )
        self.client.force_login(self.user)
        self.product = Product.objects.create(name='Frame', slug='frame', price=500)

    def test_add_and_count(self):
        response = self.client.post(
            reverse('cart:add_to_cart', args=[self.product.id]),
            data=json.dumps({'quantity': 2}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['totals']['item_count'], 2)

        count = self.client.get(reverse('cart:get_cart_count'))
        self.assertEqual(count.json()['cart_count'], 2)

    def test_add_rejects_bad_quantity(self):
        response = self.client.post(reverse('cart:add_to_cart', args=[self.product.id]), {'quantity': '0'})
        self.assertEqual(response.status_code, 400)

    def test_remove_missing_is_404(self):
        response = self.client.post(reverse('cart:remove_from_cart', args=[self.product.id]))
        self.assertEqual(response.status_code, 404)

    def test_remove_all_flag(self):
        add_to_cart(self.user, self.product, quantity=3)
        response = self.client.post(reverse('cart:remove_from_cart', args=[self.product.id]), {'all': 'true'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['items'], [])

    def test_get_is_not_allowed_for_add(self):
        response = self.client.get(reverse('cart:add_to_cart', args=[self.product.id]))
        self.assertEqual(response.status_code, 405)
