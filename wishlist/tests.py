from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from cart.models import CartItem
from cart.views import add_to_cart
from catalog.models import Product
from .models import WishlistItem
from .views import get_or_create_wishlist, move_product_to_cart


class WishlistTests(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='wisher', email='wisher@example.com', password='secret123'
        )
        self.client.force_login(self.user)
        self.product = Product.objects.create(name='Frame', slug='frame', price=500)

    def test_toggle_adds_then_removes(self):
        url = reverse('wishlist:toggle', args=[self.product.id])

        first = self.client.post(url).json()
        self.assertTrue(first['added'])
        self.assertEqual(first['wishlist_count'], 1)

        second = self.client.post(url).json()
        self.assertFalse(second['added'])
        self.assertEqual(second['wishlist_count'], 0)

    def test_add_is_idempotent(self):
        url = reverse('wishlist:add', args=[self.product.id])
        self.client.post(url)
        response = self.client.post(url)
        self.assertEqual(response.json()['wishlist_count'], 1)

    def test_move_to_cart(self):
        WishlistItem.objects.create(wishlist=get_or_create_wishlist(self.user), product=self.product)

        response = self.client.post(reverse('wishlist:move_to_cart', args=[self.product.id]))

        self.assertEqual(response.json()['wishlist_count'], 0)
        item = CartItem.objects.get(cart__customer=self.user, product=self.product)
        self.assertEqual(item.quantity, 1)

    def test_move_does_not_add_a_second_unit(self):
        add_to_cart(self.user, self.product)
        WishlistItem.objects.create(wishlist=get_or_create_wishlist(self.user), product=self.product)

        self.assertFalse(move_product_to_cart(self.user, self.product))
        self.assertEqual(CartItem.objects.get(cart__customer=self.user).quantity, 1)
        self.assertFalse(WishlistItem.objects.exists())
