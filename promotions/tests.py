import json
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import transaction
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from cart.views import add_to_cart
from catalog.models import Product
from orders.models import Order
from .exceptions import CouponInvalidError
from .models import Coupon, CouponUsage
from .services import (
    validate_coupon,
    calculate_discount,
    get_coupon,
    preview_coupon,
    redeem_coupon,
)


def make_coupon(code='SAVE10', **fields):
    now = timezone.now()
    values = {
        'discount_type':  'percentage',
        'discount_value': 10,
        'valid_from':     now - timedelta(days=1),
        'valid_until':    now + timedelta(days=1),
    }
    values.update(fields)
    return Coupon.objects.create(code=code, **values)


def make_order(user, number='ORDTEST1'):
    return Order.objects.create(
        order_number=number,
        customer=user,
        total_amount=1000,
        final_amount=1020,
        shipping_fullname='Test',
    )


class DiscountCalculationTests(TestCase):

    def test_percentage_is_capped(self):
        coupon = Coupon(discount_type='percentage', discount_value=10, max_discount=50)
        self.assertEqual(calculate_discount(coupon, 1000), 50)

    def test_percentage_rounds_down(self):
        coupon = Coupon(discount_type='percentage', discount_value=10)
        self.assertEqual(calculate_discount(coupon, 155), 15)

    def test_fixed_never_exceeds_order_amount(self):
        coupon = Coupon(discount_type='fixed', discount_value=100)
        self.assertEqual(calculate_discount(coupon, 50), 50)
        self.assertEqual(calculate_discount(coupon, 500), 100)


class ValidationTests(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='coupon-user', email='coupon@example.com', password='secret123'
        )
        self.now = timezone.now()

    def reason(self, coupon, amount=1000):
        return validate_coupon(coupon, self.user, amount, now=self.now).reason

    def test_valid_coupon(self):
        check = validate_coupon(make_coupon(), self.user, 1000, now=self.now)
        self.assertTrue(check.valid)
        self.assertIsNone(check.reason)

    def test_inactive(self):
        self.assertEqual(self.reason(make_coupon(is_active=False)), 'Coupon is not active')

    def test_not_yet_valid(self):
        coupon = make_coupon(valid_from=self.now + timedelta(hours=1))
        self.assertEqual(self.reason(coupon), 'Coupon is not yet valid')

    def test_expired(self):
        coupon = make_coupon(valid_until=self.now - timedelta(seconds=1))
        self.assertEqual(self.reason(coupon), 'Coupon has expired')

    def test_validity_window_is_inclusive(self):
        coupon = make_coupon(valid_from=self.now, valid_until=self.now + timedelta(days=1))
        self.assertTrue(validate_coupon(coupon, self.user, 1000, now=coupon.valid_from).valid)
        self.assertTrue(validate_coupon(coupon, self.user, 1000, now=coupon.valid_until).valid)

    def test_usage_limit_reached(self):
        coupon = make_coupon(usage_limit=1, used_count=1)
        self.assertEqual(self.reason(coupon), 'Coupon usage limit reached')

    def test_minimum_order_amount(self):
        coupon = make_coupon(min_order_amount=500)
        self.assertEqual(self.reason(coupon, amount=499), 'Minimum order amount is INR 500')
        self.assertIsNone(self.reason(coupon, amount=500))

    def test_already_used(self):
        coupon = make_coupon()
        CouponUsage.objects.create(coupon=coupon, user=self.user, discount_amount=10)
        self.assertEqual(self.reason(coupon), 'You have already used this coupon')

    def test_first_failing_check_wins(self):
        coupon = make_coupon(is_active=False, valid_until=self.now - timedelta(days=1), min_order_amount=5000)
        self.assertEqual(self.reason(coupon), 'Coupon is not active')


class LookupTests(TestCase):

    def test_code_is_stored_uppercase(self):
        coupon = make_coupon(code='  welcome ')
        self.assertEqual(coupon.code, 'WELCOME')

    def test_lookup_normalizes_code(self):
        coupon = make_coupon(code='WELCOME')
        self.assertEqual(get_coupon(' welcome'), coupon)

    def test_unknown_code(self):
        with self.assertRaisesMessage(CouponInvalidError, 'Invalid coupon code'):
            get_coupon('NOPE')

    def test_preview_has_no_side_effects(self):
        user = get_user_model().objects.create_user(username='u', email='u@example.com', password='secret123')
        coupon = make_coupon(max_discount=50)

        _, discount = preview_coupon('save10', user, 1000)

        coupon.refresh_from_db()
        self.assertEqual(discount, 50)
        self.assertEqual(coupon.used_count, 0)
        self.assertFalse(CouponUsage.objects.exists())


class RedeemTests(TestCase):

    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='a', email='a@example.com', password='secret123')
        self.other = User.objects.create_user(username='b', email='b@example.com', password='secret123')

    def test_redeem_records_usage(self):
        coupon = make_coupon(usage_limit=2)
        order = make_order(self.user)

        redeem_coupon(coupon, self.user, order, 50)

        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)
        self.assertIn(self.user, coupon.used_by.all())
        self.assertEqual(CouponUsage.objects.get().order, order)

    def test_redeem_respects_limit(self):
        coupon = make_coupon(usage_limit=1)
        redeem_coupon(coupon, self.user, make_order(self.user), 50)

        with self.assertRaisesMessage(CouponInvalidError, 'Coupon usage limit reached'):
            redeem_coupon(coupon, self.other, make_order(self.other, 'ORDTEST2'), 50)

        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)

    def test_redeem_twice_by_same_user(self):
        coupon = make_coupon()
        redeem_coupon(coupon, self.user, make_order(self.user), 50)

        with self.assertRaisesMessage(CouponInvalidError, 'You have already used this coupon'):
            with transaction.atomic():
                redeem_coupon(coupon, self.user, make_order(self.user, 'ORDTEST2'), 50)

        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)
        self.assertEqual(CouponUsage.objects.count(), 1)


class CouponViewTests(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='viewer', email='viewer@example.com', password='secret123'
        )
        self.client.force_login(self.user)
        product = Product.objects.create(name='Frame', slug='frame', price=800, discount=50)
        add_to_cart(self.user, product)

    def test_apply_previews_against_cart(self):
        make_coupon(max_discount=50)
        response = self.client.post(
            reverse('promotions:apply_coupon'),
            data=json.dumps({'code': 'save10'}),
            content_type='application/json',
        )
        data = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['order_amount'], 750)
        self.assertEqual(data['discount'], 50)
        self.assertFalse(CouponUsage.objects.exists())

    def test_apply_reports_reason(self):
        make_coupon(min_order_amount=1000)
        response = self.client.post(reverse('promotions:apply_coupon'), {'code': 'SAVE10'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Minimum order amount is INR 1000')

    def test_my_coupons(self):
        available = make_coupon()
        used = make_coupon(code='ONCE')
        CouponUsage.objects.create(coupon=used, user=self.user, discount_amount=30)

        data = self.client.get(reverse('promotions:my_coupons')).json()

        can_use = {c['code']: c['can_use'] for c in data['available_coupons']}
        self.assertEqual(can_use, {available.code: True, 'ONCE': False})
        self.assertEqual(data['total_saved'], 30)
