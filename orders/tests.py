import json
import re
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from cart.models import CartItem
from cart.views import add_to_cart
from catalog.models import Product
from promotions.models import Coupon, CouponUsage
from users.models import Address
from .exceptions import (
    EmptyCartError,
    ProductUnavailableError,
    InvalidTransitionError,
    CancellationNotAllowedError,
    InvalidPaymentStatusError,
    CouponInvalidError,
    PersistenceError,
)
from .models import Order, OrderStatusHistory
from .pricing import StoreSettings, compute_totals
from .services import (
    ALLOWED_TRANSITIONS,
    can_transition,
    generate_order_number,
    order_timeline,
    place_order,
    update_order_status,
    cancel_order,
    update_payment_status,
    orders_for_user,
)


STATUSES = [key for key, _ in Order.ORDER_STATUS]


def make_user(username='buyer'):
    return get_user_model().objects.create_user(
        username=username, email=f'{username}@example.com', password='secret123'
    )


class PricingTests(TestCase):

    def test_totals(self):
        lines = [
            {'price': 500, 'discount': 50, 'quantity': 1},
            {'price': 300, 'discount': 0, 'quantity': 1},
        ]
        totals = compute_totals(lines, platform_fee=20, shipping_fee=0)

        self.assertEqual(totals.total_amount, 800)
        self.assertEqual(totals.total_discount, 50)
        self.assertEqual(totals.merchandise_amount, 750)
        self.assertEqual(totals.final_amount, 770)

    def test_quantity_multiplies_line(self):
        totals = compute_totals([{'price': 200, 'discount': 20, 'quantity': 3}], 20, 40)
        self.assertEqual(totals.total_amount, 600)
        self.assertEqual(totals.total_discount, 60)
        self.assertEqual(totals.final_amount, 600)

    def test_coupon_discount_is_clamped_to_merchandise(self):
        totals = compute_totals([{'price': 100, 'discount': 40, 'quantity': 1}], 20, 0, coupon_discount=500)
        self.assertEqual(totals.coupon_discount, 60)
        self.assertEqual(totals.final_amount, 20)

    def test_store_settings_overrides(self):
        store = StoreSettings.from_settings(platform_fee=0, currency=None)
        self.assertEqual(store.platform_fee, 0)
        self.assertEqual(store.currency, 'INR')


class OrderNumberTests(TestCase):

    def test_format(self):
        now = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)
        number = generate_order_number('ORD', now)
        self.assertRegex(number, r'^ORD1704067200000[A-Z0-9]{5}$')

    def test_numbers_differ(self):
        now = timezone.now()
        numbers = {generate_order_number('ORD', now) for _ in range(50)}
        self.assertGreater(len(numbers), 1)


class TransitionTests(TestCase):

    def test_lattice(self):
        expected = {
            ('pending', 'confirmed'),
            ('confirmed', 'processing'),
            ('processing', 'shipped'),
            ('shipped', 'delivered'),
            ('pending', 'cancelled'),
            ('confirmed', 'cancelled'),
            ('processing', 'cancelled'),
            ('shipped', 'cancelled'),
        }
        for current in STATUSES:
            for new in STATUSES + ['unknown']:
                self.assertEqual(
                    can_transition(current, new), (current, new) in expected, f'{current} -> {new}'
                )

    def test_terminal_statuses(self):
        self.assertEqual(ALLOWED_TRANSITIONS['delivered'], set())
        self.assertEqual(ALLOWED_TRANSITIONS['cancelled'], set())

    def test_timeline_marks_progress(self):
        timeline = order_timeline('shipped')
        self.assertEqual([step['label'] for step in timeline], [
            'Order placed', 'Order confirmed', 'Being prepared', 'On the way', 'Delivered',
        ])
        self.assertEqual([step['completed'] for step in timeline], [True, True, True, True, False])
        self.assertEqual([step['status'] for step in timeline if step['current']], ['shipped'])

    def test_timeline_for_cancelled_order(self):
        timeline = order_timeline('cancelled')
        self.assertTrue(all(step['cancelled'] for step in timeline))
        self.assertFalse(any(step['completed'] or step['current'] for step in timeline))


class PlaceOrderTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.frame = Product.objects.create(name='Frame', slug='frame', price=500, discount=50, bgcolor='#fff')
        self.lens = Product.objects.create(name='Lens', slug='lens', price=300)
        add_to_cart(self.user, self.frame)
        add_to_cart(self.user, self.lens)
        self.store = StoreSettings(platform_fee=20, shipping_fee=0)

    def make_coupon(self, **fields):
        now = timezone.now()
        values = {
            'code':           'SAVE10',
            'discount_type':  'percentage',
            'discount_value': 10,
            'max_discount':   50,
            'valid_from':     now - timedelta(days=1),
            'valid_until':    now + timedelta(days=1),
        }
        values.update(fields)
        return Coupon.objects.create(**values)

    def cart_size(self):
        return CartItem.objects.filter(cart__customer=self.user).count()

    def test_places_order_and_clears_cart(self):
        order = place_order(self.user, {'city': 'Kochi'}, store=self.store)

        self.assertRegex(order.order_number, r'^ORD\d{13}[A-Z0-9]{5}$')
        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.payment_status, 'pending')
        self.assertEqual(order.total_amount, 800)
        self.assertEqual(order.total_discount, 50)
        self.assertEqual(order.platform_fee, 20)
        self.assertEqual(order.final_amount, 770)
        self.assertEqual(order.shipping_city, 'Kochi')
        self.assertEqual(order.shipping_fullname, 'buyer')

        items = list(order.items.all())
        self.assertEqual([(i.name, i.price, i.discount, i.quantity) for i in items], [
            ('Frame', 500, 50, 1),
            ('Lens', 300, 0, 1),
        ])
        self.assertEqual(items[0].bgcolor, '#fff')

        self.assertEqual(self.cart_size(), 0)
        self.assertEqual(list(self.user.orders.all()), [order])
        self.assertEqual(order.status_history.get().to_status, 'pending')

    def test_uses_saved_address(self):
        address = Address.objects.create(
            user=self.user, fullname='Asha Rao', phone='9876543210',
            address='12 Lake Road', city='Kochi', is_default=True,
        )
        order = place_order(self.user, {'address_id': address.id}, store=self.store)
        self.assertEqual(order.shipping_snapshot['fullname'], 'Asha Rao')
        self.assertEqual(order.shipping_snapshot['address'], '12 Lake Road')

    def test_unknown_address(self):
        with self.assertRaises(ValueError):
            place_order(self.user, {'address_id': 999999}, store=self.store)
        self.assertEqual(self.cart_size(), 2)

    def test_rejects_unknown_payment_method(self):
        with self.assertRaises(ValueError):
            place_order(self.user, payment_method='barter', store=self.store)
        self.assertFalse(Order.objects.exists())

    def test_empty_cart(self):
        CartItem.objects.all().delete()
        with self.assertRaises(EmptyCartError):
            place_order(self.user, store=self.store)
        self.assertFalse(Order.objects.exists())

    def test_out_of_stock_product_rejects_order(self):
        Product.objects.filter(id=self.lens.id).update(in_stock=False)

        with self.assertRaises(ProductUnavailableError) as ctx:
            place_order(self.user, store=self.store)

        self.assertEqual(ctx.exception.product_id, self.lens.id)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(self.cart_size(), 2)

    def test_item_snapshot_survives_catalog_changes(self):
        order = place_order(self.user, store=self.store)
        Product.objects.filter(id=self.frame.id).update(price=999, discount=0, name='Renamed')
        self.lens.delete()

        items = list(order.items.all())
        self.assertEqual((items[0].name, items[0].price, items[0].discount), ('Frame', 500, 50))
        self.assertIsNone(items[1].product_id)
        self.assertEqual(items[1].name, 'Lens')

    def test_coupon_is_applied_and_recorded(self):
        coupon = self.make_coupon()

        order = place_order(self.user, coupon_code='save10', store=self.store)

        self.assertEqual(order.coupon, coupon)
        self.assertEqual(order.coupon_code, 'SAVE10')
        self.assertEqual(order.coupon_discount, 50)
        self.assertEqual(order.final_amount, 720)

        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)
        usage = CouponUsage.objects.get()
        self.assertEqual((usage.user, usage.order, usage.discount_amount), (self.user, order, 50))

    def test_invalid_coupon_leaves_no_trace(self):
        self.make_coupon(usage_limit=1, used_count=1)

        with self.assertRaisesMessage(CouponInvalidError, 'Coupon usage limit reached'):
            place_order(self.user, coupon_code='SAVE10', store=self.store)

        self.assertFalse(Order.objects.exists())
        self.assertEqual(self.cart_size(), 2)

    def test_coupon_cannot_be_used_twice(self):
        self.make_coupon()
        place_order(self.user, coupon_code='SAVE10', store=self.store)
        add_to_cart(self.user, self.lens)

        with self.assertRaisesMessage(CouponInvalidError, 'You have already used this coupon'):
            place_order(self.user, coupon_code='SAVE10', store=self.store)

        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(self.cart_size(), 1)

    def test_failed_redeem_rolls_back_order_and_cart(self):
        coupon = self.make_coupon()

        with mock.patch('orders.services.redeem_coupon', side_effect=CouponInvalidError('Coupon usage limit reached')):
            with self.assertRaises(CouponInvalidError):
                place_order(self.user, coupon_code='SAVE10', store=self.store)

        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 0)
        self.assertFalse(Order.objects.exists())
        self.assertFalse(OrderStatusHistory.objects.exists())
        self.assertEqual(self.cart_size(), 2)

    def test_orders_get_unique_numbers(self):
        numbers = set()
        for _ in range(5):
            add_to_cart(self.user, self.lens)
            numbers.add(place_order(self.user, store=self.store).order_number)
        self.assertEqual(len(numbers), 5)

    def test_order_number_collision_is_retried(self):
        other = make_user('other')
        Order.objects.create(order_number='ORDTAKEN', customer=other, total_amount=1, final_amount=1, shipping_fullname='x')

        with mock.patch('orders.services.generate_order_number', side_effect=['ORDTAKEN', 'ORDFRESH']):
            order = place_order(self.user, store=self.store)

        self.assertEqual(order.order_number, 'ORDFRESH')
        self.assertEqual(self.cart_size(), 0)

    def test_exhausted_retries_raise_persistence_error(self):
        other = make_user('other')
        Order.objects.create(order_number='ORDTAKEN', customer=other, total_amount=1, final_amount=1, shipping_fullname='x')
        coupon = self.make_coupon()

        with mock.patch('orders.services.generate_order_number', return_value='ORDTAKEN') as generate:
            with self.assertRaises(PersistenceError):
                place_order(self.user, coupon_code='SAVE10', store=self.store)

        self.assertEqual(generate.call_count, 3)
        self.assertEqual(Order.objects.count(), 1)
        self.assertFalse(Order.objects.filter(customer=self.user).exists())
        self.assertEqual(self.cart_size(), 2)
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 0)


class StatusChangeTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.product = Product.objects.create(name='Frame', slug='frame', price=500)
        add_to_cart(self.user, self.product)
        self.order = place_order(self.user, store=StoreSettings())

    def test_forward_transition_sets_timestamp_and_history(self):
        update_order_status(self.order, 'confirmed', notes='checked')

        self.assertEqual(self.order.status, 'confirmed')
        self.assertIsNotNone(self.order.confirmed_at)
        latest = self.order.status_history.first()
        self.assertEqual((latest.from_status, latest.to_status, latest.notes), ('pending', 'confirmed', 'checked'))

    def test_full_lifecycle(self):
        for status in ('confirmed', 'processing', 'shipped', 'delivered'):
            update_order_status(self.order, status)
        self.assertIsNotNone(self.order.shipped_at)
        self.assertIsNotNone(self.order.delivered_at)
        self.assertEqual(self.order.status_history.count(), 5)

    def test_skipping_is_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            update_order_status(self.order, 'shipped')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'pending')

    def test_nothing_leaves_delivered(self):
        for status in ('confirmed', 'processing', 'shipped', 'delivered'):
            update_order_status(self.order, status)
        for status in STATUSES:
            with self.assertRaises(InvalidTransitionError):
                update_order_status(self.order, status)

    def test_stale_update_loses(self):
        stale = Order.objects.get(pk=self.order.pk)
        update_order_status(self.order, 'confirmed')

        with self.assertRaises(InvalidTransitionError):
            update_order_status(stale, 'cancelled')

        self.assertEqual(stale.status, 'confirmed')
        self.assertIsNone(stale.cancelled_at)

    def test_customer_can_cancel_pending(self):
        cancel_order(self.order, self.user)
        self.assertEqual(self.order.status, 'cancelled')
        self.assertIsNotNone(self.order.cancelled_at)

    def test_customer_can_cancel_confirmed(self):
        update_order_status(self.order, 'confirmed')
        cancel_order(self.order, self.user)
        self.assertEqual(self.order.status, 'cancelled')

    def test_cannot_cancel_once_processing(self):
        update_order_status(self.order, 'confirmed')
        update_order_status(self.order, 'processing')
        with self.assertRaisesMessage(CancellationNotAllowedError, 'Cannot cancel this order'):
            cancel_order(self.order, self.user)

    def test_cannot_cancel_someone_elses_order(self):
        with self.assertRaises(CancellationNotAllowedError):
            cancel_order(self.order, make_user('stranger'))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'pending')

    def test_payment_status(self):
        update_payment_status(self.order, 'failed')
        update_payment_status(self.order, 'paid')
        self.assertEqual(self.order.payment_status, 'paid')
        self.assertIsNotNone(self.order.paid_at)

        with self.assertRaises(InvalidPaymentStatusError):
            update_payment_status(self.order, 'failed')

    def test_orders_for_user_newest_first(self):
        add_to_cart(self.user, self.product)
        newer = place_order(self.user, store=StoreSettings())
        self.assertEqual([o.id for o in orders_for_user(self.user, limit=1)], [newer.id])


class OrderViewTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.client.force_login(self.user)
        self.product = Product.objects.create(name='Frame', slug='frame', price=500, discount=50)
        add_to_cart(self.user, self.product)

    def place(self, **data):
        return self.client.post(reverse('orders:place_order'), data=json.dumps(data), content_type='application/json')

    def test_checkout_summary(self):
        data = self.client.get(reverse('orders:checkout')).json()
        self.assertEqual(data['totals']['final_amount'], 470)
        self.assertEqual(data['payment_methods'], ['cod', 'online'])

    def test_place_order(self):
        response = self.place(fullname='Asha', phone='9876543210', address='12 Lake Road', city='Kochi')
        self.assertEqual(response.status_code, 201)
        order = response.json()['order']
        self.assertEqual(order['final_amount'], 470)
        self.assertEqual(order['shipping_address']['city'], 'Kochi')
        self.assertEqual(len(order['items']), 1)

    def test_place_order_with_empty_cart(self):
        CartItem.objects.all().delete()
        response = self.place()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Your cart is empty.')

    def test_place_order_with_bad_payment_method(self):
        response = self.place(payment_method='barter')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Order.objects.exists())

    def test_persistence_failure_is_500(self):
        with mock.patch('orders.views.place_order', side_effect=PersistenceError()):
            response = self.place()
        self.assertEqual(response.status_code, 500)

    def test_database_failure_is_logged_once(self):
        with mock.patch('orders.services._create_order', side_effect=DatabaseError('disk full')):
            with self.assertLogs('orders', level='ERROR') as logs:
                response = self.place()

        self.assertEqual(response.status_code, 500)
        self.assertEqual([r.name for r in logs.records], ['orders.services'])
        self.assertIsNotNone(logs.records[0].exc_info)
        self.assertEqual(CartItem.objects.filter(cart__customer=self.user).count(), 1)
        self.assertFalse(Order.objects.exists())

    def test_track_and_cancel(self):
        number = self.place().json()['order']['order_number']

        track = self.client.get(reverse('orders:track_order', args=[number])).json()
        self.assertEqual(track['timeline'][0]['current'], True)
        self.assertEqual(track['history'][0]['to_status'], 'pending')

        response = self.client.post(reverse('orders:cancel_order', args=[number]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Order.objects.get(order_number=number).status, 'cancelled')

        again = self.client.post(reverse('orders:cancel_order', args=[number]))
        self.assertEqual(again.status_code, 400)

    def test_other_users_order_is_404(self):
        number = self.place().json()['order']['order_number']
        self.client.force_login(make_user('stranger'))
        response = self.client.get(reverse('orders:order_detail', args=[number]))
        self.assertEqual(response.status_code, 404)

    def test_recent_orders(self):
        self.place()
        data = self.client.get(reverse('orders:recent_orders')).json()
        self.assertEqual(len(data['orders']), 1)
        self.assertTrue(re.match(r'^ORD', data['orders'][0]['order_number']))
