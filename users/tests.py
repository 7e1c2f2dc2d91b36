import json
from datetime import timedelta

from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from catalog.models import Product
from .models import User, Address, RecentlyViewed
from .views import add_address, set_default_address, delete_address, track_view


ADDRESS = {
    'fullname': 'Asha Rao',
    'phone':    '9876543210',
    'address':  '12 Lake Road',
    'city':     'Kochi',
    'state':    'Kerala',
    'pincode':  '682001',
}


def make_user(username='asha', **extra):
    return User.objects.create_user(
        username=username, email=f'{username}@example.com', password='secret123', **extra
    )


class AddressTests(TestCase):

    def setUp(self):
        self.user = make_user()

    def test_first_address_becomes_default(self):
        first = add_address(self.user, ADDRESS)
        second = add_address(self.user, dict(ADDRESS, city='Thrissur'))

        self.assertTrue(first.is_default)
        self.assertFalse(second.is_default)
        self.assertEqual(self.user.default_address, first)

    def test_set_default_moves_the_flag(self):
        first = add_address(self.user, ADDRESS)
        second = add_address(self.user, dict(ADDRESS, city='Thrissur'))

        set_default_address(self.user, second.id)

        first.refresh_from_db()
        second.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertTrue(second.is_default)
        self.assertEqual(self.user.addresses.filter(is_default=True).count(), 1)

    def test_deleting_default_promotes_newest(self):
        first = add_address(self.user, ADDRESS)
        add_address(self.user, dict(ADDRESS, city='Thrissur'))
        newest = add_address(self.user, dict(ADDRESS, city='Kannur'))

        delete_address(self.user, first.id)

        newest.refresh_from_db()
        self.assertTrue(newest.is_default)
        self.assertEqual(self.user.addresses.count(), 2)

    def test_snapshot_fields(self):
        address = add_address(self.user, ADDRESS)
        self.assertEqual(address.as_snapshot(), ADDRESS)


class AddressViewTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.client.force_login(self.user)

    def test_add_address(self):
        response = self.client.post(
            reverse('users:address_add'), data=json.dumps(ADDRESS), content_type='application/json'
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()['address']['is_default'])

    def test_add_address_rejects_bad_phone(self):
        response = self.client.post(
            reverse('users:address_add'),
            data=json.dumps(dict(ADDRESS, phone='abc')),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('phone', response.json()['errors'])
        self.assertFalse(Address.objects.exists())

    def test_cannot_touch_another_users_address(self):
        other = make_user('ravi')
        address = add_address(other, ADDRESS)
        response = self.client.post(reverse('users:address_delete', args=[address.id]))
        self.assertEqual(response.status_code, 404)
        self.assertTrue(Address.objects.filter(id=address.id).exists())

    def test_profile_update(self):
        response = self.client.post(reverse('users:profile_update'), {'fullname': 'Asha R', 'contact': '9000000000'})
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.fullname, 'Asha R')
        self.assertEqual(self.user.contact, '9000000000')


class RecentlyViewedTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.products = [
            Product.objects.create(name=f'Product {i}', slug=f'product-{i}', price=100)
            for i in range(3)
        ]
        self.now = timezone.now()

    def test_newest_view_comes_first(self):
        first, second, _ = self.products
        track_view(self.user, first, now=self.now)
        track_view(self.user, second, now=self.now + timedelta(seconds=1))
        track_view(self.user, first, now=self.now + timedelta(seconds=2))

        ids = list(RecentlyViewed.objects.filter(user=self.user).values_list('product_id', flat=True))
        self.assertEqual(ids, [first.id, second.id])

    @override_settings(RECENTLY_VIEWED_LIMIT=2)
    def test_list_is_trimmed_to_limit(self):
        for offset, product in enumerate(self.products):
            track_view(self.user, product, now=self.now + timedelta(seconds=offset))

        ids = list(RecentlyViewed.objects.filter(user=self.user).values_list('product_id', flat=True))
        self.assertEqual(ids, [self.products[2].id, self.products[1].id])

    def test_view_count_increments(self):
        product = self.products[0]
        track_view(self.user, product)
        track_view(self.user, product)
        product.refresh_from_db()
        self.assertEqual(product.view_count, 2)

    def test_recently_viewed_endpoint(self):
        self.client.force_login(self.user)
        first, second, _ = self.products
        self.client.post(reverse('users:track_view', args=[first.id]))
        self.client.post(reverse('users:track_view', args=[second.id]))

        data = self.client.get(reverse('users:recently_viewed')).json()
        self.assertEqual([e['product']['id'] for e in data['products']], [second.id, first.id])


class LoginTests(TestCase):

    def setUp(self):
        self.user = make_user()

    def test_login_required_redirects_to_login(self):
        response = self.client.get(reverse('users:profile'))
        self.assertRedirects(
            response,
            f"{reverse('users:login')}?next={reverse('users:profile')}",
            target_status_code=401,
        )

        response = self.client.get(response.url)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['next'], reverse('users:profile'))

    def test_login_with_email(self):
        response = self.client.post(
            reverse('users:login'),
            data=json.dumps({'email': 'asha@example.com', 'password': 'secret123'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['email'], 'asha@example.com')
        self.assertEqual(self.client.get(reverse('users:profile')).status_code, 200)

    def test_wrong_password(self):
        response = self.client.post(reverse('users:login'), {'email': 'asha@example.com', 'password': 'nope'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Invalid email or password')
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_unknown_email(self):
        response = self.client.post(reverse('users:login'), {'email': 'ghost@example.com', 'password': 'secret123'})
        self.assertEqual(response.status_code, 401)

    def test_logout(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse('users:logout'))
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('_auth_user_id', self.client.session)
