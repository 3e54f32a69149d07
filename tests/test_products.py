"""
Tests for product listings.

Test Coverage:
- Listing creation and validation
- Owner-only edits and deletes
- Own listings endpoint
"""

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from core.models import Booking, Product
from tests.helpers import auth_client, make_product, make_user


class ProductModelTestCase(TestCase):

    def setUp(self):
        self.owner = make_user('owner')

    def test_price_must_be_positive(self):
        with self.assertRaises(ValidationError):
            make_product(self.owner, price='0')

    def test_blank_name(self):
        with self.assertRaises(ValidationError):
            make_product(self.owner, name='   ')

    def test_image_urls_validated(self):
        with self.assertRaises(ValidationError):
            make_product(self.owner, image_urls=['ftp://example.com/a.jpg'])

        with self.assertRaises(ValidationError):
            make_product(self.owner, image_urls=[f'https://example.com/{i}.jpg' for i in range(11)])

    def test_unknown_category(self):
        with self.assertRaises(ValidationError):
            make_product(self.owner, category='Tripod')


class ProductAPITestCase(TestCase):

    def setUp(self):
        self.owner = make_user('owner')
        self.other = make_user('other')
        self.owner_client = auth_client(self.owner)
        self.list_url = reverse('product_list_create')

    def test_create_product(self):
        response = self.owner_client.post(self.list_url, {
            'name': 'Fujifilm X-T4',
            'description': 'With 18-55mm kit lens',
            'category': 'Mirrorless',
            'price_per_day': '175000',
            'image_urls': ['https://example.com/xt4.jpg'],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['owner']['id'], self.owner.id)
        self.assertTrue(response.data['is_available'])
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.price_per_day, Decimal('175000'))

    def test_create_invalid_product(self):
        response = self.owner_client.post(self.list_url, {
            'name': '',
            'category': 'Tripod',
            'price_per_day': '-1',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('name', 'category', 'price_per_day'):
            self.assertIn(field, response.data)

    def test_list_own_products(self):
        make_product(self.owner, name='Mine')
        make_product(self.other, name='Theirs')

        response = self.owner_client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['name'] for item in response.data['results']], ['Mine'])

    def test_anyone_can_view_detail(self):
        product = make_product(self.owner)
        response = auth_client(self.other).get(reverse('product_detail', args=[product.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_owner_updates_product(self):
        product = make_product(self.owner)

        response = self.owner_client.patch(
            reverse('product_detail', args=[product.id]),
            {'is_available': False, 'price_per_day': '90000'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertFalse(product.is_available)
        self.assertEqual(product.price_per_day, Decimal('90000'))

    def test_non_owner_cannot_update(self):
        product = make_product(self.owner)
        response = auth_client(self.other).patch(
            reverse('product_detail', args=[product.id]), {'name': 'Hijacked'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete(self):
        product = make_product(self.owner)
        response = self.owner_client.delete(reverse('product_detail', args=[product.id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.id).exists())

    def test_delete_with_open_booking(self):
        product = make_product(self.owner)
        start = timezone.localdate() + timedelta(days=1)
        Booking.objects.create(
            product=product, renter=self.other, owner=self.owner,
            start_date=start, end_date=start + timedelta(days=1),
            total_price=Decimal('100000'),
        )

        response = self.owner_client.delete(reverse('product_detail', args=[product.id]))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Product.objects.filter(pk=product.id).exists())

    def test_missing_product(self):
        response = self.owner_client.get(reverse('product_detail', args=[99999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
