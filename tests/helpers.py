"""
Shared builders for the test suite.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from core.exceptions import PaymentGatewayError
from core.models import Product

User = get_user_model()

# Around Monas, central Jakarta
JAKARTA = (-6.2000, 106.8000)
BANDUNG = (-6.9175, 107.6191)


def make_user(username, location=None, **extra):
    if location is not None:
        extra.setdefault('latitude', location[0])
        extra.setdefault('longitude', location[1])
    return User.objects.create_user(
        username=username,
        email=f'{username}@example.com',
        password='testpass123',
        **extra
    )


def make_product(owner, name='Canon EOS R6', category='Mirrorless', price='100000', **extra):
    return Product.objects.create(
        owner=owner,
        name=name,
        category=category,
        price_per_day=Decimal(price),
        **extra
    )


def auth_client(user):
    client = APIClient()
    token = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    return client


class FakeGateway:
    """
    In-memory stand-in for MidtransClient.

    Records charges; status() answers with the configured transaction state.
    """

    def __init__(self, transaction_status='pending', fail=False, signature_ok=True):
        self.transaction_status = transaction_status
        self.fail = fail
        self.signature_ok = signature_ok
        self.charges = []

    def charge(self, order_id, amount, customer=None):
        if self.fail:
            raise PaymentGatewayError()
        self.charges.append((order_id, amount))
        return {
            'transaction_id': f'trx-{len(self.charges)}',
            'transaction_status': 'pending',
            'qr_string': '00020101021226...',
            'qr_url': f'https://api.sandbox.midtrans.com/v2/qris/{order_id}/qr-code',
            'expiry_time': None,
            'raw': {'order_id': order_id, 'transaction_status': 'pending'},
        }

    def status(self, order_id):
        if self.fail:
            raise PaymentGatewayError()
        return {
            'order_id': order_id,
            'transaction_status': self.transaction_status,
            'transaction_id': 'trx-status',
            'settlement_time': '2024-01-01 10:00:00',
        }

    def verify_signature(self, payload):
        return self.signature_ok
