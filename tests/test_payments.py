"""
Tests for QRIS payments.

Test Coverage:
- PaymentService.create_for_booking rules
- Gateway status polling and signed notifications
- Paid payments are never downgraded
- MidtransClient HTTP handling (requests mocked)
- Payment endpoints
"""

import base64
import hashlib
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import requests
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from core.bookings import BookingService
from core.exceptions import (
    AccountBanned,
    ActionNotAllowed,
    InvalidNotification,
    InvalidTransition,
    PaymentAlreadyExists,
    PaymentGatewayError,
)
from core.models import Booking, Payment
from core.payments import MidtransClient, PaymentService
from tests.helpers import FakeGateway, auth_client, make_product, make_user

SERVER_KEY = 'SB-Mid-server-test'


def sign(order_id, status_code, gross_amount, server_key=SERVER_KEY):
    raw = f'{order_id}{status_code}{gross_amount}{server_key}'
    return hashlib.sha512(raw.encode()).hexdigest()


def notification(order_id, transaction_status, gross_amount='300000.00', status_code='200', **extra):
    payload = {
        'order_id': order_id,
        'status_code': status_code,
        'gross_amount': gross_amount,
        'transaction_status': transaction_status,
        'transaction_id': 'trx-123',
        'signature_key': sign(order_id, status_code, gross_amount),
    }
    payload.update(extra)
    return payload


class PaymentTestMixin:

    def create_booking(self):
        self.owner = make_user('owner')
        self.renter = make_user('renter', full_name='Budi Santoso')
        self.product = make_product(self.owner)
        start = timezone.localdate() + timedelta(days=2)
        self.booking = Booking.objects.create(
            product=self.product,
            renter=self.renter,
            owner=self.owner,
            start_date=start,
            end_date=start + timedelta(days=3),
            total_price=Decimal('300000'),
        )

    def create_payment(self, payment_status='pending', order_id='RENT-1-1700000000'):
        return Payment.objects.create(
            booking=self.booking,
            order_id=order_id,
            amount=300000,
            status=payment_status,
        )


# ============================================================================
# PaymentService.create_for_booking
# ============================================================================

class CreatePaymentTestCase(PaymentTestMixin, TestCase):

    def setUp(self):
        self.create_booking()
        self.gateway = FakeGateway()
        self.service = PaymentService(self.gateway)

    def test_creates_pending_qris_payment(self):
        payment = self.service.create_for_booking(self.booking, self.renter)

        self.assertEqual(payment.status, 'pending')
        self.assertEqual(payment.amount, 300000)
        self.assertEqual(payment.method, 'qris')
        self.assertTrue(payment.order_id.startswith(f'RENT-{self.booking.pk}-'))
        self.assertTrue(payment.qr_url.endswith('/qr-code'))
        self.assertEqual(self.gateway.charges, [(payment.order_id, 300000)])

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'pending')

    def test_only_renter_can_pay(self):
        with self.assertRaises(ActionNotAllowed):
            self.service.create_for_booking(self.booking, self.owner)
        self.assertEqual(self.gateway.charges, [])

    def test_banned_renter(self):
        self.renter.is_banned = True
        with self.assertRaises(AccountBanned):
            self.service.create_for_booking(self.booking, self.renter)

    def test_booking_must_be_pending(self):
        self.booking.status = 'cancelled'
        with self.assertRaises(InvalidTransition):
            self.service.create_for_booking(self.booking, self.renter)

    def test_payment_in_progress(self):
        self.create_payment('pending')
        with self.assertRaises(PaymentAlreadyExists):
            self.service.create_for_booking(self.booking, self.renter)

    def test_paid_booking_cannot_be_charged_again(self):
        self.create_payment('paid')
        with self.assertRaises(PaymentAlreadyExists):
            self.service.create_for_booking(self.booking, self.renter)

    def test_failed_payment_is_recharged_with_new_order(self):
        old = self.create_payment('failed', order_id='RENT-1-OLD')

        payment = self.service.create_for_booking(self.booking, self.renter)

        self.assertEqual(payment.pk, old.pk)
        self.assertNotEqual(payment.order_id, 'RENT-1-OLD')
        self.assertEqual(payment.status, 'pending')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'pending')

    def test_gateway_failure_saves_nothing(self):
        service = PaymentService(FakeGateway(fail=True))

        with self.assertRaises(PaymentGatewayError) as ctx:
            service.create_for_booking(self.booking, self.renter)

        self.assertTrue(ctx.exception.retryable)
        self.assertFalse(Payment.objects.exists())


# ============================================================================
# Status polling and notifications
# ============================================================================

@override_settings(MIDTRANS_SERVER_KEY=SERVER_KEY)
class PaymentStatusUpdateTestCase(PaymentTestMixin, TestCase):

    def setUp(self):
        self.create_booking()
        self.payment = self.create_payment('pending')
        self.service = PaymentService(MidtransClient())

    def test_settlement_marks_paid(self):
        payment = self.service.apply_notification(
            notification(self.payment.order_id, 'settlement', settlement_time='2024-01-01 10:00:00')
        )

        self.assertEqual(payment.status, 'paid')
        self.assertEqual(payment.transaction_id, 'trx-123')
        self.assertEqual(timezone.localtime(payment.paid_at).hour, 10)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'paid')

    def test_expire_marks_failed(self):
        payment = self.service.apply_notification(notification(self.payment.order_id, 'expire'))
        self.assertEqual(payment.status, 'failed')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'failed')

    def test_paid_is_never_downgraded(self):
        self.service.apply_notification(notification(self.payment.order_id, 'settlement'))
        payment = self.service.apply_notification(notification(self.payment.order_id, 'expire'))

        self.assertEqual(payment.status, 'paid')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'paid')

    def test_replayed_settlement_keeps_paid_at(self):
        first = self.service.apply_notification(notification(self.payment.order_id, 'settlement'))
        second = self.service.apply_notification(notification(self.payment.order_id, 'capture'))
        self.assertEqual(first.paid_at, second.paid_at)

    def test_unknown_gateway_state_is_pending(self):
        payment = self.service.apply_notification(notification(self.payment.order_id, 'refund'))
        self.assertEqual(payment.status, 'pending')

    def test_bad_signature(self):
        payload = notification(self.payment.order_id, 'settlement')
        payload['signature_key'] = 'forged'

        with self.assertRaises(InvalidNotification):
            self.service.apply_notification(payload)

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, 'pending')

    def test_amount_mismatch(self):
        with self.assertRaises(InvalidNotification):
            self.service.apply_notification(
                notification(self.payment.order_id, 'settlement', gross_amount='1.00')
            )

    def test_unknown_order(self):
        with self.assertRaises(Payment.DoesNotExist):
            self.service.apply_notification(notification('RENT-404-1', 'settlement'))

    def test_refresh_status_polls_gateway(self):
        service = PaymentService(FakeGateway(transaction_status='settlement'))
        payment = service.refresh_status(self.payment)

        self.assertEqual(payment.status, 'paid')
        self.assertEqual(payment.transaction_id, 'trx-status')

    def test_cancelled_payment_ignores_late_pending_status(self):
        BookingService().transition(self.booking.pk, 'cancelled', self.renter)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, 'cancelled')

        service = PaymentService(FakeGateway(transaction_status='pending'))
        payment = service.refresh_status(self.payment)

        self.assertEqual(payment.status, 'cancelled')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'cancelled')
        self.assertEqual(self.booking.payment_status, 'cancelled')

    def test_cancelled_payment_ignores_late_failure_notification(self):
        BookingService().transition(self.booking.pk, 'cancelled', self.owner)

        payment = self.service.apply_notification(notification(self.payment.order_id, 'expire'))

        self.assertEqual(payment.status, 'cancelled')

    def test_expired_payment_still_records_settlement(self):
        Payment.objects.filter(pk=self.payment.pk).update(status='expired')

        payment = self.service.apply_notification(notification(self.payment.order_id, 'settlement'))

        self.assertEqual(payment.status, 'paid')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'paid')


# ============================================================================
# MidtransClient
# ============================================================================

def fake_response(status_code=200, body=None):
    response = mock.Mock()
    response.status_code = status_code
    response.text = str(body)
    response.json.return_value = body
    return response


class MidtransClientTestCase(TestCase):

    def setUp(self):
        self.client_ = MidtransClient(server_key=SERVER_KEY, is_production=False, timeout=5)

    @mock.patch('core.payments.requests.request')
    def test_charge(self, mock_request):
        mock_request.return_value = fake_response(200, {
            'status_code': '201',
            'transaction_id': 'trx-1',
            'transaction_status': 'pending',
            'qr_string': '0002010102...',
            'actions': [
                {'name': 'generate-qr-code', 'method': 'GET', 'url': 'https://example.com/qr.png'},
            ],
        })

        result = self.client_.charge('RENT-1-1', 300000, {'first_name': 'Budi'})

        self.assertEqual(result['transaction_id'], 'trx-1')
        self.assertEqual(result['qr_url'], 'https://example.com/qr.png')

        args, kwargs = mock_request.call_args
        self.assertEqual(args, ('POST', 'https://api.sandbox.midtrans.com/v2/charge'))
        self.assertEqual(kwargs['timeout'], 5)
        self.assertEqual(kwargs['json']['payment_type'], 'qris')
        self.assertEqual(kwargs['json']['transaction_details']['gross_amount'], 300000)
        expected_token = base64.b64encode(f'{SERVER_KEY}:'.encode()).decode()
        self.assertEqual(kwargs['headers']['Authorization'], f'Basic {expected_token}')

    @mock.patch('core.payments.requests.request')
    def test_charge_rejected_in_body(self, mock_request):
        mock_request.return_value = fake_response(200, {
            'status_code': '406',
            'status_message': 'Duplicate order ID',
        })
        with self.assertRaises(PaymentGatewayError):
            self.client_.charge('RENT-1-1', 300000)

    @mock.patch('core.payments.requests.request')
    def test_http_error(self, mock_request):
        mock_request.return_value = fake_response(500, {'error': 'boom'})
        with self.assertRaises(PaymentGatewayError):
            self.client_.status('RENT-1-1')

    @mock.patch('core.payments.requests.request')
    def test_network_error(self, mock_request):
        mock_request.side_effect = requests.ConnectionError('unreachable')
        with self.assertRaises(PaymentGatewayError):
            self.client_.status('RENT-1-1')

    @mock.patch('core.payments.requests.request')
    def test_invalid_json(self, mock_request):
        response = fake_response(200)
        response.json.side_effect = ValueError('no json')
        mock_request.return_value = response
        with self.assertRaises(PaymentGatewayError):
            self.client_.status('RENT-1-1')

    @mock.patch('core.payments.requests.request')
    def test_status_url(self, mock_request):
        mock_request.return_value = fake_response(200, {'transaction_status': 'settlement'})
        self.assertEqual(self.client_.status('RENT-1-1')['transaction_status'], 'settlement')
        self.assertEqual(
            mock_request.call_args[0],
            ('GET', 'https://api.sandbox.midtrans.com/v2/RENT-1-1/status')
        )

    def test_production_url(self):
        client = MidtransClient(server_key=SERVER_KEY, is_production=True)
        self.assertEqual(client.base_url, 'https://api.midtrans.com/v2')

    def test_verify_signature(self):
        payload = notification('RENT-1-1', 'settlement')
        self.assertTrue(self.client_.verify_signature(payload))

        payload['gross_amount'] = '1.00'
        self.assertFalse(self.client_.verify_signature(payload))

        self.assertFalse(MidtransClient(server_key='', is_production=False).verify_signature(
            notification('RENT-1-1', 'settlement')
        ))


# ============================================================================
# API
# ============================================================================

@override_settings(MIDTRANS_SERVER_KEY=SERVER_KEY)
class PaymentAPITestCase(PaymentTestMixin, TestCase):

    def setUp(self):
        self.create_booking()
        self.url = reverse('booking_payment', args=[self.booking.id])
        self.renter_client = auth_client(self.renter)

    @mock.patch('core.views.get_payment_service')
    def test_create_payment(self, mock_factory):
        mock_factory.return_value = PaymentService(FakeGateway())

        response = self.renter_client.post(self.url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertTrue(response.data['qr_string'])

        response = self.renter_client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    @mock.patch('core.views.get_payment_service')
    def test_gateway_down(self, mock_factory):
        mock_factory.return_value = PaymentService(FakeGateway(fail=True))

        response = self.renter_client.post(self.url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['code'], 'payment_gateway_error')
        self.assertTrue(response.data['retryable'])

    @mock.patch('core.views.get_payment_service')
    def test_duplicate_payment(self, mock_factory):
        mock_factory.return_value = PaymentService(FakeGateway())
        self.create_payment('pending')

        response = self.renter_client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_get_without_payment(self):
        response = self.renter_client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_outsider_cannot_see_payment(self):
        self.create_payment('pending')
        response = auth_client(make_user('outsider')).get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @mock.patch('core.views.get_payment_service')
    def test_refresh(self, mock_factory):
        mock_factory.return_value = PaymentService(FakeGateway(transaction_status='settlement'))
        self.create_payment('pending')

        response = self.renter_client.post(reverse('booking_payment_refresh', args=[self.booking.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'paid')

    @mock.patch('core.views.get_payment_service')
    def test_banned_party_cannot_refresh(self, mock_factory):
        mock_factory.return_value = PaymentService(FakeGateway(transaction_status='settlement'))
        payment = self.create_payment('pending')
        client = self.renter_client
        self.renter.is_banned = True
        self.renter.save()

        response = client.post(reverse('booking_payment_refresh', args=[self.booking.id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'pending')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'pending')

    def test_notification_endpoint(self):
        payment = self.create_payment('pending')
        url = reverse('payment_notification')

        response = APIClient().post(url, notification(payment.order_id, 'settlement'), format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'paid')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, 'paid')

    def test_notification_bad_signature(self):
        payment = self.create_payment('pending')
        payload = notification(payment.order_id, 'settlement')
        payload['signature_key'] = 'forged'

        response = APIClient().post(reverse('payment_notification'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_notification_unknown_order(self):
        response = APIClient().post(
            reverse('payment_notification'), notification('RENT-404-1', 'settlement'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
