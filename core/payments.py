"""
QRIS payments through the Midtrans Core API.

map_transaction_status() translates gateway transaction states into the
payment statuses stored on Payment. PaymentService creates charges, polls
the gateway and applies signed notifications; MidtransClient is the only
place that talks HTTP.
"""

import base64
import hashlib
import hmac
import logging

import requests
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import (
    AccountBanned,
    ActionNotAllowed,
    InvalidNotification,
    InvalidTransition,
    PaymentAlreadyExists,
    PaymentGatewayError,
)
from .models import Payment

logger = logging.getLogger(__name__)


PAID = 'paid'
PENDING = 'pending'
FAILED = 'failed'

# Set locally (booking cancelled, order expired); the gateway never reports them
CLOSED_STATUSES = ('cancelled', 'expired')

_GATEWAY_STATUS_MAP = {
    'capture': PAID,
    'settlement': PAID,
    'pending': PENDING,
    'deny': FAILED,
    'cancel': FAILED,
    'expire': FAILED,
}


def map_transaction_status(transaction_status):
    """
    Map a gateway transaction_status to an internal payment status.

    Total: unknown values, other casings, empty strings, None and
    non-strings all map to 'pending'.

    Returns:
        str: 'paid', 'pending' or 'failed'
    """
    if not isinstance(transaction_status, str):
        return PENDING
    return _GATEWAY_STATUS_MAP.get(transaction_status, PENDING)


class MidtransClient:
    """
    Thin wrapper around the Midtrans Core API.

    Transport errors, non-2xx responses and malformed bodies raise
    PaymentGatewayError; no request is retried.
    """

    SANDBOX_API_URL = 'https://api.sandbox.midtrans.com/v2'
    PRODUCTION_API_URL = 'https://api.midtrans.com/v2'

    def __init__(self, server_key=None, is_production=None, timeout=None):
        self.server_key = server_key if server_key is not None else settings.MIDTRANS_SERVER_KEY
        if is_production is None:
            is_production = settings.MIDTRANS_IS_PRODUCTION
        self.base_url = self.PRODUCTION_API_URL if is_production else self.SANDBOX_API_URL
        self.timeout = timeout or settings.MIDTRANS_TIMEOUT

    def _headers(self):
        token = base64.b64encode(f'{self.server_key}:'.encode()).decode()
        return {
            'Accept': 'application/json',
            'Content-Type': 'application/json',
            'Authorization': f'Basic {token}',
        }

    def _request(self, method, path, payload=None):
        url = f'{self.base_url}{path}'
        try:
            response = requests.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Midtrans request failed. {method} {path}, Error: {str(e)}")
            raise PaymentGatewayError() from e

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Midtrans returned HTTP {response.status_code}. {method} {path}, "
                f"Body: {response.text[:500]}"
            )
            raise PaymentGatewayError(
                f'Payment gateway rejected the request (HTTP {response.status_code}).'
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Midtrans returned a non-JSON body. {method} {path}")
            raise PaymentGatewayError('Payment gateway returned an invalid response.') from e

    def charge(self, order_id, amount, customer=None):
        """
        Create a QRIS charge.

        Returns:
            dict: transaction_id, transaction_status, qr_string, qr_url,
            expiry_time and the raw response
        """
        payload = {
            'payment_type': 'qris',
            'transaction_details': {
                'order_id': order_id,
                'gross_amount': amount,
            },
            'customer_details': customer or {},
            'item_details': [
                {
                    'id': order_id,
                    'price': amount,
                    'quantity': 1,
                    'name': 'Booking Payment',
                }
            ],
        }
        data = self._request('POST', '/charge', payload)

        # Midtrans reports business errors in the body with HTTP 200
        status_code = str(data.get('status_code', '201'))
        if not status_code.startswith('2'):
            message = data.get('status_message') or 'Failed to charge QRIS'
            logger.error(f"Midtrans charge rejected. Order: {order_id}, Status: {status_code}, Message: {message}")
            raise PaymentGatewayError(f'Payment gateway rejected the charge: {message}')

        qr_url = ''
        for action in data.get('actions') or []:
            if action.get('name') == 'generate-qr-code':
                qr_url = action.get('url', '')
                break

        return {
            'transaction_id': data.get('transaction_id', ''),
            'transaction_status': data.get('transaction_status'),
            'qr_string': data.get('qr_string', ''),
            'qr_url': qr_url,
            'expiry_time': data.get('expiry_time'),
            'raw': data,
        }

    def status(self, order_id):
        """Fetch the current transaction state for an order."""
        return self._request('GET', f'/{order_id}/status')

    def verify_signature(self, payload):
        """
        Check a notification's signature_key.

        signature_key = sha512(order_id + status_code + gross_amount + server_key)
        """
        signature = payload.get('signature_key')
        if not signature or not self.server_key:
            return False

        raw = (
            f"{payload.get('order_id', '')}"
            f"{payload.get('status_code', '')}"
            f"{payload.get('gross_amount', '')}"
            f"{self.server_key}"
        )
        expected = hashlib.sha512(raw.encode()).hexdigest()
        return hmac.compare_digest(expected, str(signature))


class PaymentService:
    """
    Payment use cases.

    The gateway is injected so callers and tests can substitute any object
    with charge(), status() and verify_signature().
    """

    RETRYABLE_STATUSES = ('failed', 'expired', 'cancelled')

    def __init__(self, gateway=None):
        self.gateway = gateway or MidtransClient()

    def create_for_booking(self, booking, actor, method='qris'):
        """
        Charge the booking total and store the QR payload.

        A booking has one payment row; a failed, expired or cancelled
        payment is re-charged under a new order id.

        Raises:
            AccountBanned, ActionNotAllowed: Actor may not pay
            InvalidTransition: Booking is no longer pending
            PaymentAlreadyExists: Payment pending or already paid
            PaymentGatewayError: Gateway unreachable or rejected the charge
        """
        if actor.is_banned:
            raise AccountBanned()

        if booking.renter_id != actor.pk:
            raise ActionNotAllowed('Only the renter can pay for this booking.')

        if booking.status != 'pending':
            raise InvalidTransition(f'Cannot pay for a {booking.status} booking.')

        existing = Payment.objects.filter(booking=booking).first()
        if existing and existing.status not in self.RETRYABLE_STATUSES:
            raise PaymentAlreadyExists()

        order_id = f'RENT-{booking.pk}-{int(timezone.now().timestamp())}'
        amount = int(booking.total_price)
        customer = {
            'first_name': actor.full_name or actor.username,
            'email': actor.email,
            'phone': actor.phone_number,
        }

        charge = self.gateway.charge(order_id, amount, customer)

        payment = existing or Payment(booking=booking)
        payment.order_id = order_id
        payment.amount = amount
        payment.method = method
        payment.status = map_transaction_status(charge.get('transaction_status'))
        payment.transaction_id = charge.get('transaction_id') or ''
        payment.qr_string = charge.get('qr_string') or ''
        payment.qr_url = charge.get('qr_url') or ''
        payment.fraud_status = ''
        payment.paid_at = None
        payment.gateway_response = charge.get('raw') or {}

        try:
            with transaction.atomic():
                payment.save()
        except IntegrityError as e:
            # Concurrent create for the same booking
            raise PaymentAlreadyExists() from e

        logger.info(
            f"Payment created. Booking ID: {booking.pk}, Order: {order_id}, "
            f"Amount: {amount}, Renter ID: {actor.pk}"
        )
        return payment

    def refresh_status(self, payment):
        """Poll the gateway and apply the mapped status."""
        data = self.gateway.status(payment.order_id)
        return self.apply_gateway_status(payment.pk, data)

    def apply_notification(self, payload):
        """
        Apply a gateway notification.

        Raises:
            InvalidNotification: Bad signature or amount mismatch
            Payment.DoesNotExist: Unknown order id
        """
        if not payload.get('order_id') or not self.gateway.verify_signature(payload):
            logger.warning(f"Rejected payment notification. Order: {payload.get('order_id')}")
            raise InvalidNotification()

        payment = Payment.objects.get(order_id=payload['order_id'])

        try:
            gross_amount = int(float(payload.get('gross_amount')))
        except (TypeError, ValueError):
            raise InvalidNotification('Notification amount is invalid.')
        if gross_amount != payment.amount:
            logger.warning(
                f"Payment notification amount mismatch. Order: {payment.order_id}, "
                f"Expected: {payment.amount}, Received: {gross_amount}"
            )
            raise InvalidNotification('Notification amount does not match the payment.')

        return self.apply_gateway_status(payment.pk, payload)

    def apply_gateway_status(self, payment_id, data):
        """
        Store a gateway transaction state on the payment.

        A paid payment is never moved back by a late or replayed message.
        A cancelled or expired payment only moves forward to paid.
        Saving fires the post_save receiver that mirrors the status onto the
        booking.
        """
        new_status = map_transaction_status(data.get('transaction_status'))

        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment_id)

            if payment.status == PAID and new_status != PAID:
                logger.warning(
                    f"Ignoring status downgrade for paid payment. Order: {payment.order_id}, "
                    f"Gateway status: {data.get('transaction_status')}"
                )
                return payment

            if payment.status in CLOSED_STATUSES and new_status != PAID:
                logger.warning(
                    f"Ignoring gateway status for closed payment. Order: {payment.order_id}, "
                    f"Status: {payment.status}, Gateway status: {data.get('transaction_status')}"
                )
                return payment

            old_status = payment.status
            payment.status = new_status
            payment.transaction_id = data.get('transaction_id') or payment.transaction_id
            payment.fraud_status = data.get('fraud_status') or payment.fraud_status
            payment.gateway_response = data

            if new_status == PAID and payment.paid_at is None:
                payment.paid_at = _parse_gateway_time(data.get('settlement_time')) or timezone.now()

            payment.save()

        if old_status != new_status:
            logger.info(
                f"Payment status changed. Order: {payment.order_id}, "
                f"Old Status: {old_status}, New Status: {new_status}"
            )
        return payment


def _parse_gateway_time(value):
    # Midtrans timestamps are local (WIB) without an offset
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def get_payment_service():
    """PaymentService wired to the configured Midtrans account."""
    return PaymentService(MidtransClient())
