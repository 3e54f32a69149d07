"""
Booking use cases: creation with availability checks, and status changes.

Every write runs in one transaction with the relevant rows locked; status
changes are applied with a compare-and-set on the status that was read, so
a concurrent writer is reported instead of overwritten.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .booking_state import CANCELLED, BookingStateMachine, party_role
from .exceptions import (
    AccountBanned,
    BookingConflict,
    BusinessRuleViolation,
    ConcurrentUpdateError,
)
from .geo import haversine_km
from .models import Booking, Payment, Product
from .pricing import (
    DELIVERY,
    calculate_delivery_fee,
    calculate_rental_days,
    calculate_total_price,
)

logger = logging.getLogger(__name__)

# Bookings in these states hold the product for their dates
BLOCKING_STATUSES = ('pending', 'confirmed', 'active')


class BookingService:
    """
    Create bookings and move them through their lifecycle.

    Args:
        state_machine: Transition rules; defaults to BookingStateMachine()
        today: Optional callable returning the current local date
    """

    def __init__(self, state_machine=None, today=None):
        self.state_machine = state_machine or BookingStateMachine()
        self._today = today

    def today(self):
        return self._today() if self._today else timezone.localdate()

    def validate_dates(self, start_date, end_date):
        """
        Check a requested rental period.

        Raises:
            ValidationError: With field errors for start_date / end_date
        """
        rules = settings.RENTLENS
        today = self.today()

        if end_date <= start_date:
            raise ValidationError({'end_date': 'End date must be after start date.'})

        if start_date < today:
            raise ValidationError({'start_date': 'Start date cannot be in the past.'})

        if start_date > today + timedelta(days=rules['MAX_ADVANCE_BOOKING_DAYS']):
            raise ValidationError({
                'start_date': (
                    f"Bookings can be made at most {rules['MAX_ADVANCE_BOOKING_DAYS']} days in advance."
                )
            })

        days = calculate_rental_days(start_date, end_date)
        if not rules['MIN_BOOKING_DAYS'] <= days <= rules['MAX_BOOKING_DAYS']:
            raise ValidationError({
                'end_date': (
                    f"Rental period must be between {rules['MIN_BOOKING_DAYS']} and "
                    f"{rules['MAX_BOOKING_DAYS']} days."
                )
            })

    def quote(self, product, renter, start_date, end_date, delivery_method='pickup'):
        """
        Price a rental without writing anything.

        Returns:
            dict: days, distance_km, delivery_fee, total_price
        """
        owner = product.owner
        distance_km = None
        if owner.has_location() and renter.has_location():
            distance_km = round(
                haversine_km(renter.latitude, renter.longitude, owner.latitude, owner.longitude), 2
            )

        if delivery_method == DELIVERY and distance_km is None:
            raise ValidationError({
                'delivery_method': 'Delivery requires both you and the owner to set a location.'
            })

        delivery_fee = calculate_delivery_fee(distance_km, delivery_method)
        return {
            'days': calculate_rental_days(start_date, end_date),
            'distance_km': distance_km,
            'delivery_fee': delivery_fee,
            'total_price': calculate_total_price(
                product.price_per_day, start_date, end_date, delivery_fee
            ),
        }

    def create(self, renter, product, start_date, end_date, delivery_method='pickup',
               renter_address='', notes=''):
        """
        Create a pending booking.

        Raises:
            AccountBanned: Renter is banned
            BusinessRuleViolation: Own product or unavailable product
            ValidationError: Invalid dates or delivery details
            BookingConflict: Another booking holds overlapping dates
        """
        if renter.is_banned:
            raise AccountBanned()

        if product.owner_id == renter.pk:
            raise BusinessRuleViolation('You cannot rent your own product.')

        if delivery_method == DELIVERY and not (renter_address or '').strip():
            raise ValidationError({
                'renter_address': 'Delivery address is required for delivery bookings.'
            })

        self.validate_dates(start_date, end_date)
        quote = self.quote(product, renter, start_date, end_date, delivery_method)

        with transaction.atomic():
            # Serialize booking attempts per product
            product = Product.objects.select_for_update().select_related('owner').get(pk=product.pk)

            if not product.is_available:
                raise BusinessRuleViolation('This product is not available for rent.')

            conflicting = Booking.objects.filter(
                product=product,
                status__in=BLOCKING_STATUSES,
                start_date__lt=end_date,
                end_date__gt=start_date,
            )
            if conflicting.exists():
                logger.warning(
                    f"Booking conflict detected. Product ID: {product.pk}, "
                    f"Requested: {start_date} - {end_date}, "
                    f"Conflicting Booking ID: {conflicting.first().pk}, Renter ID: {renter.pk}"
                )
                raise BookingConflict()

            booking = Booking.objects.create(
                product=product,
                renter=renter,
                owner=product.owner,
                start_date=start_date,
                end_date=end_date,
                total_price=quote['total_price'],
                delivery_method=delivery_method,
                delivery_fee=quote['delivery_fee'],
                distance_km=quote['distance_km'],
                renter_address=renter_address or '',
                notes=notes or '',
            )

        logger.info(
            f"Booking created successfully. Booking ID: {booking.pk}, "
            f"Product ID: {product.pk}, Renter ID: {renter.pk}, Owner ID: {product.owner_id}, "
            f"Dates: {start_date} - {end_date}, Total: {booking.total_price}"
        )
        return booking

    def transition(self, booking_id, new_status, actor):
        """
        Move a booking to new_status on behalf of actor.

        Cancelling also cancels a payment that has not been paid yet.

        Raises:
            Booking.DoesNotExist: Unknown booking
            AccountBanned: Actor is banned
            ActionNotAllowed, InvalidTransition, PaymentNotCompleted: Rule violations
            ConcurrentUpdateError: The status changed after it was read
        """
        with transaction.atomic():
            booking = Booking.objects.select_for_update().select_related(
                'product', 'renter', 'owner'
            ).get(pk=booking_id)

            if actor.is_banned:
                raise AccountBanned()

            payment_status = (
                Payment.objects.filter(booking_id=booking.pk)
                .values_list('status', flat=True)
                .first()
            ) or booking.payment_status

            old_status = booking.status
            self.state_machine.validate(old_status, new_status, party_role(booking, actor), payment_status)

            now = timezone.now()
            updated = Booking.objects.filter(pk=booking.pk, status=old_status).update(
                status=new_status, updated_at=now
            )
            if updated != 1:
                raise ConcurrentUpdateError()

            if new_status == CANCELLED:
                cancelled_payments = Payment.objects.filter(
                    booking_id=booking.pk, status__in=('pending', 'processing')
                ).update(status='cancelled', updated_at=now)
                if cancelled_payments:
                    Booking.objects.filter(pk=booking.pk).update(payment_status='cancelled')

            booking.refresh_from_db()

        logger.info(
            f"Booking status updated. Booking ID: {booking.pk}, "
            f"Old Status: {old_status}, New Status: {new_status}, Actor ID: {actor.pk}"
        )
        return booking
