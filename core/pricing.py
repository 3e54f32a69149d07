"""
Rental pricing.

Prices are Indonesian Rupiah. A rental from 2024-01-01 to 2024-01-04 is
three days; the end date is the return day and is not charged.
"""

import math
from decimal import Decimal

from django.conf import settings

PICKUP = 'pickup'
DELIVERY = 'delivery'


def _rules():
    return settings.RENTLENS


def calculate_rental_days(start_date, end_date):
    """Number of charged days between start_date and end_date."""
    return (end_date - start_date).days


def calculate_delivery_fee(distance_km, delivery_method=DELIVERY):
    """
    Delivery fee for the distance between owner and renter.

    Charged per started block of DELIVERY_BLOCK_KM; pickup and unknown or
    zero distances are free.

    Returns:
        Decimal: Fee in IDR
    """
    if delivery_method != DELIVERY or distance_km is None or distance_km <= 0:
        return Decimal('0')

    rules = _rules()
    blocks = math.ceil(distance_km / rules['DELIVERY_BLOCK_KM'])
    return Decimal(blocks * rules['DELIVERY_FEE_PER_BLOCK'])


def calculate_total_price(price_per_day, start_date, end_date, delivery_fee=Decimal('0')):
    """
    Total price of a booking.

    Args:
        price_per_day: Product daily price
        start_date: First rental day
        end_date: Return day
        delivery_fee: Fee from calculate_delivery_fee()

    Returns:
        Decimal: days x price_per_day + delivery_fee
    """
    days = calculate_rental_days(start_date, end_date)
    return Decimal(days) * Decimal(price_per_day) + Decimal(delivery_fee)
