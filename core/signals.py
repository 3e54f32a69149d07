"""
Django signals keeping denormalized booking fields in sync.

The booking's payment_status mirrors its Payment row so booking lists and
the confirm check never need a join.
"""

import logging

from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone

from .models import Booking, Payment

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Payment)
def sync_booking_payment_status(sender, instance, created, **kwargs):
    """
    Copy the payment status onto its booking after every save.

    Runs inside the caller's transaction, so a failure here rolls back the
    payment update as well. Uses a queryset update to skip Booking.save()
    validation and avoid touching the booking's lifecycle status.

    Args:
        sender: The Payment model class
        instance: The Payment instance that was saved
        created: Boolean indicating if this is a new payment
        **kwargs: Additional keyword arguments
    """
    updated = (
        Booking.objects
        .filter(pk=instance.booking_id)
        .exclude(payment_status=instance.status)
        .update(payment_status=instance.status, updated_at=timezone.now())
    )

    if updated:
        logger.info(
            f"Booking payment status synced. Booking ID: {instance.booking_id}, "
            f"Payment Status: {instance.status}"
        )
