"""
Domain errors for the RentLens marketplace.

Every error carries a machine readable ``code``, the HTTP ``status_code``
views answer with, and a ``retryable`` flag telling clients whether the
same request may succeed if sent again unchanged.
"""

from rest_framework import status


class RentLensError(Exception):
    """Base class for all marketplace business errors."""

    code = 'rentlens_error'
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False
    default_message = 'The request could not be completed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_response_data(self):
        """
        Build the JSON body returned to API clients.

        Returns:
            dict: {"detail", "code", "retryable"}
        """
        return {
            'detail': self.message,
            'code': self.code,
            'retryable': self.retryable,
        }


# ----------------------------------------------------------------------------
# Business rule violations
# ----------------------------------------------------------------------------

class BusinessRuleViolation(RentLensError):
    code = 'business_rule_violation'


class InvalidTransition(BusinessRuleViolation):
    """Requested status change is not an edge of the lifecycle graph."""

    code = 'invalid_transition'
    default_message = 'This status change is not allowed.'


class PaymentNotCompleted(BusinessRuleViolation):
    """Owner tried to confirm a booking whose payment is not settled."""

    code = 'payment_not_completed'
    default_message = 'The booking cannot be confirmed until payment is completed.'


class BookingConflict(BusinessRuleViolation):
    code = 'booking_conflict'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This product is already booked for the selected dates.'


class ActionNotAllowed(BusinessRuleViolation):
    """Actor is not a party allowed to perform this action."""

    code = 'action_not_allowed'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You do not have permission to perform this action.'


class AccountBanned(ActionNotAllowed):
    code = 'account_banned'
    default_message = 'Your account has been banned.'


class ConcurrentUpdateError(BusinessRuleViolation):
    """Row changed between read and write; the caller should reload."""

    code = 'concurrent_update'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'The record was modified by another request. Reload and try again.'


class PaymentAlreadyExists(BusinessRuleViolation):
    code = 'payment_exists'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'A payment for this booking is already in progress.'


class InvalidNotification(BusinessRuleViolation):
    code = 'invalid_notification'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Notification signature is invalid.'


# ----------------------------------------------------------------------------
# Backend / network failures
# ----------------------------------------------------------------------------

class BackendUnavailable(RentLensError):
    code = 'backend_unavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True
    default_message = 'The service is temporarily unavailable. Please try again.'


class PaymentGatewayError(BackendUnavailable):
    code = 'payment_gateway_error'
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = 'The payment gateway could not be reached. Please try again.'


class ModerationIncomplete(BackendUnavailable):
    """Ban and report resolution were rolled back together."""

    code = 'moderation_incomplete'
    default_message = 'The moderation action could not be completed. No changes were applied.'
