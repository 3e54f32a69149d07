"""
Custom permission classes for the RentLens API.
"""

from rest_framework import permissions


class IsAdminRole(permissions.BasePermission):
    """
    Permission class that allows only marketplace admins.

    Checks role='admin' on the authenticated user. Banned admins are
    rejected too.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsAdminRole]
    """

    message = 'You do not have permission to perform this action. Admin privileges required.'

    def has_permission(self, request, view):
        """
        Check if user is authenticated and is an admin.

        Args:
            request: HTTP request object
            view: View being accessed

        Returns:
            bool: True if user is an active admin, False otherwise
        """
        if not request.user or not request.user.is_authenticated:
            return False

        if getattr(request.user, 'role', None) != 'admin':
            return False

        return not getattr(request.user, 'is_banned', False)


class IsNotBanned(permissions.BasePermission):
    """
    Reject state-changing requests from banned users.

    Safe methods (GET, HEAD, OPTIONS) are let through so a banned user can
    still read their own data.
    """

    message = 'Your account has been banned.'
    code = 'account_banned'

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True

        if not request.user or not request.user.is_authenticated:
            return True

        return not getattr(request.user, 'is_banned', False)


class IsBookingParty(permissions.BasePermission):
    """
    Object-level permission for bookings.

    Only the renter and the owner of a booking can see or act on it. Which
    party may take which status change is decided by BookingStateMachine.

    Usage:
        permission = IsBookingParty()
        if not permission.has_object_permission(request, self, booking):
            ...
    """

    message = 'You do not have permission to access this booking.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        """
        Args:
            request: HTTP request object
            view: View being accessed
            obj: Booking instance

        Returns:
            bool: True if user is the renter or owner of the booking
        """
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.id in (obj.renter_id, obj.owner_id)


class IsProductOwnerOrReadOnly(permissions.BasePermission):
    message = 'Only the owner can modify this product.'

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated and obj.owner_id == request.user.id)
