"""
Custom authentication backend for username-or-email login.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()


class UsernameOrEmailBackend(ModelBackend):
    """
    Authentication backend that accepts either a username or an email.

    Banned and inactive users never authenticate.
    """

    @staticmethod
    def find_user(identifier):
        """
        Look up a user by username or email (case-insensitive).

        Returns:
            User or None
        """
        if not identifier:
            return None
        identifier = identifier.strip()
        return (
            User.objects
            .filter(Q(username__iexact=identifier) | Q(email__iexact=identifier))
            .order_by('pk')
            .first()
        )

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Authenticate by username or email.

        Args:
            request: HTTP request object
            username: Username or email address
            password: User password
            **kwargs: May carry 'email' instead of 'username'

        Returns:
            User object if authentication successful, None otherwise
        """
        identifier = username or kwargs.get('email')

        if identifier is None or password is None:
            return None

        user = self.find_user(identifier)

        if user is None:
            # Run the default password hasher once to reduce the timing
            # difference between an existing and a nonexistent user
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None

    def user_can_authenticate(self, user):
        if getattr(user, 'is_banned', False):
            return False
        return super().user_can_authenticate(user)

    def get_user(self, user_id):
        """
        Get user by ID.

        Args:
            user_id: User primary key

        Returns:
            User object if found, None otherwise
        """
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
        return user if self.user_can_authenticate(user) else None
