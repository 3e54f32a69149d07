"""
Tests for registration, login, token refresh and profile management.

Security Test Coverage:
- Login with username or email (case-insensitive)
- Generic error messages (no user enumeration)
- Banned accounts rejected with a distinct code
- Rate limiting on login
- Privilege escalation through registration
"""

import jwt
import pytest
from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from core.backends import UsernameOrEmailBackend
from tests.helpers import auth_client, make_user

User = get_user_model()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user(db):
    return make_user('budi', full_name='Budi Santoso')


# ============================================================================
# Registration
# ============================================================================

@pytest.mark.django_db
class TestRegistration:

    url = '/api/auth/register/'

    def payload(self, **overrides):
        data = {
            'username': 'siti',
            'email': 'Siti@Example.com',
            'password': 'Str0ngPass!2024',
            'confirm_password': 'Str0ngPass!2024',
            'full_name': 'Siti Rahma',
            'phone_number': '0812 3456 7890',
        }
        data.update(overrides)
        return data

    def test_register(self, api_client):
        response = api_client.post(self.url, self.payload(), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert 'password' not in response.data
        user = User.objects.get(username='siti')
        assert user.email == 'siti@example.com'
        assert user.role == 'user'
        assert user.check_password('Str0ngPass!2024')

    def test_role_cannot_be_chosen(self, api_client):
        response = api_client.post(self.url, self.payload(role='admin', is_staff=True), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        user = User.objects.get(username='siti')
        assert user.role == 'user'
        assert not user.is_staff

    def test_password_mismatch(self, api_client):
        response = api_client.post(
            self.url, self.payload(confirm_password='Different!2024'), format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'confirm_password' in response.data

    def test_duplicate_email_case_insensitive(self, api_client, user):
        response = api_client.post(self.url, self.payload(email='BUDI@example.com'), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'email' in response.data

    def test_username_cannot_look_like_email(self, api_client):
        response = api_client.post(self.url, self.payload(username='siti@example'), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'username' in response.data

    def test_invalid_phone(self, api_client):
        response = api_client.post(self.url, self.payload(phone_number='0000000000'), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'phone_number' in response.data


# ============================================================================
# Login
# ============================================================================

@pytest.mark.django_db
class TestLogin:

    url = '/api/auth/login/'

    @pytest.mark.parametrize('identifier', ['budi', 'BUDI', 'budi@example.com', 'Budi@Example.com'])
    def test_login_with_username_or_email(self, api_client, user, identifier):
        response = api_client.post(
            self.url, {'identifier': identifier, 'password': 'testpass123'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['id'] == user.id
        payload = jwt.decode(response.data['access'], settings.SECRET_KEY, algorithms=['HS256'])
        assert str(payload['user_id']) == str(user.id)
        assert payload['token_type'] == 'access'

    def test_wrong_password(self, api_client, user):
        response = api_client.post(
            self.url, {'identifier': 'budi', 'password': 'wrong'}, format='json'
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['detail'] == 'Invalid credentials'

    def test_unknown_user_same_message(self, api_client, db):
        response = api_client.post(
            self.url, {'identifier': 'nobody', 'password': 'testpass123'}, format='json'
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['detail'] == 'Invalid credentials'

    def test_banned_user(self, api_client, user):
        user.is_banned = True
        user.ban_reason = 'Fraud'
        user.save()

        response = api_client.post(
            self.url, {'identifier': 'budi', 'password': 'testpass123'}, format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'account_banned'
        assert response.data['ban_reason'] == 'Fraud'

    def test_banned_user_wrong_password_gets_generic_error(self, api_client, user):
        user.is_banned = True
        user.save()

        response = api_client.post(
            self.url, {'identifier': 'budi', 'password': 'wrong'}, format='json'
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_missing_fields(self, api_client, db):
        response = api_client.post(self.url, {'identifier': 'budi'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_rate_limited(self, api_client, user):
        for _ in range(5):
            api_client.post(self.url, {'identifier': 'budi', 'password': 'wrong'}, format='json')

        response = api_client.post(
            self.url, {'identifier': 'budi', 'password': 'testpass123'}, format='json'
        )
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS


@pytest.mark.django_db
def test_token_refresh(api_client, user):
    login = api_client.post(
        '/api/auth/login/', {'identifier': 'budi', 'password': 'testpass123'}, format='json'
    )

    response = api_client.post(
        reverse('token_refresh'), {'refresh': login.data['refresh']}, format='json'
    )

    assert response.status_code == status.HTTP_200_OK
    assert 'access' in response.data
    # Rotation is on: the old refresh token is blacklisted
    again = api_client.post(
        reverse('token_refresh'), {'refresh': login.data['refresh']}, format='json'
    )
    assert again.status_code == status.HTTP_401_UNAUTHORIZED


# ============================================================================
# Authentication backend
# ============================================================================

@pytest.mark.django_db
class TestUsernameOrEmailBackend:

    def test_authenticate_by_email(self, user):
        assert authenticate(username='BUDI@EXAMPLE.COM', password='testpass123') == user

    def test_authenticate_by_username(self, user):
        assert authenticate(username='budi', password='testpass123') == user

    def test_banned_user_cannot_authenticate(self, user):
        user.is_banned = True
        user.save()
        assert authenticate(username='budi', password='testpass123') is None
        assert UsernameOrEmailBackend().get_user(user.id) is None

    def test_inactive_user_cannot_authenticate(self, user):
        user.is_active = False
        user.save()
        assert authenticate(username='budi', password='testpass123') is None

    def test_find_user(self, user):
        assert UsernameOrEmailBackend.find_user(' Budi ') == user
        assert UsernameOrEmailBackend.find_user('') is None


# ============================================================================
# Profile
# ============================================================================

@pytest.mark.django_db
class TestProfile:

    url = '/api/auth/profile/'

    def test_get_profile(self, user):
        response = auth_client(user).get(self.url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['username'] == 'budi'
        assert response.data['latitude'] is None
        assert 'password' not in response.data

    def test_set_location(self, user):
        response = auth_client(user).patch(
            self.url, {'latitude': -6.2, 'longitude': 106.8, 'city': 'Jakarta'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.latitude == -6.2
        assert user.longitude == 106.8
        assert user.city == 'Jakarta'

    def test_location_must_be_set_together(self, user):
        response = auth_client(user).patch(self.url, {'latitude': -6.2}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'latitude' in response.data

    def test_location_out_of_range(self, user):
        response = auth_client(user).patch(
            self.url, {'latitude': -120, 'longitude': 106.8}, format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_role_is_read_only(self, user):
        response = auth_client(user).patch(self.url, {'role': 'admin'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.role == 'user'

    def test_banned_user_can_read_but_not_update(self, user):
        user.is_banned = True
        user.save()
        client = auth_client(user)

        assert client.get(self.url).status_code == status.HTTP_200_OK
        assert client.patch(self.url, {'city': 'Bandung'}, format='json').status_code == \
            status.HTTP_403_FORBIDDEN

    def test_requires_authentication(self, api_client, db):
        assert api_client.get(self.url).status_code == status.HTTP_401_UNAUTHORIZED
