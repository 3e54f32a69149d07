"""
Serializers for the RentLens API.
"""

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import make_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .booking_state import BOOKING_STATUSES
from .models import Booking, Payment, Product, Report
from .validators import validate_image_urls, validate_phone_number

User = get_user_model()


def _run_django_validator(validator, value):
    try:
        validator(value)
    except DjangoValidationError as e:
        raise serializers.ValidationError(list(e.messages))
    return value


# ============================================================================
# Authentication & Profile Serializers
# ============================================================================

class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for user registration with comprehensive validation.

    Fields:
    - username: Required, unique (case-insensitive)
    - email: Required, unique, valid email format
    - password: Required, must meet strength requirements
    - confirm_password: Required, must match password
    - full_name: Optional
    - phone_number: Optional, must be valid format if provided

    New accounts always get role='user'.
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'password', 'confirm_password',
                  'full_name', 'phone_number', 'role', 'created_at']
        read_only_fields = ['id', 'role', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
            'username': {'required': True},
        }

    def validate_email(self, value):
        """
        Validate email format and uniqueness.
        """
        value = value.strip().lower()

        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_username(self, value):
        value = value.strip()

        if '@' in value:
            raise serializers.ValidationError("Username cannot contain '@'.")

        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that username already exists."
            )

        return value

    def validate_password(self, value):
        """
        Validate password strength using Django's password validators.
        """
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate_phone_number(self, value):
        if not value:
            return value
        return _run_django_validator(validate_phone_number, value)

    def validate(self, attrs):
        """
        Object-level validation for password confirmation matching.
        """
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs

    def create(self, validated_data):
        """
        Create user with hashed password and default settings.
        """
        from django.db import transaction

        validated_data.pop('confirm_password', None)
        validated_data['password'] = make_password(validated_data.pop('password'))

        # Registration can never grant privileges
        validated_data['role'] = 'user'
        for field in ('is_superuser', 'is_staff', 'is_active', 'is_banned',
                      'groups', 'user_permissions'):
            validated_data.pop(field, None)

        with transaction.atomic():
            user = User.objects.create(**validated_data)

        return user


class LoginSerializer(serializers.Serializer):
    """
    Serializer for login with a username or an email address.

    Minimal validation to prevent user enumeration attacks.
    Actual authentication happens in the view.
    """
    identifier = serializers.CharField(
        required=True,
        help_text='Username or email address'
    )
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'},
        help_text='User password'
    )


class PublicUserSerializer(serializers.ModelSerializer):
    """User details visible to the other party of a listing or booking."""

    class Meta:
        model = User
        fields = ['id', 'username', 'full_name', 'city', 'avatar_url']
        read_only_fields = fields


class UserProfileSerializer(serializers.ModelSerializer):
    """
    Serializer for the authenticated user's own profile.

    Excludes sensitive fields (password, is_staff, is_superuser, etc.).
    """

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'full_name',
            'phone_number',
            'role',
            'avatar_url',
            'latitude',
            'longitude',
            'city',
            'address',
            'is_banned',
            'created_at',
        ]
        read_only_fields = fields


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Serializer for profile updates (PUT/PATCH), including the user's location.

    Updatable fields: full_name, phone_number, avatar_url, latitude,
    longitude, city, address. Everything else is ignored.
    """

    latitude = serializers.FloatField(
        required=False, allow_null=True, min_value=-90, max_value=90
    )
    longitude = serializers.FloatField(
        required=False, allow_null=True, min_value=-180, max_value=180
    )

    class Meta:
        model = User
        fields = ['full_name', 'phone_number', 'avatar_url', 'latitude',
                  'longitude', 'city', 'address']

    def validate_phone_number(self, value):
        if not value:
            return value
        return _run_django_validator(validate_phone_number, value)

    def validate(self, attrs):
        """
        Latitude and longitude are set or cleared together.
        """
        instance = self.instance
        latitude = attrs.get('latitude', getattr(instance, 'latitude', None))
        longitude = attrs.get('longitude', getattr(instance, 'longitude', None))

        if (latitude is None) != (longitude is None):
            raise serializers.ValidationError({
                'latitude': 'Latitude and longitude must be provided together.'
            })

        return attrs

    def update(self, instance, validated_data):
        fields_to_update = []
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
            fields_to_update.append(attr)

        if fields_to_update:
            fields_to_update.append('updated_at')
            instance.save(update_fields=fields_to_update)

        return instance


# ============================================================================
# Product Serializers
# ============================================================================

class ProductSerializer(serializers.ModelSerializer):
    """
    Serializer for product listings.

    The owner is always the authenticated user on create; the product's
    location is the owner's profile location.
    """

    owner = PublicUserSerializer(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id',
            'owner',
            'name',
            'description',
            'category',
            'price_per_day',
            'image_urls',
            'is_available',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'owner', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Product name cannot be empty.")
        return value

    def validate_price_per_day(self, value):
        if value <= 0:
            raise serializers.ValidationError("Price per day must be greater than 0.")
        return value

    def validate_image_urls(self, value):
        return _run_django_validator(validate_image_urls, value)


class NearbyProductSerializer(ProductSerializer):
    """Product listing with its distance from the searching user."""

    distance_km = serializers.SerializerMethodField()

    class Meta(ProductSerializer.Meta):
        fields = ProductSerializer.Meta.fields + ['distance_km']

    def get_distance_km(self, obj):
        distances = self.context.get('distances', {})
        distance = distances.get(obj.pk)
        return round(distance, 2) if distance is not None else None


class NearbyQuerySerializer(serializers.Serializer):
    """
    Query parameters for nearby search.

    - lat / lon: Required search center
    - radius: Optional radius in km (default RENTLENS['DEFAULT_RADIUS_KM'])
    - search: Optional case-insensitive name filter
    - category: Optional product category
    """

    lat = serializers.FloatField(min_value=-90, max_value=90)
    lon = serializers.FloatField(min_value=-180, max_value=180)
    radius = serializers.FloatField(required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=200)
    category = serializers.ChoiceField(
        choices=Product.CATEGORY_CHOICES, required=False, allow_blank=True
    )

    def validate_radius(self, value):
        if value <= 0:
            raise serializers.ValidationError("Radius must be greater than 0.")
        return value

    def validate(self, attrs):
        attrs.setdefault('radius', float(settings.RENTLENS['DEFAULT_RADIUS_KM']))
        return attrs


# ============================================================================
# Booking Serializers
# ============================================================================

class BookingProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'category', 'price_per_day', 'image_urls']
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """
    Input for creating a booking.

    Date rules (not in the past, 1-30 days, at most 90 days ahead), pricing
    and availability are enforced by BookingService.
    """

    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    delivery_method = serializers.ChoiceField(
        choices=Booking.DELIVERY_METHOD_CHOICES, default='pickup'
    )
    renter_address = serializers.CharField(
        required=False, allow_blank=True, default='', max_length=300
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['end_date'] <= attrs['start_date']:
            raise serializers.ValidationError({
                'end_date': 'End date must be after start date.'
            })
        return attrs


class BookingSerializer(serializers.ModelSerializer):
    """
    Full booking representation for the renter and the owner.
    """

    product = BookingProductSerializer(read_only=True)
    renter = PublicUserSerializer(read_only=True)
    owner = PublicUserSerializer(read_only=True)
    rental_days = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id',
            'product',
            'renter',
            'owner',
            'start_date',
            'end_date',
            'rental_days',
            'total_price',
            'status',
            'payment_status',
            'delivery_method',
            'delivery_fee',
            'distance_km',
            'renter_address',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BookingStatusUpdateSerializer(serializers.Serializer):
    """
    Input for a booking status change.

    Only checks that the status is known; transition rules live in
    BookingStateMachine.
    """

    status = serializers.ChoiceField(choices=BOOKING_STATUSES)


# ============================================================================
# Payment Serializers
# ============================================================================

class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            'id',
            'booking',
            'order_id',
            'amount',
            'status',
            'method',
            'transaction_id',
            'qr_string',
            'qr_url',
            'paid_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    """QRIS is the only method charged through the Core API."""

    method = serializers.ChoiceField(choices=['qris'], default='qris')


# ============================================================================
# Report & Moderation Serializers
# ============================================================================

class ReportCreateSerializer(serializers.Serializer):
    """
    Input for filing a report.

    A 'user' report needs reported_user; a 'product' report needs
    reported_product.
    """

    report_type = serializers.ChoiceField(choices=Report.TYPE_CHOICES)
    reported_user = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), required=False, allow_null=True
    )
    reported_product = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), required=False, allow_null=True
    )
    reason = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_reason(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Reason cannot be empty.")
        return value

    def validate(self, attrs):
        report_type = attrs['report_type']

        if report_type == 'user' and not attrs.get('reported_user'):
            raise serializers.ValidationError({
                'reported_user': 'A user report must reference a user.'
            })

        if report_type == 'product' and not attrs.get('reported_product'):
            raise serializers.ValidationError({
                'reported_product': 'A product report must reference a product.'
            })

        if report_type == 'product':
            supplied = attrs.get('reported_user')
            if supplied is not None and supplied.pk != attrs['reported_product'].owner_id:
                raise serializers.ValidationError({
                    'reported_user': 'A product report targets the product owner.'
                })

        return attrs


class ReportSerializer(serializers.ModelSerializer):
    reporter = PublicUserSerializer(read_only=True)
    reported_user = PublicUserSerializer(read_only=True)
    reviewed_by = PublicUserSerializer(read_only=True)

    class Meta:
        model = Report
        fields = [
            'id',
            'reporter',
            'report_type',
            'reported_user',
            'reported_product',
            'reason',
            'description',
            'status',
            'reviewed_by',
            'reviewed_at',
            'admin_notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ModerationNotesSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DismissReportSerializer(ModerationNotesSerializer):
    status = serializers.ChoiceField(
        choices=[('resolved', 'Resolved'), ('rejected', 'Rejected')],
        default='rejected'
    )


class BanUserSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)

    def validate_reason(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("A ban reason is required.")
        return value


class AdminUserSerializer(serializers.ModelSerializer):
    """User details for the admin dashboard, including ban state."""

    banned_by = PublicUserSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'full_name',
            'role',
            'is_banned',
            'banned_at',
            'banned_by',
            'ban_reason',
            'created_at',
        ]
        read_only_fields = fields
