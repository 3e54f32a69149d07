"""
Data models for the RentLens camera rental marketplace.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from .booking_state import BOOKING_STATUSES, BookingStateMachine, party_role
from .validators import (
    validate_image_urls,
    validate_latitude,
    validate_longitude,
    validate_phone_number,
)

PAYMENT_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('processing', 'Processing'),
    ('paid', 'Paid'),
    ('failed', 'Failed'),
    ('expired', 'Expired'),
    ('cancelled', 'Cancelled'),
]


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - full_name, phone_number: Contact details shown to the other party
    - role: Either 'user' or 'admin' (admins moderate reports)
    - is_banned, banned_at, banned_by, ban_reason: Moderation state
    - latitude, longitude, city, address: Location used for nearby search
      and delivery fees; products inherit their owner's location
    - avatar_url: Optional profile picture URL
    - created_at / updated_at: Timestamps
    """

    ROLE_CHOICES = [
        ('user', 'User'),
        ('admin', 'Admin'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    full_name = models.CharField(
        _('full name'),
        max_length=150,
        blank=True,
        default='',
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in local or international format.')
    )

    role = models.CharField(
        _('role'),
        max_length=10,
        choices=ROLE_CHOICES,
        default='user',
        help_text=_('Admins can moderate reports and ban users.')
    )

    avatar_url = models.URLField(
        _('avatar URL'),
        max_length=500,
        blank=True,
        default='',
    )

    latitude = models.FloatField(
        _('latitude'),
        blank=True,
        null=True,
        validators=[validate_latitude],
    )

    longitude = models.FloatField(
        _('longitude'),
        blank=True,
        null=True,
        validators=[validate_longitude],
    )

    city = models.CharField(
        _('city'),
        max_length=100,
        blank=True,
        default='',
    )

    address = models.CharField(
        _('address'),
        max_length=300,
        blank=True,
        default='',
    )

    is_banned = models.BooleanField(
        _('banned'),
        default=False,
        help_text=_('Banned users cannot sign in or change data.')
    )

    banned_at = models.DateTimeField(
        _('banned at'),
        blank=True,
        null=True,
    )

    banned_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='banned_users',
        help_text=_('Admin who banned this user')
    )

    ban_reason = models.TextField(
        _('ban reason'),
        blank=True,
        default='',
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='core_user_email_idx'),
            models.Index(fields=['role'], name='core_user_role_idx'),
            models.Index(fields=['is_banned'], name='core_user_banned_idx'),
            models.Index(fields=['latitude', 'longitude'], name='core_user_location_idx'),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def is_admin(self):
        """
        Check if user moderates the marketplace.

        Returns:
            bool: True if role is 'admin'
        """
        return self.role == 'admin'

    def has_location(self):
        return self.latitude is not None and self.longitude is not None

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Email is provided and lowercase
        - Latitude and longitude are set together

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

        if (self.latitude is None) != (self.longitude is None):
            raise ValidationError({
                'latitude': _('Latitude and longitude must be provided together.')
            })

    def save(self, *args, **kwargs):
        """
        Override save to ensure validation and email normalization.

        full_clean only runs on updates so that duplicate emails on creation
        surface as IntegrityError from the database.
        """
        if self.email:
            self.email = self.email.lower()

        if self.pk is not None:
            self.full_clean()

        super().save(*args, **kwargs)


class Product(models.Model):
    """
    Camera equipment listed for rent.

    Fields:
    - owner: Foreign key to User; the product is located at the owner's
      profile coordinates
    - name, description: Listing text
    - category: One of DSLR, Mirrorless, Drone, Lens
    - price_per_day: Daily rental price in IDR
    - image_urls: Ordered list of image URLs
    - is_available: Whether the listing can be found and booked
    """

    CATEGORY_CHOICES = [
        ('DSLR', 'DSLR'),
        ('Mirrorless', 'Mirrorless'),
        ('Drone', 'Drone'),
        ('Lens', 'Lens'),
    ]

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='products',
        help_text=_('User renting out this product')
    )

    name = models.CharField(
        _('name'),
        max_length=200,
        blank=False,
        null=False,
    )

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
    )

    category = models.CharField(
        _('category'),
        max_length=20,
        choices=CATEGORY_CHOICES,
    )

    price_per_day = models.DecimalField(
        _('price per day'),
        max_digits=12,
        decimal_places=2,
        help_text=_('Daily rental price in IDR')
    )

    image_urls = models.JSONField(
        _('image URLs'),
        default=list,
        blank=True,
        validators=[validate_image_urls],
    )

    is_available = models.BooleanField(
        _('available'),
        default=True,
        help_text=_('Unavailable products are hidden from search and cannot be booked')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('product')
        verbose_name_plural = _('products')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner'], name='core_product_owner_idx'),
            models.Index(fields=['category'], name='core_product_category_idx'),
            models.Index(fields=['is_available'], name='core_product_available_idx'),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Name is not blank
        - Price per day is greater than 0

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if not self.name or not self.name.strip():
            raise ValidationError({
                'name': _('Product name cannot be empty.')
            })

        if self.price_per_day is not None and self.price_per_day <= 0:
            raise ValidationError({
                'price_per_day': _('Price per day must be greater than 0.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Booking(models.Model):
    """
    A rental of one product by one renter for a date range.

    Fields:
    - product: Foreign key to Product
    - renter: User renting the product
    - owner: Product owner at booking time (copied from product)
    - start_date / end_date: Rental period; end_date is the return day
    - total_price: days x price_per_day + delivery_fee
    - status: Lifecycle status (see core.booking_state)
    - payment_status: Mirror of the booking's Payment status
    - delivery_method: 'pickup' or 'delivery'
    - delivery_fee, distance_km: Delivery pricing inputs
    - renter_address, notes: Free text from the renter
    """

    STATUS_CHOICES = [(value, value.capitalize()) for value in BOOKING_STATUSES]

    DELIVERY_METHOD_CHOICES = [
        ('pickup', 'Pickup'),
        ('delivery', 'Delivery'),
    ]

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='bookings',
        help_text=_('Product being rented')
    )

    renter = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='renter_bookings',
        help_text=_('User renting the product')
    )

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='owner_bookings',
        help_text=_('Owner of the product')
    )

    start_date = models.DateField(_('start date'))

    end_date = models.DateField(_('end date'))

    total_price = models.DecimalField(
        _('total price'),
        max_digits=12,
        decimal_places=2,
        help_text=_('Total price for the booking in IDR')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
    )

    payment_status = models.CharField(
        _('payment status'),
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default='pending',
        help_text=_('Kept in sync with the payment record')
    )

    delivery_method = models.CharField(
        _('delivery method'),
        max_length=10,
        choices=DELIVERY_METHOD_CHOICES,
        default='pickup',
    )

    delivery_fee = models.DecimalField(
        _('delivery fee'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
    )

    distance_km = models.FloatField(
        _('distance (km)'),
        blank=True,
        null=True,
    )

    renter_address = models.CharField(
        _('renter address'),
        max_length=300,
        blank=True,
        default='',
    )

    notes = models.TextField(
        _('notes'),
        blank=True,
        default='',
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('booking')
        verbose_name_plural = _('bookings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['renter'], name='core_booking_renter_idx'),
            models.Index(fields=['owner'], name='core_booking_owner_idx'),
            models.Index(fields=['product', 'status'], name='core_booking_prod_status_idx'),
            models.Index(fields=['start_date', 'end_date'], name='core_booking_dates_idx'),
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Booking #{self.pk} {self.product.name} by {self.renter.email}"

    @property
    def rental_days(self):
        return (self.end_date - self.start_date).days

    def clean(self):
        """
        Validate model fields and status transitions.

        Ensures:
        - End date is after start date
        - Renter is not the product owner
        - Owner matches the product owner
        - Total price is greater than 0
        - Delivery bookings carry the renter's address
        - Status changes follow the lifecycle graph

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({
                'end_date': _('End date must be after start date.')
            })

        if self.renter_id and self.owner_id and self.renter_id == self.owner_id:
            raise ValidationError({
                'renter': _('You cannot rent your own product.')
            })

        if self.product_id and self.owner_id and self.product.owner_id != self.owner_id:
            raise ValidationError({
                'owner': _('Booking owner must match the product owner.')
            })

        if self.total_price is not None and self.total_price <= 0:
            raise ValidationError({
                'total_price': _('Total price must be greater than 0.')
            })

        if self.delivery_method == 'delivery' and not (self.renter_address or '').strip():
            raise ValidationError({
                'renter_address': _('Delivery address is required for delivery bookings.')
            })

        if self.pk is not None:
            try:
                old_status = Booking.objects.values_list('status', flat=True).get(pk=self.pk)
            except Booking.DoesNotExist:
                old_status = None

            if old_status and old_status != self.status:
                if not BookingStateMachine().is_edge(old_status, self.status):
                    raise ValidationError({
                        'status': _(
                            f'Invalid status transition from {old_status} to {self.status}.'
                        )
                    })

    def role_of(self, user):
        """'owner', 'renter', or None for the given user."""
        return party_role(self, user)

    def can_transition_to(self, new_status, user):
        """
        Validate if the user can move this booking to new_status.

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        return BookingStateMachine().can_transition_to(
            self.status, new_status, self.role_of(user), self.payment_status
        )

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Payment(models.Model):
    """
    Gateway payment for a booking.

    One payment per booking. Status changes are driven by the gateway (status
    polling or notifications) through core.payments.map_transaction_status.
    """

    STATUS_CHOICES = PAYMENT_STATUS_CHOICES

    METHOD_CHOICES = [
        ('qris', 'QRIS'),
        ('gopay', 'GoPay'),
        ('shopeepay', 'ShopeePay'),
        ('bank_transfer', 'Bank Transfer'),
    ]

    booking = models.OneToOneField(
        Booking,
        on_delete=models.CASCADE,
        related_name='payment',
    )

    order_id = models.CharField(
        _('order id'),
        max_length=64,
        unique=True,
        help_text=_('Order id sent to the payment gateway')
    )

    amount = models.PositiveIntegerField(
        _('amount'),
        help_text=_('Gross amount in IDR')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
    )

    method = models.CharField(
        _('payment method'),
        max_length=20,
        choices=METHOD_CHOICES,
        default='qris',
    )

    transaction_id = models.CharField(
        _('gateway transaction id'),
        max_length=100,
        blank=True,
        default='',
    )

    fraud_status = models.CharField(
        _('fraud status'),
        max_length=20,
        blank=True,
        default='',
    )

    qr_string = models.TextField(
        _('QR payload'),
        blank=True,
        default='',
    )

    qr_url = models.URLField(
        _('QR image URL'),
        max_length=500,
        blank=True,
        default='',
    )

    gateway_response = models.JSONField(
        _('last gateway response'),
        default=dict,
        blank=True,
    )

    paid_at = models.DateTimeField(_('paid at'), blank=True, null=True)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('payment')
        verbose_name_plural = _('payments')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='core_payment_status_idx'),
        ]

    def __str__(self):
        return f"{self.order_id} ({self.status})"

    def is_final(self):
        return self.status in ('paid', 'failed', 'expired', 'cancelled')

    def clean(self):
        super().clean()

        if self.amount is not None and self.amount <= 0:
            raise ValidationError({
                'amount': _('Payment amount must be greater than 0.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Report(models.Model):
    """
    A user's report about another user or a product.

    Fields:
    - reporter: User filing the report
    - report_type: 'user' or 'product'
    - reported_user: User being reported (the owner for product reports)
    - reported_product: Product being reported, if any
    - reason / description: Why the report was filed
    - status: pending, reviewed, resolved, rejected
    - reviewed_by / reviewed_at / admin_notes: Moderation trail
    """

    TYPE_CHOICES = [
        ('user', 'User'),
        ('product', 'Product'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('reviewed', 'Reviewed'),
        ('resolved', 'Resolved'),
        ('rejected', 'Rejected'),
    ]

    reporter = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reports_filed',
    )

    report_type = models.CharField(
        _('report type'),
        max_length=10,
        choices=TYPE_CHOICES,
    )

    reported_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='reports_received',
    )

    reported_product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='reports',
    )

    reason = models.CharField(
        _('reason'),
        max_length=200,
    )

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
    )

    status = models.CharField(
        _('status'),
        max_length=10,
        choices=STATUS_CHOICES,
        default='pending',
    )

    reviewed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='reports_reviewed',
    )

    reviewed_at = models.DateTimeField(_('reviewed at'), blank=True, null=True)

    admin_notes = models.TextField(
        _('admin notes'),
        blank=True,
        default='',
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('report')
        verbose_name_plural = _('reports')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='core_report_status_idx'),
            models.Index(fields=['reported_user'], name='core_report_user_idx'),
        ]

    def __str__(self):
        return f"Report #{self.pk} ({self.report_type}, {self.status})"

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Reason is not blank
        - The reported entity matches the report type
        - Users cannot report themselves or their own products

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if not self.reason or not self.reason.strip():
            raise ValidationError({
                'reason': _('Reason cannot be empty.')
            })

        if self.report_type == 'product':
            if not self.reported_product_id and self.pk is None:
                raise ValidationError({
                    'reported_product': _('A product report must reference a product.')
                })
            if self.reported_product_id:
                owner_id = self.reported_product.owner_id
                if self.reported_user_id and self.reported_user_id != owner_id:
                    raise ValidationError({
                        'reported_user': _('A product report targets the product owner.')
                    })
                self.reported_user_id = owner_id

        if self.report_type == 'user' and not self.reported_user_id:
            raise ValidationError({
                'reported_user': _('A user report must reference a user.')
            })

        if self.reporter_id and self.reporter_id == self.reported_user_id:
            raise ValidationError({
                'reported_user': _('You cannot report yourself.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)
