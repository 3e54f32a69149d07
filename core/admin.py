"""
Django admin configuration for RentLens models.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .exceptions import RentLensError
from .moderation import ReportModerationWorkflow
from .models import Booking, Payment, Product, Report, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with location and ban fields. Ban and unban
    go through ReportModerationWorkflow so the same rules apply as in the API.
    """

    list_display = [
        'email',
        'username',
        'full_name',
        'role',
        'city',
        'is_banned',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'role',
        'is_banned',
        'is_staff',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'full_name',
        'city',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': ('full_name', 'email', 'phone_number', 'avatar_url')
        }),
        (_('Location'), {
            'fields': ('latitude', 'longitude', 'city', 'address')
        }),
        (_('Role & Ban'), {
            'fields': ('role', 'is_banned', 'banned_at', 'banned_by', 'ban_reason')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'role',
            ),
        }),
    )

    readonly_fields = [
        'is_banned', 'banned_at', 'banned_by', 'ban_reason',
        'created_at', 'updated_at', 'last_login', 'date_joined',
    ]

    date_hierarchy = 'created_at'

    list_per_page = 25

    actions = ['unban_selected']

    def get_readonly_fields(self, request, obj=None):
        if obj:
            return self.readonly_fields
        return []

    @admin.action(description=_('Unban selected users'))
    def unban_selected(self, request, queryset):
        workflow = ReportModerationWorkflow()
        done = 0
        for user in queryset.filter(is_banned=True):
            try:
                workflow.unban_user(user, request.user)
            except RentLensError as e:
                self.message_user(request, f'{user.username}: {e.message}', messages.ERROR)
                continue
            done += 1
        self.message_user(request, f'{done} user(s) unbanned.', messages.SUCCESS)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin interface for Product model."""

    list_display = [
        'name',
        'owner',
        'category',
        'price_per_day',
        'is_available',
        'created_at',
    ]

    list_filter = [
        'category',
        'is_available',
        'created_at',
    ]

    search_fields = [
        'name',
        'description',
        'owner__email',
        'owner__username',
    ]

    readonly_fields = ['created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('owner', 'name', 'description', 'category')
        }),
        (_('Pricing & Availability'), {
            'fields': ('price_per_day', 'is_available', 'image_urls')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Admin interface for Booking model."""

    list_display = [
        'id',
        'product',
        'renter',
        'owner',
        'start_date',
        'end_date',
        'status',
        'payment_status',
        'total_price',
    ]

    list_filter = [
        'status',
        'payment_status',
        'delivery_method',
        'start_date',
    ]

    search_fields = [
        'product__name',
        'renter__email',
        'renter__username',
        'owner__email',
        'owner__username',
    ]

    # Status changes go through BookingService, never the admin form
    readonly_fields = ['status', 'payment_status', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'start_date'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('product', 'renter', 'owner')
        }),
        (_('Rental Period'), {
            'fields': ('start_date', 'end_date', 'status', 'payment_status')
        }),
        (_('Delivery & Price'), {
            'fields': ('delivery_method', 'renter_address', 'distance_km', 'delivery_fee', 'total_price')
        }),
        (_('Notes'), {
            'fields': ('notes',)
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Admin interface for Payment model."""

    list_display = [
        'order_id',
        'booking',
        'amount',
        'method',
        'status',
        'paid_at',
        'created_at',
    ]

    list_filter = [
        'status',
        'method',
        'created_at',
    ]

    search_fields = [
        'order_id',
        'transaction_id',
    ]

    readonly_fields = [
        'order_id', 'transaction_id', 'fraud_status', 'qr_string', 'qr_url',
        'gateway_response', 'paid_at', 'created_at', 'updated_at',
    ]

    ordering = ['-created_at']

    list_per_page = 25


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    """
    Admin interface for Report model.

    Moderation actions use ReportModerationWorkflow; a ban and the report
    resolution are applied together or not at all.
    """

    list_display = [
        'id',
        'report_type',
        'reporter',
        'reported_user',
        'reported_product',
        'reason',
        'status',
        'created_at',
    ]

    list_filter = [
        'status',
        'report_type',
        'created_at',
    ]

    search_fields = [
        'reason',
        'description',
        'reporter__username',
        'reported_user__username',
        'reported_product__name',
    ]

    readonly_fields = ['status', 'reviewed_by', 'reviewed_at', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    actions = ['ban_and_resolve_selected', 'reject_selected']

    fieldsets = (
        (None, {
            'fields': ('report_type', 'reporter', 'reported_user', 'reported_product')
        }),
        (_('Report'), {
            'fields': ('reason', 'description')
        }),
        (_('Review'), {
            'fields': ('status', 'reviewed_by', 'reviewed_at', 'admin_notes')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def _run(self, request, queryset, action, success_label):
        done = 0
        for report in queryset:
            try:
                action(report, request.user)
            except RentLensError as e:
                self.message_user(request, f'Report {report.pk}: {e.message}', messages.ERROR)
                continue
            done += 1
        self.message_user(request, f'{done} report(s) {success_label}.', messages.SUCCESS)

    @admin.action(description=_('Ban reported user and resolve'))
    def ban_and_resolve_selected(self, request, queryset):
        workflow = ReportModerationWorkflow()
        self._run(request, queryset, workflow.ban_and_resolve, 'resolved')

    @admin.action(description=_('Reject selected reports'))
    def reject_selected(self, request, queryset):
        workflow = ReportModerationWorkflow()
        self._run(request, queryset, workflow.dismiss, 'rejected')
