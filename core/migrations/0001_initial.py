import decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import core.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('full_name', models.CharField(blank=True, default='', max_length=150, verbose_name='full name')),
                ('phone_number', models.CharField(blank=True, default='', help_text='Optional. Enter phone number in local or international format.', max_length=20, validators=[core.validators.validate_phone_number], verbose_name='phone number')),
                ('role', models.CharField(choices=[('user', 'User'), ('admin', 'Admin')], default='user', help_text='Admins can moderate reports and ban users.', max_length=10, verbose_name='role')),
                ('avatar_url', models.URLField(blank=True, default='', max_length=500, verbose_name='avatar URL')),
                ('latitude', models.FloatField(blank=True, null=True, validators=[core.validators.validate_latitude], verbose_name='latitude')),
                ('longitude', models.FloatField(blank=True, null=True, validators=[core.validators.validate_longitude], verbose_name='longitude')),
                ('city', models.CharField(blank=True, default='', max_length=100, verbose_name='city')),
                ('address', models.CharField(blank=True, default='', max_length=300, verbose_name='address')),
                ('is_banned', models.BooleanField(default=False, help_text='Banned users cannot sign in or change data.', verbose_name='banned')),
                ('banned_at', models.DateTimeField(blank=True, null=True, verbose_name='banned at')),
                ('ban_reason', models.TextField(blank=True, default='', verbose_name='ban reason')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('banned_by', models.ForeignKey(blank=True, help_text='Admin who banned this user', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='banned_users', to=settings.AUTH_USER_MODEL)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email'], name='core_user_email_idx'),
                    models.Index(fields=['role'], name='core_user_role_idx'),
                    models.Index(fields=['is_banned'], name='core_user_banned_idx'),
                    models.Index(fields=['latitude', 'longitude'], name='core_user_location_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='name')),
                ('description', models.TextField(blank=True, default='', verbose_name='description')),
                ('category', models.CharField(choices=[('DSLR', 'DSLR'), ('Mirrorless', 'Mirrorless'), ('Drone', 'Drone'), ('Lens', 'Lens')], max_length=20, verbose_name='category')),
                ('price_per_day', models.DecimalField(decimal_places=2, help_text='Daily rental price in IDR', max_digits=12, verbose_name='price per day')),
                ('image_urls', models.JSONField(blank=True, default=list, validators=[core.validators.validate_image_urls], verbose_name='image URLs')),
                ('is_available', models.BooleanField(default=True, help_text='Unavailable products are hidden from search and cannot be booked', verbose_name='available')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('owner', models.ForeignKey(help_text='User renting out this product', on_delete=django.db.models.deletion.CASCADE, related_name='products', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'product',
                'verbose_name_plural': 'products',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner'], name='core_product_owner_idx'),
                    models.Index(fields=['category'], name='core_product_category_idx'),
                    models.Index(fields=['is_available'], name='core_product_available_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_date', models.DateField(verbose_name='start date')),
                ('end_date', models.DateField(verbose_name='end date')),
                ('total_price', models.DecimalField(decimal_places=2, help_text='Total price for the booking in IDR', max_digits=12, verbose_name='total price')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='status')),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('paid', 'Paid'), ('failed', 'Failed'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], default='pending', help_text='Kept in sync with the payment record', max_length=20, verbose_name='payment status')),
                ('delivery_method', models.CharField(choices=[('pickup', 'Pickup'), ('delivery', 'Delivery')], default='pickup', max_length=10, verbose_name='delivery method')),
                ('delivery_fee', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=12, verbose_name='delivery fee')),
                ('distance_km', models.FloatField(blank=True, null=True, verbose_name='distance (km)')),
                ('renter_address', models.CharField(blank=True, default='', max_length=300, verbose_name='renter address')),
                ('notes', models.TextField(blank=True, default='', verbose_name='notes')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('owner', models.ForeignKey(help_text='Owner of the product', on_delete=django.db.models.deletion.CASCADE, related_name='owner_bookings', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(help_text='Product being rented', on_delete=django.db.models.deletion.CASCADE, related_name='bookings', to='core.product')),
                ('renter', models.ForeignKey(help_text='User renting the product', on_delete=django.db.models.deletion.CASCADE, related_name='renter_bookings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'booking',
                'verbose_name_plural': 'bookings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['renter'], name='core_booking_renter_idx'),
                    models.Index(fields=['owner'], name='core_booking_owner_idx'),
                    models.Index(fields=['product', 'status'], name='core_booking_prod_status_idx'),
                    models.Index(fields=['start_date', 'end_date'], name='core_booking_dates_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(help_text='Order id sent to the payment gateway', max_length=64, unique=True, verbose_name='order id')),
                ('amount', models.PositiveIntegerField(help_text='Gross amount in IDR', verbose_name='amount')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('paid', 'Paid'), ('failed', 'Failed'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='status')),
                ('method', models.CharField(choices=[('qris', 'QRIS'), ('gopay', 'GoPay'), ('shopeepay', 'ShopeePay'), ('bank_transfer', 'Bank Transfer')], default='qris', max_length=20, verbose_name='payment method')),
                ('transaction_id', models.CharField(blank=True, default='', max_length=100, verbose_name='gateway transaction id')),
                ('fraud_status', models.CharField(blank=True, default='', max_length=20, verbose_name='fraud status')),
                ('qr_string', models.TextField(blank=True, default='', verbose_name='QR payload')),
                ('qr_url', models.URLField(blank=True, default='', max_length=500, verbose_name='QR image URL')),
                ('gateway_response', models.JSONField(blank=True, default=dict, verbose_name='last gateway response')),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='paid at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('booking', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='payment', to='core.booking')),
            ],
            options={
                'verbose_name': 'payment',
                'verbose_name_plural': 'payments',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='core_payment_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Report',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('report_type', models.CharField(choices=[('user', 'User'), ('product', 'Product')], max_length=10, verbose_name='report type')),
                ('reason', models.CharField(max_length=200, verbose_name='reason')),
                ('description', models.TextField(blank=True, default='', verbose_name='description')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('reviewed', 'Reviewed'), ('resolved', 'Resolved'), ('rejected', 'Rejected')], default='pending', max_length=10, verbose_name='status')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True, verbose_name='reviewed at')),
                ('admin_notes', models.TextField(blank=True, default='', verbose_name='admin notes')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('reported_product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reports', to='core.product')),
                ('reported_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='reports_received', to=settings.AUTH_USER_MODEL)),
                ('reporter', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reports_filed', to=settings.AUTH_USER_MODEL)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reports_reviewed', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'report',
                'verbose_name_plural': 'reports',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='core_report_status_idx'),
                    models.Index(fields=['reported_user'], name='core_report_user_idx'),
                ],
            },
        ),
    ]
