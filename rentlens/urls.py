"""
URL configuration for the rentlens project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenBlacklistView, TokenVerifyView

from core.views import (
    AdminReportActionView,
    AdminReportListView,
    AdminStatisticsView,
    AdminUserBanView,
    AdminUserListView,
    BookingDetailView,
    BookingListCreateView,
    BookingPaymentRefreshView,
    BookingPaymentView,
    BookingStatusUpdateView,
    LoginView,
    NearbyProductsView,
    PaymentNotificationView,
    ProductDetailView,
    ProductListCreateView,
    RateLimitedTokenRefreshView,
    ReportCreateView,
    UserProfileView,
    UserRegistrationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/auth/login/', LoginView.as_view(), name='user_login'),
    path('api/auth/logout/', TokenBlacklistView.as_view(), name='user_logout'),
    path('api/auth/token/refresh/', RateLimitedTokenRefreshView.as_view(), name='token_refresh'),
    path('api/auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
    path('api/auth/profile/', UserProfileView.as_view(), name='user_profile'),

    # Product endpoints
    path('api/products/', ProductListCreateView.as_view(), name='product_list_create'),
    path('api/products/nearby/', NearbyProductsView.as_view(), name='product_nearby'),
    path('api/products/<int:pk>/', ProductDetailView.as_view(), name='product_detail'),

    # Booking endpoints
    path('api/bookings/', BookingListCreateView.as_view(), name='booking_list_create'),
    path('api/bookings/<int:pk>/', BookingDetailView.as_view(), name='booking_detail'),
    path('api/bookings/<int:pk>/status/', BookingStatusUpdateView.as_view(), name='booking_status_update'),

    # Payment endpoints
    path('api/bookings/<int:pk>/payment/', BookingPaymentView.as_view(), name='booking_payment'),
    path(
        'api/bookings/<int:pk>/payment/refresh/',
        BookingPaymentRefreshView.as_view(),
        name='booking_payment_refresh'
    ),
    path('api/payments/notification/', PaymentNotificationView.as_view(), name='payment_notification'),

    # Reports & moderation
    path('api/reports/', ReportCreateView.as_view(), name='report_create'),
    path('api/admin/reports/', AdminReportListView.as_view(), name='admin_report_list'),
    path(
        'api/admin/reports/<int:pk>/<str:action>/',
        AdminReportActionView.as_view(),
        name='admin_report_action'
    ),
    path('api/admin/users/', AdminUserListView.as_view(), name='admin_user_list'),
    path('api/admin/users/<int:pk>/<str:action>/', AdminUserBanView.as_view(), name='admin_user_ban'),
    path('api/admin/statistics/', AdminStatisticsView.as_view(), name='admin_statistics'),
]
