"""
API views for the RentLens marketplace.
"""

import logging

from django.contrib.auth import authenticate, get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.generics import ListAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from .backends import UsernameOrEmailBackend
from .bookings import BookingService
from .exceptions import RentLensError
from .moderation import ReportModerationWorkflow
from .models import Booking, Payment, Product, Report
from .nearby import NearbyProductFinder
from .payments import get_payment_service
from .permissions import IsAdminRole, IsBookingParty, IsNotBanned, IsProductOwnerOrReadOnly
from .serializers import (
    AdminUserSerializer,
    BanUserSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusUpdateSerializer,
    DismissReportSerializer,
    LoginSerializer,
    ModerationNotesSerializer,
    NearbyProductSerializer,
    NearbyQuerySerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    ProductSerializer,
    ReportCreateSerializer,
    ReportSerializer,
    UserProfileSerializer,
    UserProfileUpdateSerializer,
    UserRegistrationSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def domain_error_response(exc):
    """Response for a RentLensError: detail, code and retryable flag."""
    return Response(exc.as_response_data(), status=exc.status_code)


def validation_error_response(exc):
    """Response for a Django ValidationError raised below the serializer layer."""
    if hasattr(exc, 'error_dict'):
        return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
    return Response({'detail': exc.messages}, status=status.HTTP_400_BAD_REQUEST)


# ============================================================================
# Authentication Views
# ============================================================================

class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for user registration.

    Accepts POST requests with user registration data.
    Returns created user data (excluding password) on success.
    Handles concurrent registration attempts with database-level uniqueness.
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        """
        Handle user registration with proper error handling.
        Catches IntegrityError for concurrent duplicate username/email attempts.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform_create(serializer)
        except IntegrityError as e:
            message = str(e).lower()
            if 'email' in message:
                return Response(
                    {'email': ['A user with that email already exists.']},
                    status=status.HTTP_400_BAD_REQUEST
                )
            if 'username' in message or 'unique' in message:
                return Response(
                    {'username': ['A user with that username already exists.']},
                    status=status.HTTP_400_BAD_REQUEST
                )
            raise

        logger.info(
            f"User registered. User ID: {serializer.instance.id}, "
            f"IP: {get_client_ip(request)}"
        )
        headers = self.get_success_headers(serializer.data)
        return Response(serializer.data, status=status.HTTP_201_CREATED, headers=headers)


class LoginView(APIView):
    """
    API endpoint for login with JWT token generation.

    Security features:
    - Rate limiting: 5 attempts per minute per IP
    - Generic error messages to prevent user enumeration
    - Failed login attempt logging for security monitoring
    - Username or email, case-insensitive
    - Banned accounts are rejected after the password check

    POST /api/auth/login/
    Request body: {"identifier": "budi" | "budi@example.com", "password": "..."}

    Success response (200):
    {
        "access": "<jwt_access_token>",
        "refresh": "<jwt_refresh_token>",
        "user": {"id": 1, "username": "budi", "email": "budi@example.com", "role": "user"}
    }

    Error responses:
    - 401: {"detail": "Invalid credentials"}
    - 403: {"detail": "Your account has been banned.", "code": "account_banned"}
    """
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        identifier = serializer.validated_data['identifier'].strip()
        password = serializer.validated_data['password']
        client_ip = get_client_ip(request)

        user = authenticate(request, username=identifier, password=password)

        if user is None:
            # Banned users get a distinct answer, but only with the right password
            candidate = UsernameOrEmailBackend.find_user(identifier)
            if (candidate is not None and candidate.is_banned and candidate.is_active
                    and candidate.check_password(password)):
                logger.warning(
                    f"Login attempt by banned user. User ID: {candidate.id}, IP: {client_ip}"
                )
                return Response(
                    {
                        'detail': 'Your account has been banned.',
                        'code': 'account_banned',
                        'ban_reason': candidate.ban_reason,
                    },
                    status=status.HTTP_403_FORBIDDEN
                )

            logger.warning(
                f"Failed login attempt. Identifier: {identifier}, IP: {client_ip}"
            )
            return Response(
                {'detail': 'Invalid credentials'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        refresh = RefreshToken.for_user(user)

        logger.info(f"Successful login. User ID: {user.id}, IP: {client_ip}")

        return Response({
            'access': str(refresh.access_token),
            'refresh': str(refresh),
            'user': {
                'id': user.id,
                'username': user.username,
                'email': user.email,
                'role': user.role,
            }
        }, status=status.HTTP_200_OK)


class RateLimitedTokenRefreshView(TokenRefreshView):
    """
    POST /api/auth/token/refresh/

    simplejwt refresh with rotation and blacklisting, rate limited per IP.
    """
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'refresh'


class UserProfileView(APIView):
    """
    API endpoint for retrieving and updating the authenticated user's profile.

    GET   /api/auth/profile/
    PUT   /api/auth/profile/
    PATCH /api/auth/profile/
    Body: {"full_name", "phone_number", "avatar_url", "latitude", "longitude",
           "city", "address"}

    The location set here is the location of every product the user lists
    and the center of their nearby searches.

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 400: Invalid data (validation errors)
    - 403: Banned users cannot update their profile
    """
    permission_classes = [IsAuthenticated, IsNotBanned]

    def get(self, request, *args, **kwargs):
        serializer = UserProfileSerializer(request.user, context={'request': request})
        return Response(serializer.data, status=status.HTTP_200_OK)

    def put(self, request, *args, **kwargs):
        return self._update_profile(request, partial=False)

    def patch(self, request, *args, **kwargs):
        return self._update_profile(request, partial=True)

    def _update_profile(self, request, partial=False):
        """
        Internal method to handle profile updates (PUT/PATCH).

        Args:
            request: HTTP request
            partial: If True, allows partial updates (PATCH)

        Returns:
            Response: Updated profile data or error
        """
        user = request.user
        serializer = UserProfileUpdateSerializer(
            user,
            data=request.data,
            partial=partial,
            context={'request': request}
        )

        if not serializer.is_valid():
            logger.warning(
                f"Profile update validation failed. "
                f"User ID: {user.id}, Errors: {serializer.errors}"
            )
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            serializer.save()
        except DjangoValidationError as e:
            return validation_error_response(e)

        logger.info(f"Profile updated. User ID: {user.id}, Partial: {partial}")

        return Response(
            UserProfileSerializer(user, context={'request': request}).data,
            status=status.HTTP_200_OK
        )


# ============================================================================
# Product Views
# ============================================================================

class ProductListCreateView(ListAPIView):
    """
    The authenticated user's own listings, and listing creation.

    GET  /api/products/          -> paginated list of my products
    POST /api/products/          -> create a product owned by me

    Request body (POST):
    {
        "name": "Canon EOS R6",
        "description": "Body only",
        "category": "Mirrorless",
        "price_per_day": "250000",
        "image_urls": ["https://..."]
    }
    """
    permission_classes = [IsAuthenticated, IsNotBanned]
    pagination_class = PageNumberPagination
    serializer_class = ProductSerializer

    def get_queryset(self):
        return Product.objects.filter(owner=self.request.user).select_related('owner')

    def post(self, request, *args, **kwargs):
        serializer = ProductSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            product = serializer.save(owner=request.user)
        except DjangoValidationError as e:
            return validation_error_response(e)

        logger.info(
            f"Product created. Product ID: {product.id}, Owner ID: {request.user.id}, "
            f"Category: {product.category}"
        )
        return Response(
            ProductSerializer(product, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class ProductDetailView(APIView):
    """
    Product detail; the owner can edit or delete it.

    GET    /api/products/<id>/   (any authenticated user)
    PATCH  /api/products/<id>/   (owner)
    PUT    /api/products/<id>/   (owner)
    DELETE /api/products/<id>/   (owner, no pending/confirmed/active bookings)
    """
    permission_classes = [IsAuthenticated, IsNotBanned, IsProductOwnerOrReadOnly]

    def _get_product(self, request, pk):
        try:
            product = Product.objects.select_related('owner').get(pk=pk)
        except Product.DoesNotExist:
            return None
        self.check_object_permissions(request, product)
        return product

    def get(self, request, pk, *args, **kwargs):
        product = self._get_product(request, pk)
        if product is None:
            return Response(
                {'detail': f'Product with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(ProductSerializer(product, context={'request': request}).data)

    def put(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        product = self._get_product(request, pk)
        if product is None:
            return Response(
                {'detail': f'Product with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        serializer = ProductSerializer(
            product, data=request.data, partial=partial, context={'request': request}
        )
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            serializer.save()
        except DjangoValidationError as e:
            return validation_error_response(e)

        logger.info(f"Product updated. Product ID: {product.id}, Owner ID: {request.user.id}")
        return Response(serializer.data, status=status.HTTP_200_OK)

    def delete(self, request, pk, *args, **kwargs):
        product = self._get_product(request, pk)
        if product is None:
            return Response(
                {'detail': f'Product with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        if product.bookings.filter(status__in=['pending', 'confirmed', 'active']).exists():
            return Response(
                {
                    'detail': 'Products with open bookings cannot be deleted. Mark it unavailable instead.',
                    'code': 'product_has_open_bookings',
                    'retryable': False,
                },
                status=status.HTTP_409_CONFLICT
            )

        product.delete()
        logger.info(f"Product deleted. Product ID: {pk}, Owner ID: {request.user.id}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class NearbyProductsView(APIView):
    """
    Products near a point, nearest first.

    GET /api/products/nearby/?lat=-6.2&lon=106.8&radius=20&search=canon&category=DSLR

    The requesting user's own products are never returned.

    Success response (200):
    {
        "count": 2,
        "radius_km": 20.0,
        "results": [{..product.., "distance_km": 1.42}, ...]
    }

    Error responses:
    - 400: Missing or out-of-range coordinates, non-positive radius, unknown category
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        query = NearbyQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        params = query.validated_data
        finder = NearbyProductFinder()

        try:
            results = finder.find(
                params['lat'],
                params['lon'],
                radius_km=params['radius'],
                search_text=params.get('search'),
                category=params.get('category') or None,
                exclude_user_id=request.user.id,
            )
        except ValueError as e:
            return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        products = [result.product for result in results]
        distances = {result.product.pk: result.distance_km for result in results}
        serializer = NearbyProductSerializer(
            products, many=True, context={'request': request, 'distances': distances}
        )

        return Response({
            'count': len(products),
            'radius_km': params['radius'],
            'results': serializer.data,
        }, status=status.HTTP_200_OK)


# ============================================================================
# Booking Views
# ============================================================================

class BookingListCreateView(ListAPIView):
    """
    The authenticated user's bookings, and booking creation.

    GET /api/bookings/
    Query Parameters:
    - as (optional): 'renter' (default) or 'owner'
    - status (optional): Filter by booking status
    - page (optional): Page number

    POST /api/bookings/
    Request body:
    {
        "product": 1,
        "start_date": "2024-01-01",
        "end_date": "2024-01-04",
        "delivery_method": "pickup" | "delivery",
        "renter_address": "Jl. Sudirman 1",
        "notes": "..."
    }

    Error responses:
    - 400: Invalid dates, own product, unavailable product, delivery without location
    - 403: Banned user
    - 409: Product already booked for overlapping dates
    """
    permission_classes = [IsAuthenticated, IsNotBanned]
    pagination_class = PageNumberPagination
    serializer_class = BookingSerializer

    def get_queryset(self):
        user = self.request.user

        if self.request.query_params.get('as') == 'owner':
            queryset = Booking.objects.filter(owner=user)
        else:
            queryset = Booking.objects.filter(renter=user)

        queryset = queryset.select_related('product', 'renter', 'owner')

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        return queryset.order_by('-created_at')

    def post(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        service = BookingService()

        try:
            booking = service.create(
                renter=request.user,
                product=data['product'],
                start_date=data['start_date'],
                end_date=data['end_date'],
                delivery_method=data['delivery_method'],
                renter_address=data.get('renter_address', ''),
                notes=data.get('notes', ''),
            )
        except RentLensError as e:
            return domain_error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)
        except Exception as e:
            logger.error(
                f"Error creating booking: {str(e)}, "
                f"User ID: {request.user.id}, IP: {get_client_ip(request)}"
            )
            return Response(
                {'detail': 'An error occurred while creating the booking.'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response(
            BookingSerializer(booking, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class BookingDetailView(APIView):
    """
    GET /api/bookings/<id>/ for the renter or the owner of the booking.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk, *args, **kwargs):
        try:
            booking = Booking.objects.select_related('product', 'renter', 'owner').get(pk=pk)
        except Booking.DoesNotExist:
            return Response(
                {'detail': f'Booking with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        permission = IsBookingParty()
        if not permission.has_object_permission(request, self, booking):
            return Response({'detail': permission.message}, status=status.HTTP_403_FORBIDDEN)

        return Response(BookingSerializer(booking, context={'request': request}).data)


class BookingStatusUpdateView(APIView):
    """
    API endpoint for updating booking status.

    Security features:
    - Requires JWT authentication
    - Only the renter or owner of the booking can act on it
    - Transition rules enforced by BookingStateMachine
    - Row lock plus compare-and-set against concurrent updates
    - Logs all status changes for audit trail

    PUT /api/bookings/<id>/status/
    Request body: {"status": "confirmed"}

    Rules:
    - pending -> confirmed: owner, payment must be 'paid'
    - pending -> cancelled: owner (reject) or renter (cancel)
    - confirmed -> active: owner (handover)
    - confirmed -> cancelled: owner or renter
    - active -> completed: owner (return)

    Error responses:
    - 400: Invalid transition / payment not completed
    - 403: Not a party, wrong party, or banned
    - 404: Booking not found
    - 409: Booking changed concurrently
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, pk, *args, **kwargs):
        serializer = BookingStatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        new_status = serializer.validated_data['status']
        service = BookingService()

        try:
            booking = service.transition(pk, new_status, request.user)
        except Booking.DoesNotExist:
            logger.warning(
                f"Booking status update attempted for non-existent booking. "
                f"Booking ID: {pk}, User ID: {request.user.id}, IP: {get_client_ip(request)}"
            )
            return Response(
                {'detail': f'Booking with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )
        except RentLensError as e:
            logger.warning(
                f"Booking status update rejected. Booking ID: {pk}, "
                f"Requested Status: {new_status}, User ID: {request.user.id}, "
                f"Reason: {e.code}, IP: {get_client_ip(request)}"
            )
            return domain_error_response(e)

        return Response(
            BookingSerializer(booking, context={'request': request}).data,
            status=status.HTTP_200_OK
        )

    def patch(self, request, pk, *args, **kwargs):
        return self.put(request, pk, *args, **kwargs)


# ============================================================================
# Payment Views
# ============================================================================

class BookingPaymentView(APIView):
    """
    QRIS payment for a booking.

    GET  /api/bookings/<id>/payment/   -> payment detail (renter or owner)
    POST /api/bookings/<id>/payment/   -> create the QRIS charge (renter)

    Error responses:
    - 403: Not the renter / banned
    - 404: Booking or payment not found
    - 409: Payment already in progress or paid
    - 502: Payment gateway unreachable (retryable)
    """
    permission_classes = [IsAuthenticated]

    def _get_booking(self, request, pk):
        booking = Booking.objects.select_related('renter', 'owner').filter(pk=pk).first()
        if booking is None:
            return None, Response(
                {'detail': f'Booking with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        permission = IsBookingParty()
        if not permission.has_object_permission(request, self, booking):
            return None, Response({'detail': permission.message}, status=status.HTTP_403_FORBIDDEN)

        return booking, None

    def get(self, request, pk, *args, **kwargs):
        booking, error = self._get_booking(request, pk)
        if error:
            return error

        payment = Payment.objects.filter(booking=booking).first()
        if payment is None:
            return Response(
                {'detail': 'No payment has been created for this booking.'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(PaymentSerializer(payment).data)

    def post(self, request, pk, *args, **kwargs):
        booking, error = self._get_booking(request, pk)
        if error:
            return error

        serializer = PaymentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            payment = get_payment_service().create_for_booking(
                booking, request.user, method=serializer.validated_data['method']
            )
        except RentLensError as e:
            return domain_error_response(e)

        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class BookingPaymentRefreshView(APIView):
    """
    POST /api/bookings/<id>/payment/refresh/

    Poll the gateway for the payment's current status and apply it.
    """
    permission_classes = [IsAuthenticated, IsNotBanned]

    def post(self, request, pk, *args, **kwargs):
        payment = Payment.objects.select_related('booking').filter(booking_id=pk).first()
        if payment is None:
            return Response(
                {'detail': 'No payment has been created for this booking.'},
                status=status.HTTP_404_NOT_FOUND
            )

        permission = IsBookingParty()
        if not permission.has_object_permission(request, self, payment.booking):
            return Response({'detail': permission.message}, status=status.HTTP_403_FORBIDDEN)

        try:
            payment = get_payment_service().refresh_status(payment)
        except RentLensError as e:
            return domain_error_response(e)

        return Response(PaymentSerializer(payment).data, status=status.HTTP_200_OK)


class PaymentNotificationView(APIView):
    """
    POST /api/payments/notification/

    Gateway-to-server notification. Not authenticated with JWT; trust comes
    from the signature_key in the payload.

    Responses:
    - 200: Applied
    - 403: Invalid signature or amount
    - 404: Unknown order id
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        payload = request.data if isinstance(request.data, dict) else {}

        try:
            payment = get_payment_service().apply_notification(payload)
        except Payment.DoesNotExist:
            logger.warning(
                f"Payment notification for unknown order. Order: {payload.get('order_id')}, "
                f"IP: {get_client_ip(request)}"
            )
            return Response({'detail': 'Unknown order id.'}, status=status.HTTP_404_NOT_FOUND)
        except RentLensError as e:
            return domain_error_response(e)

        return Response({'order_id': payment.order_id, 'status': payment.status})


# ============================================================================
# Report & Moderation Views
# ============================================================================

class ReportCreateView(APIView):
    """
    POST /api/reports/

    Request body:
    {
        "report_type": "user" | "product",
        "reported_user": 3,          # user reports
        "reported_product": 7,       # product reports
        "reason": "Fraud",
        "description": "..."
    }
    """
    permission_classes = [IsAuthenticated, IsNotBanned]

    def post(self, request, *args, **kwargs):
        serializer = ReportCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            report = ReportModerationWorkflow().file_report(
                reporter=request.user,
                report_type=data['report_type'],
                reason=data['reason'],
                description=data.get('description', ''),
                reported_user=data.get('reported_user'),
                reported_product=data.get('reported_product'),
            )
        except RentLensError as e:
            return domain_error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)


class AdminReportListView(ListAPIView):
    """
    GET /api/admin/reports/?status=pending&type=product

    Admin-only, paginated, newest first.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]
    pagination_class = PageNumberPagination
    serializer_class = ReportSerializer

    def get_queryset(self):
        queryset = Report.objects.select_related('reporter', 'reported_user', 'reviewed_by')

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        type_filter = self.request.query_params.get('type')
        if type_filter:
            queryset = queryset.filter(report_type=type_filter)

        return queryset.order_by('-created_at')


class AdminReportActionView(APIView):
    """
    POST /api/admin/reports/<id>/<action>/

    Actions:
    - review:  pending -> reviewed            body: {"notes"}
    - dismiss: pending -> resolved|rejected   body: {"status", "notes"}
    - ban:     ban reported user + resolve    body: {"notes"}
    - reopen:  reviewed|resolved|rejected -> pending

    Error responses:
    - 400: Report already handled
    - 403: Not an admin / target is an admin
    - 404: Report not found
    - 503: Ban and resolve rolled back (retryable)
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    ACTIONS = ('review', 'dismiss', 'ban', 'reopen')

    def post(self, request, pk, action, *args, **kwargs):
        if action not in self.ACTIONS:
            return Response({'detail': 'Unknown action.'}, status=status.HTTP_404_NOT_FOUND)

        try:
            report = Report.objects.get(pk=pk)
        except Report.DoesNotExist:
            return Response(
                {'detail': f'Report with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        serializer_class = DismissReportSerializer if action == 'dismiss' else ModerationNotesSerializer
        serializer = serializer_class(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        notes = serializer.validated_data.get('notes', '')
        workflow = ReportModerationWorkflow()

        try:
            if action == 'review':
                report = workflow.mark_reviewed(report, request.user, notes)
            elif action == 'dismiss':
                report = workflow.dismiss(
                    report, request.user, serializer.validated_data['status'], notes
                )
            elif action == 'ban':
                report = workflow.ban_and_resolve(report, request.user, notes)
            else:
                report = workflow.reopen(report, request.user)
        except RentLensError as e:
            logger.warning(
                f"Moderation action rejected. Report ID: {pk}, Action: {action}, "
                f"Admin ID: {request.user.id}, Reason: {e.code}"
            )
            return domain_error_response(e)

        return Response(ReportSerializer(report).data, status=status.HTTP_200_OK)


class AdminUserListView(ListAPIView):
    """
    GET /api/admin/users/?is_banned=true

    Admin-only, paginated, newest first. is_banned accepts true or false;
    omit it to list every user.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]
    pagination_class = PageNumberPagination
    serializer_class = AdminUserSerializer

    def get_queryset(self):
        queryset = User.objects.select_related('banned_by')

        is_banned = self.request.query_params.get('is_banned')
        if is_banned is not None:
            value = is_banned.strip().lower()
            if value not in ('true', 'false'):
                raise ValidationError({'is_banned': 'Must be true or false.'})
            queryset = queryset.filter(is_banned=(value == 'true'))

        return queryset.order_by('-created_at', '-pk')


class AdminUserBanView(APIView):
    """
    POST /api/admin/users/<id>/ban/    body: {"reason": "..."}
    POST /api/admin/users/<id>/unban/
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, pk, action, *args, **kwargs):
        if action not in ('ban', 'unban'):
            return Response({'detail': 'Unknown action.'}, status=status.HTTP_404_NOT_FOUND)

        try:
            target = User.objects.get(pk=pk)
        except User.DoesNotExist:
            return Response(
                {'detail': f'User with ID {pk} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        workflow = ReportModerationWorkflow()

        try:
            if action == 'ban':
                serializer = BanUserSerializer(data=request.data)
                if not serializer.is_valid():
                    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
                target = workflow.ban_user(target, request.user, serializer.validated_data['reason'])
            else:
                target = workflow.unban_user(target, request.user)
        except RentLensError as e:
            return domain_error_response(e)

        return Response(AdminUserSerializer(target).data, status=status.HTTP_200_OK)


class AdminStatisticsView(APIView):
    """
    GET /api/admin/statistics/

    Counts of users, banned users, reports by status, products and bookings.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request, *args, **kwargs):
        try:
            stats = ReportModerationWorkflow().statistics(request.user)
        except RentLensError as e:
            return domain_error_response(e)
        return Response(stats, status=status.HTTP_200_OK)
