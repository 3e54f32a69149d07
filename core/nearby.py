"""
Nearby product discovery.

NearbyProductFinder ranks available products by distance from the renter.
Row selection is delegated to a query backend so the ranking rules can be
exercised without a database; OrmProductQueryBackend is the default.
"""

import logging
from collections import namedtuple

from django.conf import settings

from .geo import bounding_box, haversine_km, validate_coordinates
from .models import Product

logger = logging.getLogger(__name__)

NearbyProduct = namedtuple('NearbyProduct', ['product', 'distance_km'])

PRODUCT_CATEGORIES = [value for value, _label in Product.CATEGORY_CHOICES]


class OrmProductQueryBackend:
    """
    Fetch candidate products with the Django ORM.

    A bounding box on the owner's coordinates narrows the rows in SQL; the
    exact haversine distance is computed in Python.
    """

    def fetch(self, lat, lon, radius_km, search_text=None, category=None,
              exclude_user_id=None):
        """
        Yield (product, distance_km) for available products within radius_km.
        """
        min_lat, min_lon, max_lat, max_lon = bounding_box(lat, lon, radius_km)

        queryset = Product.objects.select_related('owner').filter(
            is_available=True,
            owner__latitude__isnull=False,
            owner__longitude__isnull=False,
            owner__latitude__gte=min_lat,
            owner__latitude__lte=max_lat,
            owner__longitude__gte=min_lon,
            owner__longitude__lte=max_lon,
        )

        if search_text:
            queryset = queryset.filter(name__icontains=search_text)

        if category:
            queryset = queryset.filter(category=category)

        if exclude_user_id is not None:
            queryset = queryset.exclude(owner_id=exclude_user_id)

        for product in queryset:
            distance = haversine_km(lat, lon, product.owner.latitude, product.owner.longitude)
            if distance <= radius_km:
                yield product, distance


class NearbyProductFinder:
    """
    Radius-limited, filtered, distance-ranked product search.

    All filters are AND-ed. Results are sorted by ascending distance with
    ties broken by newest product first. Results for a smaller radius are
    always a subset of results for a larger one.
    """

    def __init__(self, backend=None):
        self.backend = backend or OrmProductQueryBackend()

    def find(self, lat, lon, radius_km=None, search_text=None, category=None,
             exclude_user_id=None):
        """
        Find products near a point.

        Args:
            lat: Renter latitude
            lon: Renter longitude
            radius_km: Search radius; defaults to RENTLENS['DEFAULT_RADIUS_KM']
            search_text: Optional case-insensitive substring of the product name
            category: Optional product category
            exclude_user_id: Optional owner whose products are skipped

        Returns:
            list[NearbyProduct]: Matching products with their distance

        Raises:
            ValueError: Invalid coordinates, radius or category
        """
        validate_coordinates(lat, lon)

        if radius_km is None:
            radius_km = settings.RENTLENS['DEFAULT_RADIUS_KM']
        if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)) or radius_km <= 0:
            raise ValueError('radius must be a positive number.')

        if category and category not in PRODUCT_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}.")

        search_text = (search_text or '').strip() or None
        category = category or None

        rows = self.backend.fetch(
            lat, lon, radius_km,
            search_text=search_text,
            category=category,
            exclude_user_id=exclude_user_id,
        )

        results = [
            NearbyProduct(product, distance)
            for product, distance in rows
            if self._matches(product, distance, radius_km, search_text, category, exclude_user_id)
        ]

        # Two stable passes: newest first, then by distance
        results.sort(key=_created_sort_key, reverse=True)
        results.sort(key=lambda result: result.distance_km)

        logger.info(
            f"Nearby search. Center: ({lat}, {lon}), Radius: {radius_km}km, "
            f"Category: {category}, Search: {search_text}, Results: {len(results)}"
        )

        return results

    @staticmethod
    def _matches(product, distance, radius_km, search_text, category, exclude_user_id):
        if distance is None or distance > radius_km:
            return False
        if not product.is_available:
            return False
        if category and product.category != category:
            return False
        if exclude_user_id is not None and product.owner_id == exclude_user_id:
            return False
        if search_text and search_text.casefold() not in product.name.casefold():
            return False
        return True


def _created_sort_key(result):
    created_at = getattr(result.product, 'created_at', None)
    if created_at is None:
        return (False, 0.0)
    return (True, created_at.timestamp())
