"""
Field validators shared by models and serializers.
"""

import re
from django.core.exceptions import ValidationError
from django.core.validators import URLValidator

MAX_PRODUCT_IMAGES = 10


def validate_phone_number(value):
    """
    Validate phone number format.

    Accepts local and international formats with spaces, dashes and
    parentheses. Requires at least 10 digits.

    Valid formats:
    - +62 812-3456-7890
    - 0812 3456 7890
    - (021) 555-01234

    Args:
        value: Phone number string to validate

    Raises:
        ValidationError: If phone number format is invalid
    """
    if not value:  # Empty string is allowed (optional field)
        return

    if not re.match(r'^[\d\s\-\+\(\)]+$', value):
        raise ValidationError(
            'Phone number can only contain digits, spaces, dashes, parentheses, and plus sign.',
            code='invalid_phone_chars'
        )

    digits = re.sub(r'\D', '', value)

    if len(digits) < 10:
        raise ValidationError(
            'Phone number must contain at least 10 digits.',
            code='phone_too_short'
        )

    if len(digits) > 15:
        raise ValidationError(
            'Phone number cannot contain more than 15 digits.',
            code='phone_too_long'
        )

    # Reject placeholder numbers like 0000000000
    if len(set(digits)) == 1:
        raise ValidationError(
            'Phone number cannot be all the same digit.',
            code='invalid_phone_pattern'
        )


def validate_latitude(value):
    """Latitude must lie within [-90, 90]."""
    if value is None:
        return
    if not -90 <= value <= 90:
        raise ValidationError(
            'Latitude must be between -90 and 90.',
            code='invalid_latitude'
        )


def validate_longitude(value):
    """Longitude must lie within [-180, 180]."""
    if value is None:
        return
    if not -180 <= value <= 180:
        raise ValidationError(
            'Longitude must be between -180 and 180.',
            code='invalid_longitude'
        )


def validate_image_urls(value):
    """
    Validate the ordered list of product image URLs.

    Checks:
    - Value is a list
    - At most MAX_PRODUCT_IMAGES entries
    - Every entry is an http(s) URL

    Raises:
        ValidationError: If the list is malformed
    """
    if value in (None, ''):
        return

    if not isinstance(value, list):
        raise ValidationError(
            'Image URLs must be a list.',
            code='invalid_image_urls'
        )

    if len(value) > MAX_PRODUCT_IMAGES:
        raise ValidationError(
            f'A product can have at most {MAX_PRODUCT_IMAGES} images.',
            code='too_many_images'
        )

    url_validator = URLValidator(schemes=['http', 'https'])
    for url in value:
        if not isinstance(url, str):
            raise ValidationError(
                'Each image URL must be a string.',
                code='invalid_image_url'
            )
        try:
            url_validator(url)
        except ValidationError:
            raise ValidationError(
                f'Invalid image URL: {url}',
                code='invalid_image_url'
            )
