"""
Custom validators for users, stores and listings.
"""

import re
from django.core.exceptions import ValidationError


def validate_phone_number(value):
    """
    Validate a contact phone number for a user or store.

    Accepts international formats with optional country codes, spaces, dashes, and parentheses.
    Requires at least 10 digits.

    Valid formats:
    - +1-234-567-8900
    - +44 20 7946 0958
    - (234) 567-8900

    Args:
        value: Phone number string to validate

    Raises:
        ValidationError: If phone number format is invalid
    """
    if not value:  # Optional field
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

    if len(set(digits)) == 1:
        raise ValidationError(
            'Phone number cannot be all the same digit.',
            code='invalid_phone_pattern'
        )


def validate_listing_window(created_at, expiry_date):
    """
    Validate that a listing expires after it was created.

    Args:
        created_at: Listing creation timestamp
        expiry_date: Listing expiry timestamp

    Raises:
        ValidationError: If expiry_date is not after created_at
    """
    if created_at is None or expiry_date is None:
        return

    if expiry_date <= created_at:
        raise ValidationError(
            {'expiry_date': 'Expiry date must be after the listing creation time.'},
            code='invalid_expiry'
        )
