"""
Custom validators for marketplace models.
"""

import re
from django.core.exceptions import ValidationError
from django.core.validators import URLValidator


def validate_phone_number(value):
    """
    Validate phone number format.
    
    Accepts international formats with optional country codes, spaces, dashes, and parentheses.
    Requires at least 10 digits.
    
    Valid formats:
    - +1-234-567-8900
    - +44 20 7946 0958
    - +1 (234) 567-8900
    - 234-567-8900
    - 2345678900
    
    Args:
        value: Phone number string to validate
        
    Raises:
        ValidationError: If phone number format is invalid
    """
    if not value:  # Empty string is allowed (optional field)
        return
    
    # Remove all non-digit characters except +
    digits_only = re.sub(r'[^\d+]', '', value)
    
    # Check if it contains only valid characters (digits, spaces, dashes, parentheses, plus)
    if not re.match(r'^[\d\s\-\+\(\)]+$', value):
        raise ValidationError(
            'Phone number can only contain digits, spaces, dashes, parentheses, and plus sign.',
            code='invalid_phone_chars'
        )
    
    # Extract just the digits (excluding +)
    digits = re.sub(r'\D', '', value)
    
    # Must have at least 10 digits
    if len(digits) < 10:
        raise ValidationError(
            'Phone number must contain at least 10 digits.',
            code='phone_too_short'
        )
    
    # Must not be all the same digit (like 0000000000)
    if len(set(digits)) == 1:
        raise ValidationError(
            'Phone number cannot be all the same digit.',
            code='invalid_phone_pattern'
        )




def validate_image_urls(value):
    """
    Validate the image list of a listing.

    Requires a non-empty list of at most 10 http(s) URLs.

    Args:
        value: List of image URL strings

    Raises:
        ValidationError: If the list is empty, too long or holds an invalid URL
    """
    if not isinstance(value, list) or not value:
        raise ValidationError(
            'At least one image is required.',
            code='images_required'
        )

    if len(value) > 10:
        raise ValidationError(
            'A listing can have at most 10 images.',
            code='too_many_images'
        )

    url_validator = URLValidator(schemes=['http', 'https'])
    for url in value:
        if not isinstance(url, str):
            raise ValidationError(
                'Each image must be a URL string.',
                code='invalid_image_url'
            )
        url_validator(url)
