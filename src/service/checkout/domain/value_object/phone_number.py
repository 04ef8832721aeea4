import re

from src.platform.exception.exceptions import ValidationError


COUNTRY_CODE = '254'

_STRIP_PATTERN = re.compile(r'[\s\-+]')
_VALID_PATTERN = re.compile(r'254[17]\d{8}')


def normalize_phone(raw: str) -> str:
    """
    Canonicalize a user-entered Kenyan phone number to ``254XXXXXXXXX``.

    Examples:
        '0712345678'       -> '254712345678'
        '+254 712-345-678' -> '254712345678'
        '712345678'        -> '254712345678'

    Raises:
        ValidationError: when the normalized value is not 254 + [17] + 8 digits
    """
    digits = _STRIP_PATTERN.sub('', raw or '')
    if digits.startswith('0'):
        digits = COUNTRY_CODE + digits[1:]
    elif not digits.startswith(COUNTRY_CODE):
        digits = COUNTRY_CODE + digits

    if not _VALID_PATTERN.fullmatch(digits):
        raise ValidationError(
            'Invalid phone number',
            field_errors={'phone': 'Enter a valid Safaricom/Airtel number, e.g. 0712345678'},
        )
    return digits
