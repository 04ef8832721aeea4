import re

import attrs

from src.platform.exception.exceptions import ValidationError
from src.service.checkout.domain.value_object.phone_number import normalize_phone


_EMAIL_PATTERN = re.compile(r'[^@\s]+@[^@\s]+\.[^@\s]+')


@attrs.frozen
class Customer:
    full_name: str
    phone: str  # normalized, 254XXXXXXXXX
    email: str

    @classmethod
    def create(cls, *, full_name: str, phone: str, email: str) -> 'Customer':
        """
        Validate every field and collect all problems before raising, so the form
        can highlight each invalid input at once.
        """
        field_errors: dict[str, str] = {}

        name = (full_name or '').strip()
        if not name:
            field_errors['full_name'] = 'Full name is required'

        normalized_phone = ''
        try:
            normalized_phone = normalize_phone(phone)
        except ValidationError as e:
            field_errors.update(e.field_errors)

        address = (email or '').strip()
        if not _EMAIL_PATTERN.fullmatch(address):
            field_errors['email'] = 'Enter a valid email address'

        if field_errors:
            raise ValidationError('Invalid customer details', field_errors=field_errors)

        return cls(full_name=name, phone=normalized_phone, email=address)
