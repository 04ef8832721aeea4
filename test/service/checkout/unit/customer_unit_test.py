import pytest

from src.platform.exception.exceptions import DomainError, ValidationError
from src.service.checkout.domain.value_object.customer import Customer
from src.service.checkout.domain.value_object.event_snapshot import EventSnapshot


@pytest.mark.unit
class TestCustomer:
    def test_create_normalizes_phone_and_trims_fields(self):
        customer = Customer.create(
            full_name='  Wanjiku Kamau ', phone='0712 345 678', email=' wanjiku@example.com '
        )

        assert customer.full_name == 'Wanjiku Kamau'
        assert customer.phone == '254712345678'
        assert customer.email == 'wanjiku@example.com'

    def test_create_collects_every_field_error(self):
        with pytest.raises(ValidationError) as exc_info:
            Customer.create(full_name='   ', phone='123', email='not-an-email')

        assert set(exc_info.value.field_errors) == {'full_name', 'phone', 'email'}

    @pytest.mark.parametrize('email', ['a@b', '@example.com', 'a b@example.com', 'a@example.'])
    def test_create_rejects_malformed_email(self, email):
        with pytest.raises(ValidationError) as exc_info:
            Customer.create(full_name='Wanjiku', phone='0712345678', email=email)

        assert list(exc_info.value.field_errors) == ['email']


@pytest.mark.unit
class TestEventSnapshot:
    @pytest.mark.parametrize('price', [0, -100])
    def test_rejects_non_positive_price(self, price):
        with pytest.raises(DomainError):
            EventSnapshot(id='evt-1', name='Gig', date='Fri', location='Nairobi', unit_price=price)

    def test_rejects_fractional_price(self):
        with pytest.raises(DomainError):
            EventSnapshot(id='evt-1', name='Gig', date='Fri', location='Nairobi', unit_price=99.5)
