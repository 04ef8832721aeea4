import attrs

from src.platform.exception.exceptions import DomainError


@attrs.frozen
class EventSnapshot:
    """Event details copied into the checkout when it is opened; never updated afterwards."""

    id: str
    name: str
    date: str
    location: str
    unit_price: int
    image_ref: str | None = None

    def __attrs_post_init__(self) -> None:
        if isinstance(self.unit_price, bool) or not isinstance(self.unit_price, int):
            raise DomainError('unit_price must be an integer')
        if self.unit_price <= 0:
            raise DomainError('unit_price must be positive')
