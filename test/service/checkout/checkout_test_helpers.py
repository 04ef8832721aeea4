"""Builders shared by the checkout unit tests"""

from unittest.mock import AsyncMock, MagicMock

import uuid_utils

from src.platform.exception.exceptions import PersistenceError
from src.service.checkout.app.dto.payment_dto import PushResult
from src.service.checkout.domain.entity.checkout_entity import Checkout
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.domain.value_object.customer import Customer
from src.service.checkout.domain.value_object.event_snapshot import EventSnapshot


def build_customer() -> Customer:
    return Customer.create(
        full_name='Wanjiku Kamau', phone='0712345678', email='wanjiku@example.com'
    )


def open_checkout(event: EventSnapshot, *, ticket_count: int = 3) -> Checkout:
    return Checkout.open(id=uuid_utils.uuid7(), event=event, ticket_count=ticket_count)


def awaiting_checkout(
    event: EventSnapshot,
    *,
    reference: str = 'ws_CO_191220191020363925',
    payment_method: PaymentMethod = PaymentMethod.MPESA,
) -> Checkout:
    return (
        open_checkout(event)
        .begin_validation()
        .begin_submission(
            customer=build_customer(),
            payment_method=payment_method,
            attempt_id=uuid_utils.uuid7(),
        )
        .mark_awaiting_confirmation(external_reference=reference)
    )


class InMemoryCheckoutRepo:
    """Checkout repository double that keeps the latest saved version of each checkout."""

    def __init__(self, *checkouts: Checkout, save_failures: dict[str, int] | None = None) -> None:
        self.checkouts: dict[str, Checkout] = {str(c.id): c for c in checkouts}
        self.saved_states: list[str] = []
        # state -> number of saves of that state that raise PersistenceError
        self.save_failures = dict(save_failures or {})
        self.create = AsyncMock(side_effect=self._store)
        self.save = AsyncMock(side_effect=self._save)
        self.get_by_id = AsyncMock(side_effect=self._get_by_id)
        self.get_by_external_reference = AsyncMock(side_effect=self._get_by_reference)

    async def _store(self, *, checkout: Checkout) -> Checkout:
        self.checkouts[str(checkout.id)] = checkout
        return checkout

    async def _save(self, *, checkout: Checkout) -> Checkout:
        if self.save_failures.get(checkout.state.value, 0) > 0:
            self.save_failures[checkout.state.value] -= 1
            raise PersistenceError(f'Could not save checkout {checkout.id}')
        self.saved_states.append(checkout.state.value)
        return await self._store(checkout=checkout)

    async def _get_by_id(self, *, checkout_id) -> Checkout | None:
        return self.checkouts.get(str(checkout_id))

    async def _get_by_reference(self, *, external_reference: str) -> Checkout | None:
        for checkout in self.checkouts.values():
            if checkout.attempt and checkout.attempt.external_reference == external_reference:
                return checkout
        return None


def gateway_returning(result: PushResult | None = None, *, error: Exception | None = None):
    gateway = MagicMock()
    if error is not None:
        gateway.initiate_payment = AsyncMock(side_effect=error)
    else:
        gateway.initiate_payment = AsyncMock(return_value=result)
    return gateway
