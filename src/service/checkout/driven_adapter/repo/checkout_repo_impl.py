from typing import AsyncContextManager, Callable, Optional
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils import UUID

from src.platform.exception.exceptions import PersistenceError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_checkout_repo import ICheckoutRepo
from src.service.checkout.domain.entity.checkout_entity import Checkout
from src.service.checkout.domain.entity.payment_attempt_entity import PaymentAttempt
from src.service.checkout.domain.enum.checkout_state import CheckoutState
from src.service.checkout.domain.enum.payment_attempt_status import PaymentAttemptStatus
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.domain.value_object.customer import Customer
from src.service.checkout.domain.value_object.event_snapshot import EventSnapshot
from src.service.checkout.driven_adapter.model.checkout_model import (
    CheckoutModel,
    PaymentAttemptModel,
)


def to_std_uuid(value: UUID) -> uuid.UUID:
    """uuid_utils.UUID -> stdlib uuid.UUID (what SQLAlchemy's Uuid type binds)"""
    return uuid.UUID(str(value))


class CheckoutRepoImpl(ICheckoutRepo):
    """Checkout aggregate persistence: one checkout row plus one row per payment attempt"""

    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    # ============================ Mapping ============================

    @staticmethod
    def _apply_checkout(model: CheckoutModel, checkout: Checkout) -> None:
        model.event_id = checkout.event.id
        model.event_name = checkout.event.name
        model.event_date = checkout.event.date
        model.event_location = checkout.event.location
        model.event_unit_price = checkout.event.unit_price
        model.event_image_ref = checkout.event.image_ref
        model.ticket_count = checkout.ticket_count
        model.state = checkout.state.value
        model.customer_name = checkout.customer.full_name if checkout.customer else None
        model.customer_phone = checkout.customer.phone if checkout.customer else None
        model.customer_email = checkout.customer.email if checkout.customer else None
        model.current_attempt_id = (
            to_std_uuid(checkout.attempt.request_id) if checkout.attempt else None
        )
        model.failure_reason = checkout.failure_reason
        model.field_errors = dict(checkout.field_errors)
        model.redirect_url = checkout.redirect_url
        if checkout.updated_at is not None:
            model.updated_at = checkout.updated_at

    @staticmethod
    def _apply_attempt(model: PaymentAttemptModel, attempt: PaymentAttempt) -> None:
        model.checkout_id = to_std_uuid(attempt.checkout_id)
        model.payment_method = attempt.payment_method.value
        model.amount = attempt.amount
        model.status = attempt.status.value
        model.external_reference = attempt.external_reference
        model.description = attempt.description
        model.receipt = attempt.receipt
        if attempt.updated_at is not None:
            model.updated_at = attempt.updated_at

    @staticmethod
    def _to_attempt(db_attempt: PaymentAttemptModel) -> PaymentAttempt:
        return PaymentAttempt(
            request_id=UUID(str(db_attempt.request_id)),
            checkout_id=UUID(str(db_attempt.checkout_id)),
            payment_method=PaymentMethod(db_attempt.payment_method),
            amount=db_attempt.amount,
            status=PaymentAttemptStatus(db_attempt.status),
            external_reference=db_attempt.external_reference,
            description=db_attempt.description,
            receipt=db_attempt.receipt,
            created_at=db_attempt.created_at,
            updated_at=db_attempt.updated_at,
        )

    @classmethod
    def _to_entity(
        cls, db_checkout: CheckoutModel, db_attempt: Optional[PaymentAttemptModel]
    ) -> Checkout:
        customer = None
        if db_checkout.customer_name and db_checkout.customer_phone and db_checkout.customer_email:
            customer = Customer(
                full_name=db_checkout.customer_name,
                phone=db_checkout.customer_phone,
                email=db_checkout.customer_email,
            )
        return Checkout(
            id=UUID(str(db_checkout.id)),  # Convert stdlib uuid.UUID to uuid_utils.UUID
            event=EventSnapshot(
                id=db_checkout.event_id,
                name=db_checkout.event_name,
                date=db_checkout.event_date,
                location=db_checkout.event_location,
                unit_price=db_checkout.event_unit_price,
                image_ref=db_checkout.event_image_ref,
            ),
            ticket_count=db_checkout.ticket_count,
            state=CheckoutState(db_checkout.state),
            customer=customer,
            attempt=cls._to_attempt(db_attempt) if db_attempt is not None else None,
            failure_reason=db_checkout.failure_reason,
            field_errors=dict(db_checkout.field_errors or {}),
            redirect_url=db_checkout.redirect_url,
            created_at=db_checkout.created_at,
            updated_at=db_checkout.updated_at,
        )

    async def _load(
        self, session: AsyncSession, db_checkout: Optional[CheckoutModel]
    ) -> Optional[Checkout]:
        if db_checkout is None:
            return None
        db_attempt = None
        if db_checkout.current_attempt_id is not None:
            db_attempt = await session.get(PaymentAttemptModel, db_checkout.current_attempt_id)
        return self._to_entity(db_checkout, db_attempt)

    # ============================ Commands ============================

    @Logger.io
    async def create(self, *, checkout: Checkout) -> Checkout:
        try:
            async with self.session_factory() as session:
                db_checkout = CheckoutModel(id=to_std_uuid(checkout.id))
                self._apply_checkout(db_checkout, checkout)
                if checkout.created_at is not None:
                    db_checkout.created_at = checkout.created_at
                session.add(db_checkout)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f'Failed to create checkout {checkout.id}: {e}') from e
        return checkout

    @Logger.io
    async def save(self, *, checkout: Checkout) -> Checkout:
        try:
            async with self.session_factory() as session:
                db_checkout = await session.get(CheckoutModel, to_std_uuid(checkout.id))
                if db_checkout is None:
                    raise PersistenceError(f'Checkout {checkout.id} does not exist')

                # Attempt row first: the checkout points at it
                if checkout.attempt is not None:
                    attempt = checkout.attempt
                    db_attempt = await session.get(
                        PaymentAttemptModel, to_std_uuid(attempt.request_id)
                    )
                    if db_attempt is None:
                        db_attempt = PaymentAttemptModel(request_id=to_std_uuid(attempt.request_id))
                        if attempt.created_at is not None:
                            db_attempt.created_at = attempt.created_at
                        session.add(db_attempt)
                    self._apply_attempt(db_attempt, attempt)
                    await session.flush()

                self._apply_checkout(db_checkout, checkout)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f'Failed to save checkout {checkout.id}: {e}') from e
        return checkout

    # ============================ Queries ============================

    @Logger.io
    async def get_by_id(self, *, checkout_id: UUID) -> Optional[Checkout]:
        try:
            async with self.session_factory() as session:
                db_checkout = await session.get(CheckoutModel, to_std_uuid(checkout_id))
                return await self._load(session, db_checkout)
        except SQLAlchemyError as e:
            raise PersistenceError(f'Failed to load checkout {checkout_id}: {e}') from e

    @Logger.io
    async def get_by_external_reference(self, *, external_reference: str) -> Optional[Checkout]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(CheckoutModel)
                    .join(
                        PaymentAttemptModel,
                        PaymentAttemptModel.checkout_id == CheckoutModel.id,
                    )
                    .where(PaymentAttemptModel.external_reference == external_reference)
                )
                db_checkout = result.scalars().first()
                return await self._load(session, db_checkout)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f'Failed to look up checkout by reference {external_reference}: {e}'
            ) from e
