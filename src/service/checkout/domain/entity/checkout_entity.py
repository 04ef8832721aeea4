from datetime import datetime, timezone
from typing import Dict, Optional

import attrs
from uuid_utils import UUID

from src.platform.exception.exceptions import ConflictError, DomainError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.payment_attempt_entity import PaymentAttempt
from src.service.checkout.domain.enum.checkout_state import CheckoutState
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.domain.value_object.customer import Customer
from src.service.checkout.domain.value_object.event_snapshot import EventSnapshot


MIN_TICKETS_PER_CHECKOUT = 1
MAX_TICKETS_PER_CHECKOUT = 5


@attrs.define
class Checkout:
    """
    Checkout state machine

    idle -> validating -> submitting -> awaiting_confirmation -> succeeded
                                                              -> failed
                                                              -> reconciliation_required
    submitting -> reconciliation_required  (accepted by the gateway, awaiting state not stored)

    - idle and failed accept a new submit, which always starts a new PaymentAttempt
    - succeeded and reconciliation_required are terminal
    - every transition returns a new Checkout (attrs.evolve), the original is untouched
    """

    id: UUID
    event: EventSnapshot
    ticket_count: int
    state: CheckoutState = CheckoutState.IDLE
    customer: Optional[Customer] = None
    attempt: Optional[PaymentAttempt] = None
    failure_reason: Optional[str] = None
    field_errors: Dict[str, str] = attrs.field(factory=dict)
    redirect_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def open(cls, *, id: UUID, event: EventSnapshot, ticket_count: int) -> 'Checkout':
        if isinstance(ticket_count, bool) or not isinstance(ticket_count, int):
            raise DomainError('ticket_count must be an integer')
        if not MIN_TICKETS_PER_CHECKOUT <= ticket_count <= MAX_TICKETS_PER_CHECKOUT:
            raise DomainError(
                f'ticket_count must be between {MIN_TICKETS_PER_CHECKOUT} '
                f'and {MAX_TICKETS_PER_CHECKOUT}'
            )
        now = datetime.now(timezone.utc)
        return cls(id=id, event=event, ticket_count=ticket_count, created_at=now, updated_at=now)

    @property
    def amount(self) -> int:
        return self.event.unit_price * self.ticket_count

    def _require_state(self, *states: CheckoutState) -> None:
        if self.state not in states:
            expected = ', '.join(state.value for state in states)
            raise ConflictError(f'Checkout {self.id} is {self.state.value}, expected {expected}')

    def _require_attempt(self) -> PaymentAttempt:
        if self.attempt is None:
            raise DomainError(f'Checkout {self.id} has no payment attempt', 409)
        return self.attempt

    def _evolve(self, **changes) -> 'Checkout':
        return attrs.evolve(self, updated_at=datetime.now(timezone.utc), **changes)

    @Logger.io
    def begin_validation(self) -> 'Checkout':
        if self.state.is_in_flight:
            raise ConflictError('A payment is already in progress for this checkout')
        self._require_state(CheckoutState.IDLE, CheckoutState.FAILED)
        return self._evolve(state=CheckoutState.VALIDATING, field_errors={}, failure_reason=None)

    @Logger.io
    def reject_input(self, *, field_errors: Dict[str, str]) -> 'Checkout':
        self._require_state(CheckoutState.VALIDATING)
        return self._evolve(state=CheckoutState.IDLE, field_errors=dict(field_errors))

    @Logger.io
    def begin_submission(
        self, *, customer: Customer, payment_method: PaymentMethod, attempt_id: UUID
    ) -> 'Checkout':
        self._require_state(CheckoutState.VALIDATING)
        attempt = PaymentAttempt.create(
            request_id=attempt_id,
            checkout_id=self.id,
            payment_method=payment_method,
            amount=self.amount,
        )
        return self._evolve(
            state=CheckoutState.SUBMITTING,
            customer=customer,
            attempt=attempt,
            redirect_url=None,
        )

    @Logger.io
    def mark_awaiting_confirmation(
        self, *, external_reference: str, redirect_url: str | None = None
    ) -> 'Checkout':
        self._require_state(CheckoutState.SUBMITTING)
        attempt = self._require_attempt().with_external_reference(external_reference)
        return self._evolve(
            state=CheckoutState.AWAITING_CONFIRMATION,
            attempt=attempt,
            redirect_url=redirect_url,
        )

    @Logger.io
    def mark_unrecorded_submission(self, *, external_reference: str, reason: str) -> 'Checkout':
        # The gateway accepted the push but the awaiting state could not be stored
        self._require_state(CheckoutState.SUBMITTING)
        attempt = self._require_attempt().with_external_reference(external_reference)
        return self._evolve(
            state=CheckoutState.RECONCILIATION_REQUIRED,
            attempt=attempt,
            failure_reason=reason,
        )

    @Logger.io
    def record_late_result(
        self, *, succeeded: bool, receipt: str | None = None, description: str | None = None
    ) -> 'Checkout':
        """Attach a gateway result to a checkout already held for reconciliation."""
        self._require_state(CheckoutState.RECONCILIATION_REQUIRED)
        attempt = self._require_attempt()
        if succeeded:
            attempt = attempt.succeed(receipt=receipt, description=description)
        else:
            attempt = attempt.fail(description=description or 'Payment was not completed')
        return self._evolve(attempt=attempt)

    @Logger.io
    def mark_submission_failed(self, *, reason: str) -> 'Checkout':
        self._require_state(CheckoutState.SUBMITTING)
        attempt = self._require_attempt().fail(description=reason, discard_reference=True)
        return self._evolve(state=CheckoutState.FAILED, attempt=attempt, failure_reason=reason)

    @Logger.io
    def mark_payment_failed(self, *, reason: str) -> 'Checkout':
        self._require_state(CheckoutState.AWAITING_CONFIRMATION)
        attempt = self._require_attempt().fail(description=reason)
        return self._evolve(
            state=CheckoutState.FAILED,
            attempt=attempt,
            failure_reason=reason,
            redirect_url=None,
        )

    @Logger.io
    def mark_succeeded(self, *, receipt: str | None = None) -> 'Checkout':
        self._require_state(CheckoutState.AWAITING_CONFIRMATION)
        attempt = self._require_attempt().succeed(receipt=receipt)
        return self._evolve(state=CheckoutState.SUCCEEDED, attempt=attempt, redirect_url=None)

    @Logger.io
    def mark_reconciliation_required(
        self, *, reason: str, receipt: str | None = None
    ) -> 'Checkout':
        # Money has moved: the attempt itself succeeded even though no order exists
        self._require_state(CheckoutState.AWAITING_CONFIRMATION)
        attempt = self._require_attempt().succeed(receipt=receipt, description=reason)
        return self._evolve(
            state=CheckoutState.RECONCILIATION_REQUIRED,
            attempt=attempt,
            failure_reason=reason,
            redirect_url=None,
        )

    def build_order(self, *, order_id: UUID, receipt: str | None = None) -> Order:
        self._require_state(CheckoutState.AWAITING_CONFIRMATION)
        attempt = self._require_attempt()
        if self.customer is None:
            raise DomainError(f'Checkout {self.id} has no customer', 409)
        succeeded = attempt.succeed(receipt=receipt)
        return Order(
            id=order_id,
            checkout_id=self.id,
            event_id=self.event.id,
            event_name=self.event.name,
            event_date=self.event.date,
            event_location=self.event.location,
            ticket_count=self.ticket_count,
            total_amount=succeeded.amount,
            customer_name=self.customer.full_name,
            customer_email=self.customer.email,
            customer_phone=self.customer.phone,
            payment_method=succeeded.payment_method,
            payment_status=succeeded.status,
            external_receipt=succeeded.receipt,
            created_at=datetime.now(timezone.utc),
        )
