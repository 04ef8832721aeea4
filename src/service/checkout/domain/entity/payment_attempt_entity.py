from datetime import datetime, timezone
from typing import Optional

import attrs
from uuid_utils import UUID

from src.platform.exception.exceptions import DomainError
from src.service.checkout.domain.enum.payment_attempt_status import PaymentAttemptStatus
from src.service.checkout.domain.enum.payment_method import PaymentMethod


@attrs.define
class PaymentAttempt:
    request_id: UUID
    checkout_id: UUID
    payment_method: PaymentMethod
    amount: int
    status: PaymentAttemptStatus = PaymentAttemptStatus.PENDING
    external_reference: Optional[str] = None
    description: Optional[str] = None
    receipt: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        request_id: UUID,
        checkout_id: UUID,
        payment_method: PaymentMethod,
        amount: int,
    ) -> 'PaymentAttempt':
        if amount <= 0:
            raise DomainError('Payment amount must be positive')
        now = datetime.now(timezone.utc)
        return cls(
            request_id=request_id,
            checkout_id=checkout_id,
            payment_method=payment_method,
            amount=amount,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentAttemptStatus.PENDING

    def _require_pending(self) -> None:
        if not self.is_pending:
            raise DomainError(
                f'Payment attempt {self.request_id} is already {self.status.value}', 409
            )

    def with_external_reference(self, external_reference: str) -> 'PaymentAttempt':
        self._require_pending()
        return attrs.evolve(
            self,
            external_reference=external_reference,
            updated_at=datetime.now(timezone.utc),
        )

    def succeed(
        self, *, receipt: str | None = None, description: str | None = None
    ) -> 'PaymentAttempt':
        self._require_pending()
        return attrs.evolve(
            self,
            status=PaymentAttemptStatus.SUCCEEDED,
            receipt=receipt or self.external_reference,
            description=description,
            updated_at=datetime.now(timezone.utc),
        )

    def fail(self, *, description: str, discard_reference: bool = False) -> 'PaymentAttempt':
        self._require_pending()
        return attrs.evolve(
            self,
            status=PaymentAttemptStatus.FAILED,
            description=description,
            external_reference=None if discard_reference else self.external_reference,
            updated_at=datetime.now(timezone.utc),
        )
