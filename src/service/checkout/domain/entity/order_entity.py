from datetime import datetime
from typing import Optional

import attrs
from uuid_utils import UUID

from src.service.checkout.domain.enum.payment_attempt_status import PaymentAttemptStatus
from src.service.checkout.domain.enum.payment_method import PaymentMethod


@attrs.frozen
class Order:
    """Append-only record of a paid checkout. One per checkout."""

    id: UUID
    checkout_id: UUID
    event_id: str
    event_name: str
    event_date: str
    event_location: str
    ticket_count: int
    total_amount: int
    customer_name: str
    customer_email: str
    customer_phone: str
    payment_method: PaymentMethod
    payment_status: PaymentAttemptStatus
    external_receipt: Optional[str]
    created_at: Optional[datetime] = None
