"""Payment gateway DTOs shared by the use cases and the gateway adapters."""

from typing import Optional

import attrs


@attrs.define(frozen=True)
class PushRequest:
    """
    Input of an STK push.

    account_reference and transaction_desc are truncated to the gateway limits
    (12 and 13 characters) by the client, never rejected.
    """

    phone: str  # normalized 254XXXXXXXXX
    amount: int
    account_reference: str
    transaction_desc: str = ''


@attrs.define(frozen=True)
class PushResult:
    """
    Outcome of a payment initiation.

    accepted is True only when the gateway reported its success sentinel. When it is
    False, description carries the gateway's explanation (or a generic fallback).
    """

    accepted: bool
    external_reference: Optional[str] = None
    description: str = ''
    merchant_request_id: Optional[str] = None
    redirect_url: Optional[str] = None  # card checkout only


@attrs.define(frozen=True)
class PaymentConfirmation:
    """Asynchronous payment result, keyed by the gateway correlation id."""

    external_reference: str
    succeeded: bool
    description: str = ''
    receipt: Optional[str] = None
