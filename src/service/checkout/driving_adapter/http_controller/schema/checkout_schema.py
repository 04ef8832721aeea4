from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from src.platform.types.uuid7_utils_types import UtilsUUID7
from src.service.checkout.domain.entity.checkout_entity import (
    MAX_TICKETS_PER_CHECKOUT,
    MIN_TICKETS_PER_CHECKOUT,
    Checkout,
)
from src.service.checkout.domain.enum.checkout_state import CheckoutState
from src.service.checkout.domain.enum.payment_method import PaymentMethod


class EventSnapshotRequest(BaseModel):
    id: str
    name: str
    date: str  # display string, e.g. "Sat, 14 Dec 2024"
    location: str
    price: int = Field(gt=0, description='Unit price in KES')
    image_ref: Optional[str] = None


class CheckoutOpenRequest(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'event': {
                    'id': 'evt-42',
                    'name': 'Nairobi Jazz Night',
                    'date': 'Sat, 14 Dec 2024',
                    'location': 'KICC, Nairobi',
                    'price': 2500,
                },
                'ticket_count': 3,
            }
        },
    }

    event: EventSnapshotRequest
    ticket_count: int = Field(ge=MIN_TICKETS_PER_CHECKOUT, le=MAX_TICKETS_PER_CHECKOUT)


class CheckoutSubmitRequest(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'full_name': 'Wanjiku Kamau',
                'phone': '0712345678',
                'email': 'wanjiku@example.com',
                'payment_method': 'mpesa',
            }
        },
    }

    full_name: str
    phone: str = ''
    email: str
    payment_method: PaymentMethod = PaymentMethod.MPESA


class CheckoutResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'id': '01936d8f-5e73-7c4e-a9c5-123456789abc',  # UUID7
                'event_id': 'evt-42',
                'event_name': 'Nairobi Jazz Night',
                'ticket_count': 3,
                'amount': 7500,
                'state': 'awaiting_confirmation',
                'payment_method': 'mpesa',
                'external_reference': 'ws_CO_191220191020363925',
                'redirect_url': None,
                'failure_reason': None,
                'field_errors': {},
            }
        },
    }

    id: UtilsUUID7  # UUID7
    event_id: str
    event_name: str
    ticket_count: int
    amount: int
    state: CheckoutState
    payment_method: Optional[PaymentMethod] = None
    external_reference: Optional[str] = None
    receipt: Optional[str] = None
    redirect_url: Optional[str] = None
    failure_reason: Optional[str] = None
    field_errors: Dict[str, str] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, checkout: Checkout) -> 'CheckoutResponse':
        attempt = checkout.attempt
        return cls(
            id=checkout.id,
            event_id=checkout.event.id,
            event_name=checkout.event.name,
            ticket_count=checkout.ticket_count,
            amount=checkout.amount,
            state=checkout.state,
            payment_method=attempt.payment_method if attempt else None,
            external_reference=attempt.external_reference if attempt else None,
            receipt=attempt.receipt if attempt else None,
            redirect_url=checkout.redirect_url,
            failure_reason=checkout.failure_reason,
            field_errors=checkout.field_errors,
            created_at=checkout.created_at,
            updated_at=checkout.updated_at,
        )
