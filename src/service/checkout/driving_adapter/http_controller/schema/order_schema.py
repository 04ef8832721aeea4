from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from src.platform.types.uuid7_utils_types import UtilsUUID7
from src.service.checkout.domain.entity.order_entity import Order


class OrderResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'id': '01936d8f-5e73-7c4e-a9c5-123456789abc',  # UUID7
                'event_id': 'evt-42',
                'event_name': 'Nairobi Jazz Night',
                'event_date': 'Sat, 14 Dec 2024',
                'event_location': 'KICC, Nairobi',
                'ticket_count': 3,
                'total_amount': 7500,
                'payment_method': 'mpesa',
                'payment_status': 'succeeded',
                'external_receipt': 'NLJ7RT61SV',
                'created_at': '2024-12-01T10:30:00Z',
            }
        },
    }

    id: UtilsUUID7  # UUID7
    event_id: str
    event_name: str
    event_date: str
    event_location: str
    ticket_count: int
    total_amount: int
    customer_name: str
    customer_email: str
    customer_phone: str
    payment_method: str
    payment_status: str
    external_receipt: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, order: Order) -> 'OrderResponse':
        return cls(
            id=order.id,
            event_id=order.event_id,
            event_name=order.event_name,
            event_date=order.event_date,
            event_location=order.event_location,
            ticket_count=order.ticket_count,
            total_amount=order.total_amount,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            payment_method=order.payment_method.value,
            payment_status=order.payment_status.value,
            external_receipt=order.external_receipt,
            created_at=order.created_at,
        )
