"""Order confirmation email through the Resend HTTP API"""

from html import escape

import httpx
from opentelemetry import trace

from src.platform.exception.exceptions import NotificationError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_notification_dispatcher import (
    INotificationDispatcher,
)
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.payment_method import PaymentMethod


EMAILS_PATH = '/emails'


def render_confirmation_html(order: Order) -> str:
    tickets = f'{order.ticket_count} ticket{"s" if order.ticket_count > 1 else ""}'
    receipt_label = 'M-PESA Receipt' if order.payment_method == PaymentMethod.MPESA else 'Reference'
    rows = (
        ('📅 Date', order.event_date),
        ('📍 Location', order.event_location),
        ('🎫 Tickets', tickets),
        ('Amount Paid', f'KES {order.total_amount:,}'),
        (receipt_label, order.external_receipt or '-'),
    )
    table = ''.join(
        f'<tr><td style="padding: 6px 0; color: #666;">{escape(label)}</td>'
        '<td style="padding: 6px 0; text-align: right; font-weight: 500;">'
        f'{escape(value)}</td></tr>'
        for label, value in rows
    )
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8"></head>'
        '<body style="font-family: Arial, sans-serif; background-color: #f5f5f5; padding: 20px;">'
        '<div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; padding: 30px;">'
        '<h1 style="color: #7c3aed;">🎉 Booking Confirmed!</h1>'
        f'<p>Hi <strong>{escape(order.customer_name)}</strong>,</p>'
        '<p>Thank you for your purchase! Your payment has been confirmed '
        'and your tickets are now booked.</p>'
        f'<h2 style="color: #7c3aed;">{escape(order.event_name)}</h2>'
        f'<table style="width: 100%; border-collapse: collapse;">{table}</table>'
        '<p style="color: #666;">Please save this email as your ticket confirmation. '
        'You may be asked to show this at the venue entrance.</p>'
        '</div></body></html>'
    )


class ResendNotificationDispatcher(INotificationDispatcher):
    def __init__(
        self,
        *,
        api_key: str,
        from_address: str,
        http_client: httpx.AsyncClient,
        base_url: str = 'https://api.resend.com',
    ) -> None:
        self.tracer = trace.get_tracer(__name__)
        self._api_key = api_key
        self._from_address = from_address
        self._http_client = http_client
        self._base_url = base_url.rstrip('/')

    @Logger.io
    async def send_confirmation(self, *, order: Order) -> None:
        with self.tracer.start_as_current_span('notification.resend.send_confirmation') as span:
            span.set_attribute('order_id', str(order.id))
            try:
                response = await self._http_client.post(
                    f'{self._base_url}{EMAILS_PATH}',
                    headers={'Authorization': f'Bearer {self._api_key}'},
                    json={
                        'from': self._from_address,
                        'to': [order.customer_email],
                        'subject': f'🎟️ Your Tickets for {order.event_name} - Confirmed!',
                        'html': render_confirmation_html(order),
                    },
                )
            except httpx.HTTPError as e:
                raise NotificationError(f'Resend unreachable: {e}') from e

            span.set_attribute('http.status_code', response.status_code)
            if not response.is_success:
                raise NotificationError(
                    f'Resend rejected confirmation email ({response.status_code}): {response.text}'
                )

            Logger.base.info(f'📧 [NOTIFY] Confirmation sent for order {order.id}')
