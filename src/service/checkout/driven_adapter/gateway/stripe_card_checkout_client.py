"""
Card payments through a Stripe hosted Checkout Session

The customer is redirected to session.url; the result arrives on the Stripe
webhook (checkout.session.completed / expired) keyed by the session id.
"""

from functools import partial
from typing import Any, Dict

import anyio
from opentelemetry import trace
import stripe

from src.platform.exception.exceptions import AuthError, DomainError, NetworkError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.payment_dto import PushResult
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.domain.entity.checkout_entity import Checkout


class StripeCardCheckoutClient(IPaymentGateway):
    def __init__(
        self,
        *,
        secret_key: str,
        currency: str,
        success_url: str,
        cancel_url: str,
    ) -> None:
        self.tracer = trace.get_tracer(__name__)
        self._secret_key = secret_key
        self._currency = currency
        self._success_url = success_url
        self._cancel_url = cancel_url

    def _build_session_params(self, *, checkout: Checkout) -> Dict[str, Any]:
        if checkout.customer is None:
            raise DomainError('Checkout has no customer to charge', 409)
        return {
            'mode': 'payment',
            'payment_method_types': ['card'],
            'customer_email': checkout.customer.email,
            'line_items': [
                {
                    'price_data': {
                        'currency': self._currency,
                        'product_data': {'name': checkout.event.name},
                        'unit_amount': checkout.event.unit_price * 100,
                    },
                    'quantity': checkout.ticket_count,
                }
            ],
            'success_url': self._success_url,
            'cancel_url': self._cancel_url,
            'client_reference_id': str(checkout.id),
            'metadata': {'checkout_id': str(checkout.id), 'event_id': checkout.event.id},
        }

    @Logger.io
    async def initiate_payment(self, *, checkout: Checkout) -> PushResult:
        params = self._build_session_params(checkout=checkout)

        with self.tracer.start_as_current_span('gateway.stripe.create_checkout_session') as span:
            span.set_attribute('checkout_id', str(checkout.id))
            try:
                # The Stripe SDK is blocking; keep it off the event loop
                session = await anyio.to_thread.run_sync(
                    partial(stripe.checkout.Session.create, api_key=self._secret_key, **params)
                )
            except stripe.APIConnectionError as e:
                raise NetworkError(f'Stripe unreachable: {e.user_message or e}') from e
            except stripe.AuthenticationError as e:
                raise AuthError(
                    'Stripe rejected the configured secret key',
                    gateway_status=e.http_status,
                    body=str(e),
                ) from e
            except stripe.StripeError as e:
                description = e.user_message or str(e) or 'Card checkout failed'
                Logger.base.warning(f'⚠️ [STRIPE] Checkout session rejected: {description}')
                span.set_attribute('accepted', False)
                return PushResult(accepted=False, description=description)

            span.set_attribute('accepted', True)
            return PushResult(
                accepted=True,
                external_reference=session.id,
                redirect_url=session.url,
                description='Redirecting to card checkout',
            )
