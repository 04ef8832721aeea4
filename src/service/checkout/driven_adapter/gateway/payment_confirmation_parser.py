"""Translate gateway confirmation payloads into PaymentConfirmation"""

from typing import Any, Dict, Optional

import stripe

from src.platform.exception.exceptions import AuthenticationError, ValidationError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.payment_dto import PaymentConfirmation


MPESA_SUCCESS_RESULT_CODE = 0

STRIPE_SUCCEEDED_EVENTS = frozenset(
    {'checkout.session.completed', 'checkout.session.async_payment_succeeded'}
)
STRIPE_FAILED_EVENTS = frozenset(
    {'checkout.session.expired', 'checkout.session.async_payment_failed'}
)


def parse_mpesa_stk_callback(body: Dict[str, Any]) -> PaymentConfirmation:
    """
    Body shape:
        {"Body": {"stkCallback": {
            "MerchantRequestID": "...", "CheckoutRequestID": "ws_CO_...",
            "ResultCode": 0, "ResultDesc": "...",
            "CallbackMetadata": {"Item": [{"Name": "MpesaReceiptNumber", "Value": "..."}, ...]}
        }}}
    """
    try:
        callback = body['Body']['stkCallback']
        external_reference = str(callback['CheckoutRequestID'])
        result_code = int(callback['ResultCode'])
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f'Malformed STK callback: {e}') from e

    items = (callback.get('CallbackMetadata') or {}).get('Item') or []
    metadata = {item.get('Name'): item.get('Value') for item in items if isinstance(item, dict)}
    receipt = metadata.get('MpesaReceiptNumber')

    return PaymentConfirmation(
        external_reference=external_reference,
        succeeded=result_code == MPESA_SUCCESS_RESULT_CODE,
        description=str(callback.get('ResultDesc') or ''),
        receipt=str(receipt) if receipt is not None else None,
    )


class StripeWebhookParser:
    def __init__(self, *, webhook_secret: Optional[str]) -> None:
        self._webhook_secret = webhook_secret

    def parse(self, *, payload: bytes, signature: str) -> Optional[PaymentConfirmation]:
        """
        Verify the Stripe signature and map checkout-session events.

        Returns None for event types that do not settle a checkout.
        """
        if not self._webhook_secret:
            raise AuthenticationError('Stripe webhook secret is not configured')

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise AuthenticationError('Invalid Stripe signature') from e
        except ValueError as e:
            raise ValidationError(f'Malformed Stripe payload: {e}') from e

        event_type = event['type']
        session = event['data']['object']

        if event_type in STRIPE_SUCCEEDED_EVENTS:
            if session.get('payment_status') == 'unpaid':
                # Delayed payment methods settle later via async_payment_succeeded
                return None
            return PaymentConfirmation(
                external_reference=session['id'],
                succeeded=True,
                description='Card payment completed',
                receipt=session.get('payment_intent') or session['id'],
            )

        if event_type in STRIPE_FAILED_EVENTS:
            return PaymentConfirmation(
                external_reference=session['id'],
                succeeded=False,
                description='Card checkout expired'
                if event_type == 'checkout.session.expired'
                else 'Card payment failed',
            )

        Logger.base.debug(f'[STRIPE] Ignoring webhook event {event_type}')
        return None
