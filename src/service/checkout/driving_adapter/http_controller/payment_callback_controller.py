from typing import Any, Dict

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Body, Depends, Header, Request, status

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.command.confirm_payment_use_case import ConfirmPaymentUseCase
from src.service.checkout.app.dto.payment_dto import PaymentConfirmation
from src.service.checkout.driven_adapter.gateway.payment_confirmation_parser import (
    StripeWebhookParser,
    parse_mpesa_stk_callback,
)
from src.service.checkout.driving_adapter.http_controller.schema.payment_callback_schema import (
    MpesaCallbackAck,
    StripeWebhookAck,
)


router = APIRouter()


async def _settle(use_case: ConfirmPaymentUseCase, confirmation: PaymentConfirmation) -> None:
    # A non-2xx answer keeps the result with the gateway so it can be delivered again
    if await use_case.confirm(confirmation=confirmation) is None:
        raise NotFoundError(f'No checkout for reference {confirmation.external_reference}')


@router.post('/mpesa/callback', status_code=status.HTTP_200_OK)
@Logger.io
async def mpesa_stk_callback(
    body: Dict[str, Any] = Body(...),
    use_case: ConfirmPaymentUseCase = Depends(ConfirmPaymentUseCase.depends),
) -> MpesaCallbackAck:
    """Daraja STK push result. Redeliveries of settled results are acknowledged as well."""
    confirmation = parse_mpesa_stk_callback(body)
    Logger.base.info(
        f'📥 [CALLBACK] STK result for {confirmation.external_reference}: '
        f'succeeded={confirmation.succeeded} ({confirmation.description})'
    )
    await _settle(use_case, confirmation)
    return MpesaCallbackAck()


@router.post('/stripe/webhook', status_code=status.HTTP_200_OK)
@Logger.io
@inject
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header('', alias='Stripe-Signature'),
    use_case: ConfirmPaymentUseCase = Depends(ConfirmPaymentUseCase.depends),
    parser: StripeWebhookParser = Depends(Provide[Container.stripe_webhook_parser]),
) -> StripeWebhookAck:
    confirmation = parser.parse(payload=await request.body(), signature=stripe_signature)
    if confirmation is not None:
        await _settle(use_case, confirmation)
    return StripeWebhookAck()
