from fastapi import APIRouter, Depends, status
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.platform.types.uuid7_utils_types import UtilsUUID7
from src.service.checkout.app.command.open_checkout_use_case import OpenCheckoutUseCase
from src.service.checkout.app.command.submit_checkout_use_case import SubmitCheckoutUseCase
from src.service.checkout.app.query.get_checkout_use_case import GetCheckoutUseCase
from src.service.checkout.domain.value_object.event_snapshot import EventSnapshot
from src.service.checkout.driving_adapter.http_controller.schema.checkout_schema import (
    CheckoutOpenRequest,
    CheckoutResponse,
    CheckoutSubmitRequest,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def open_checkout(
    request: CheckoutOpenRequest,
    use_case: OpenCheckoutUseCase = Depends(OpenCheckoutUseCase.depends),
) -> CheckoutResponse:
    checkout = await use_case.open_checkout(
        event=EventSnapshot(
            id=request.event.id,
            name=request.event.name,
            date=request.event.date,
            location=request.event.location,
            unit_price=request.event.price,
            image_ref=request.event.image_ref,
        ),
        ticket_count=request.ticket_count,
    )
    return CheckoutResponse.from_entity(checkout)


@router.post('/{checkout_id}/submit', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
async def submit_checkout(
    checkout_id: UtilsUUID7,
    request: CheckoutSubmitRequest,
    use_case: SubmitCheckoutUseCase = Depends(SubmitCheckoutUseCase.depends),
) -> CheckoutResponse:
    """
    Start a payment attempt. The response is 202 even when the attempt failed at the
    gateway: the outcome is in `state` / `failure_reason`, poll GET for confirmation.
    """
    with tracer.start_as_current_span('controller.submit_checkout') as span:
        span.set_attribute('checkout.id', str(checkout_id))
        span.set_attribute('payment.method', request.payment_method.value)

        checkout = await use_case.submit(
            checkout_id=checkout_id,
            full_name=request.full_name,
            phone=request.phone,
            email=request.email,
            payment_method=request.payment_method,
        )

        span.set_attribute('checkout.state', checkout.state.value)
        return CheckoutResponse.from_entity(checkout)


@router.get('/{checkout_id}')
@Logger.io
async def get_checkout(
    checkout_id: UtilsUUID7,
    use_case: GetCheckoutUseCase = Depends(GetCheckoutUseCase.depends),
) -> CheckoutResponse:
    checkout = await use_case.get_checkout(checkout_id=checkout_id)
    return CheckoutResponse.from_entity(checkout)
