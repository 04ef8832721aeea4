from typing import Dict, Optional, Self

import anyio
from anyio.abc import TaskGroup
from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import uuid_utils
from uuid_utils import UUID

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import (
    AuthError,
    DomainError,
    GatewayRejected,
    NetworkError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.state.keyed_lock import KeyedLock
from src.service.checkout.app.command.confirm_payment_use_case import (
    ConfirmPaymentUseCase,
    checkout_lock_key,
)
from src.service.checkout.app.dto.payment_dto import PaymentConfirmation, PushResult
from src.service.checkout.app.interface.i_checkout_repo import ICheckoutRepo
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.domain.entity.checkout_entity import Checkout
from src.service.checkout.domain.enum.checkout_state import CheckoutState
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.domain.value_object.customer import Customer


INFERRED_CONFIRMATION_DESCRIPTION = 'Confirmation inferred after the wait window'
UNEXPECTED_GATEWAY_ERROR = 'Payment could not be started'
UNRECORDED_SUBMISSION_REASON = 'Payment request accepted but could not be recorded'
AWAITING_SAVE_ATTEMPTS = 3


class SubmitCheckoutUseCase:
    """
    Submit a checkout for payment

    Flow (one payment attempt per call, never retried automatically):
    1. idle|failed -> validating: customer details checked, nothing leaves the process
       on a validation error (checkout goes back to idle with field errors)
    2. validating -> submitting: new PaymentAttempt (amount = unit_price x ticket_count),
       persisted BEFORE the gateway call
    3. submitting -> awaiting_confirmation: gateway accepted the request
    4. submitting -> failed: gateway declined, unreachable, or refused our credentials

    The checkout lock keeps a second submit from starting while one is in flight.
    """

    def __init__(
        self,
        *,
        checkout_repo: ICheckoutRepo,
        payment_gateways: Dict[PaymentMethod, IPaymentGateway],
        checkout_lock: KeyedLock,
        confirm_payment_use_case: ConfirmPaymentUseCase,
        task_group: Optional[TaskGroup] = None,
        infer_mpesa_confirmation: bool = False,
        inferred_confirmation_delay_seconds: float = 10.0,
    ) -> None:
        self.checkout_repo = checkout_repo
        self.payment_gateways = payment_gateways
        self.checkout_lock = checkout_lock
        self.confirm_payment_use_case = confirm_payment_use_case
        self.task_group = task_group
        self.infer_mpesa_confirmation = infer_mpesa_confirmation
        self.inferred_confirmation_delay_seconds = inferred_confirmation_delay_seconds
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        checkout_repo: ICheckoutRepo = Depends(Provide[Container.checkout_repo]),
        payment_gateways: Dict[PaymentMethod, IPaymentGateway] = Depends(
            Provide[Container.payment_gateways]
        ),
        checkout_lock: KeyedLock = Depends(Provide[Container.checkout_lock]),
        confirm_payment_use_case: ConfirmPaymentUseCase = Depends(ConfirmPaymentUseCase.depends),
        task_group: Optional[TaskGroup] = Depends(Provide[Container.task_group]),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            checkout_repo=checkout_repo,
            payment_gateways=payment_gateways,
            checkout_lock=checkout_lock,
            confirm_payment_use_case=confirm_payment_use_case,
            task_group=task_group,
            infer_mpesa_confirmation=config.MPESA_CONFIRMATION_MODE == 'inferred',
            inferred_confirmation_delay_seconds=config.MPESA_INFERRED_CONFIRMATION_DELAY_SECONDS,
        )

    @Logger.io
    async def submit(
        self,
        *,
        checkout_id: UUID,
        full_name: str,
        phone: str,
        email: str,
        payment_method: PaymentMethod,
    ) -> Checkout:
        """
        Returns:
            The checkout in awaiting_confirmation or failed state

        Raises:
            NotFoundError: unknown checkout
            DomainError: payment method not available
            ConflictError: a payment is already in flight, or the checkout is settled
            ValidationError: invalid customer details (no gateway call was made)
        """
        with self.tracer.start_as_current_span(
            'use_case.submit_checkout',
            attributes={'checkout.id': str(checkout_id), 'payment.method': payment_method.value},
        ) as span:
            gateway = self.payment_gateways.get(payment_method)
            if gateway is None:
                raise DomainError(f'Payment method {payment_method.value} is not available')

            async with self.checkout_lock.hold(key=checkout_lock_key(checkout_id)):
                checkout = await self.checkout_repo.get_by_id(checkout_id=checkout_id)
                if checkout is None:
                    raise NotFoundError(f'Checkout {checkout_id} not found')

                # 1. idle|failed -> validating
                checkout = checkout.begin_validation()
                try:
                    customer = Customer.create(full_name=full_name, phone=phone, email=email)
                except ValidationError as e:
                    checkout = checkout.reject_input(field_errors=e.field_errors)
                    await self.checkout_repo.save(checkout=checkout)
                    span.set_attribute('outcome', 'invalid_input')
                    raise

                # 2. validating -> submitting
                checkout = checkout.begin_submission(
                    customer=customer,
                    payment_method=payment_method,
                    attempt_id=uuid_utils.uuid7(),
                )
                await self.checkout_repo.save(checkout=checkout)

                # 3./4. gateway call
                try:
                    result = await self._initiate(gateway=gateway, checkout=checkout)
                except (NetworkError, AuthError, GatewayRejected) as e:
                    checkout = checkout.mark_submission_failed(reason=e.message)
                    await self.checkout_repo.save(checkout=checkout)
                    Logger.base.warning(
                        f'❌ [SUBMIT] Payment attempt for checkout {checkout_id} failed: '
                        f'{type(e).__name__}: {e.message}'
                    )
                    span.set_attribute('outcome', checkout.state.value)
                    return checkout
                except Exception:
                    # Nothing reports the push as accepted, so the attempt is closed
                    await self.checkout_repo.save(
                        checkout=checkout.mark_submission_failed(reason=UNEXPECTED_GATEWAY_ERROR)
                    )
                    span.set_attribute('outcome', 'gateway_error')
                    raise

                checkout = await self._store_accepted(checkout, result=result)
                span.set_attribute('outcome', checkout.state.value)
                if checkout.state != CheckoutState.AWAITING_CONFIRMATION:
                    return checkout

                Logger.base.info(
                    f'📲 [SUBMIT] Checkout {checkout_id} awaiting confirmation '
                    f'(reference={result.external_reference})'
                )

            if self.infer_mpesa_confirmation and payment_method == PaymentMethod.MPESA:
                self._schedule_inferred_confirmation(external_reference=result.external_reference)
            return checkout

    async def _initiate(self, *, gateway: IPaymentGateway, checkout: Checkout) -> PushResult:
        result = await gateway.initiate_payment(checkout=checkout)
        if not result.accepted:
            raise GatewayRejected(result.description or 'Payment was declined')
        if not result.external_reference:
            raise GatewayRejected('Gateway accepted the payment without a reference')
        return result

    async def _store_accepted(self, checkout: Checkout, *, result: PushResult) -> Checkout:
        """
        The gateway now holds a live payment request, so its reference must reach storage:
        the awaiting state is saved with retries, and when that keeps failing the checkout
        is parked in reconciliation_required with the reference so a callback can find it.
        """
        reference = result.external_reference or ''
        awaiting = checkout.mark_awaiting_confirmation(
            external_reference=reference, redirect_url=result.redirect_url
        )
        for attempt in range(1, AWAITING_SAVE_ATTEMPTS + 1):
            try:
                await self.checkout_repo.save(checkout=awaiting)
                return awaiting
            except PersistenceError as e:
                Logger.base.error(
                    f'💾 [SUBMIT] Saving awaiting state for checkout {checkout.id} failed '
                    f'({attempt}/{AWAITING_SAVE_ATTEMPTS}): {e.message}'
                )

        parked = checkout.mark_unrecorded_submission(
            external_reference=reference, reason=UNRECORDED_SUBMISSION_REASON
        )
        try:
            await self.checkout_repo.save(checkout=parked)
        except PersistenceError:
            Logger.base.critical(
                f'🚨 [SUBMIT] Gateway accepted {reference} for checkout {checkout.id} '
                f'but neither the awaiting nor the reconciliation state was saved'
            )
            raise
        Logger.base.critical(
            f'🚨 [SUBMIT] Gateway accepted {reference} for checkout {checkout.id}; '
            f'held for reconciliation'
        )
        return parked

    # ============================ Inferred confirmation ============================

    def _schedule_inferred_confirmation(self, *, external_reference: Optional[str]) -> None:
        if not external_reference:
            return
        if self.task_group is None:
            Logger.base.warning(
                f'⚠️ [SUBMIT] No task group; inferred confirmation for {external_reference} '
                f'was not scheduled'
            )
            return
        self.task_group.start_soon(self._confirm_after_wait, external_reference)

    async def _confirm_after_wait(self, external_reference: str) -> None:
        """
        Stand-in for the gateway callback when none can reach this service: after the
        wait window the payment is assumed complete. A real callback arriving first
        wins, and this becomes a no-op.
        """
        await anyio.sleep(self.inferred_confirmation_delay_seconds)
        try:
            await self.confirm_payment_use_case.confirm(
                confirmation=PaymentConfirmation(
                    external_reference=external_reference,
                    succeeded=True,
                    description=INFERRED_CONFIRMATION_DESCRIPTION,
                    receipt=external_reference,
                )
            )
        except Exception as e:
            # Runs detached from the request; an error here must not tear down the task group
            Logger.base.exception(
                f'🚨 [SUBMIT] Inferred confirmation for {external_reference} failed: {e}'
            )
