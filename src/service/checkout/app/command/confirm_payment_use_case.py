from typing import Any, Optional, Self

import anyio
from anyio.abc import TaskGroup
from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import uuid_utils

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import NotificationError, PersistenceError
from src.platform.logging.loguru_io import Logger
from src.platform.state.keyed_lock import KeyedLock
from src.service.checkout.app.dto.payment_dto import PaymentConfirmation
from src.service.checkout.app.interface.i_checkout_repo import ICheckoutRepo
from src.service.checkout.app.interface.i_notification_dispatcher import (
    INotificationDispatcher,
)
from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.checkout.domain.entity.checkout_entity import Checkout
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.checkout_state import CheckoutState


DEFAULT_FAILURE_DESCRIPTION = 'Payment was not completed'


def checkout_lock_key(checkout_id: Any) -> str:
    return f'checkout:{checkout_id}'


class ConfirmPaymentUseCase:
    """
    Settle an awaiting checkout from an asynchronous gateway result

    awaiting_confirmation -> failed                   (gateway reported failure / timeout)
    awaiting_confirmation -> succeeded                (order recorded)
    awaiting_confirmation -> reconciliation_required  (paid, but the order write failed)

    reconciliation_required with a pending attempt (the submit could not store the
    awaiting state) only gets the result attached to the attempt for the operator.

    Idempotent: stale attempts and already-settled checkouts are left unchanged, so
    gateway redeliveries and the inferred confirmation can race safely. A reference
    still unknown after one delayed re-read returns None.
    """

    def __init__(
        self,
        *,
        checkout_repo: ICheckoutRepo,
        order_command_repo: IOrderCommandRepo,
        notification_dispatcher: INotificationDispatcher,
        checkout_lock: KeyedLock,
        task_group: Optional[TaskGroup] = None,
        unknown_reference_retry_seconds: float = 0.0,
    ) -> None:
        self.checkout_repo = checkout_repo
        self.order_command_repo = order_command_repo
        self.notification_dispatcher = notification_dispatcher
        self.checkout_lock = checkout_lock
        self.task_group = task_group
        self.unknown_reference_retry_seconds = unknown_reference_retry_seconds
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        checkout_repo: ICheckoutRepo = Depends(Provide[Container.checkout_repo]),
        order_command_repo: IOrderCommandRepo = Depends(Provide[Container.order_command_repo]),
        notification_dispatcher: INotificationDispatcher = Depends(
            Provide[Container.notification_dispatcher]
        ),
        checkout_lock: KeyedLock = Depends(Provide[Container.checkout_lock]),
        task_group: Optional[TaskGroup] = Depends(Provide[Container.task_group]),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            checkout_repo=checkout_repo,
            order_command_repo=order_command_repo,
            notification_dispatcher=notification_dispatcher,
            checkout_lock=checkout_lock,
            task_group=task_group,
            unknown_reference_retry_seconds=config.CONFIRMATION_LOOKUP_RETRY_SECONDS,
        )

    @Logger.io
    async def confirm(self, *, confirmation: PaymentConfirmation) -> Optional[Checkout]:
        reference = confirmation.external_reference
        with self.tracer.start_as_current_span(
            'use_case.confirm_payment',
            attributes={
                'payment.reference': reference,
                'payment.succeeded': confirmation.succeeded,
            },
        ) as span:
            found = await self._find_by_reference(reference)
            if found is None:
                Logger.base.warning(f'⚠️ [CONFIRM] No checkout for reference {reference}')
                span.set_attribute('outcome', 'unknown_reference')
                return None

            order: Optional[Order] = None
            async with self.checkout_lock.hold(key=checkout_lock_key(found.id)):
                # Re-read under the lock: a concurrent confirmation may have settled it
                checkout = await self.checkout_repo.get_by_id(checkout_id=found.id) or found
                if self._is_unrecorded_submission(checkout, reference=reference):
                    checkout = await self._attach_late_result(checkout, confirmation=confirmation)
                    span.set_attribute('outcome', 'late_result')
                    return checkout

                if not self._is_awaiting(checkout, reference=reference):
                    Logger.base.info(
                        f'🔁 [CONFIRM] Ignoring confirmation {reference}: '
                        f'checkout {checkout.id} is {checkout.state.value}'
                    )
                    span.set_attribute('outcome', 'ignored')
                    return checkout

                if not confirmation.succeeded:
                    checkout = checkout.mark_payment_failed(
                        reason=confirmation.description or DEFAULT_FAILURE_DESCRIPTION
                    )
                    await self.checkout_repo.save(checkout=checkout)
                    Logger.base.info(
                        f'❌ [CONFIRM] Payment failed for checkout {checkout.id}: '
                        f'{checkout.failure_reason}'
                    )
                    span.set_attribute('outcome', checkout.state.value)
                    return checkout

                order = checkout.build_order(
                    order_id=uuid_utils.uuid7(), receipt=confirmation.receipt
                )
                try:
                    await self.order_command_repo.record_order(order=order)
                except PersistenceError as e:
                    checkout = await self._require_reconciliation(
                        checkout, error=e, receipt=confirmation.receipt
                    )
                    span.set_attribute('outcome', checkout.state.value)
                    return checkout

                checkout = checkout.mark_succeeded(receipt=confirmation.receipt)
                await self.checkout_repo.save(checkout=checkout)
                Logger.base.info(
                    f'✅ [CONFIRM] Checkout {checkout.id} paid, order {order.id} recorded'
                )
                span.set_attribute('outcome', checkout.state.value)

            await self._dispatch_confirmation(order=order)
            return checkout

    async def _find_by_reference(self, reference: str) -> Optional[Checkout]:
        found = await self.checkout_repo.get_by_external_reference(external_reference=reference)
        if found is None and self.unknown_reference_retry_seconds > 0:
            # A callback can overtake the submit that is still storing this reference
            await anyio.sleep(self.unknown_reference_retry_seconds)
            found = await self.checkout_repo.get_by_external_reference(
                external_reference=reference
            )
        return found

    async def _attach_late_result(
        self, checkout: Checkout, *, confirmation: PaymentConfirmation
    ) -> Checkout:
        checkout = checkout.record_late_result(
            succeeded=confirmation.succeeded,
            receipt=confirmation.receipt,
            description=confirmation.description,
        )
        await self.checkout_repo.save(checkout=checkout)
        Logger.base.critical(
            f'🚨 [CONFIRM] Result for unrecorded submission {confirmation.external_reference} '
            f'(checkout {checkout.id}): succeeded={confirmation.succeeded}, '
            f'receipt={confirmation.receipt}'
        )
        return checkout

    @staticmethod
    def _is_awaiting(checkout: Checkout, *, reference: str) -> bool:
        attempt = checkout.attempt
        return (
            checkout.state == CheckoutState.AWAITING_CONFIRMATION
            and attempt is not None
            and attempt.is_pending
            and attempt.external_reference == reference
        )

    @staticmethod
    def _is_unrecorded_submission(checkout: Checkout, *, reference: str) -> bool:
        attempt = checkout.attempt
        return (
            checkout.state == CheckoutState.RECONCILIATION_REQUIRED
            and attempt is not None
            and attempt.is_pending
            and attempt.external_reference == reference
        )

    async def _require_reconciliation(
        self, checkout: Checkout, *, error: PersistenceError, receipt: Optional[str]
    ) -> Checkout:
        reference = receipt or (checkout.attempt.external_reference if checkout.attempt else None)
        Logger.base.critical(
            f'🚨 [CONFIRM] Payment {reference} for checkout {checkout.id} succeeded '
            f'but the order was not recorded: {error.message}'
        )
        checkout = checkout.mark_reconciliation_required(
            reason='Payment received but the order could not be recorded', receipt=receipt
        )
        try:
            await self.checkout_repo.save(checkout=checkout)
        except PersistenceError as e:
            Logger.base.critical(
                f'🚨 [CONFIRM] Could not persist reconciliation state for {checkout.id}: '
                f'{e.message}'
            )
        return checkout

    async def _dispatch_confirmation(self, *, order: Optional[Order]) -> None:
        if order is None:
            return
        if self.task_group is not None:
            self.task_group.start_soon(self._send_confirmation, order)
        else:
            await self._send_confirmation(order)

    async def _send_confirmation(self, order: Order) -> None:
        try:
            await self.notification_dispatcher.send_confirmation(order=order)
        except NotificationError as e:
            Logger.base.warning(
                f'📧 [NOTIFY] Confirmation for order {order.id} not delivered: {e.message}'
            )
        except Exception as e:
            # Runs detached from the request; an error here must not tear down the task group
            Logger.base.exception(f'📧 [NOTIFY] Unexpected error for order {order.id}: {e}')
