from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import uuid_utils

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_checkout_repo import ICheckoutRepo
from src.service.checkout.domain.entity.checkout_entity import Checkout
from src.service.checkout.domain.value_object.event_snapshot import EventSnapshot


class OpenCheckoutUseCase:
    def __init__(self, *, checkout_repo: ICheckoutRepo) -> None:
        self.checkout_repo = checkout_repo
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        checkout_repo: ICheckoutRepo = Depends(Provide[Container.checkout_repo]),
    ) -> Self:
        return cls(checkout_repo=checkout_repo)

    @Logger.io
    async def open_checkout(self, *, event: EventSnapshot, ticket_count: int) -> Checkout:
        checkout_id = uuid_utils.uuid7()
        with self.tracer.start_as_current_span(
            'use_case.open_checkout',
            attributes={'checkout.id': str(checkout_id), 'event.id': event.id},
        ):
            checkout = Checkout.open(id=checkout_id, event=event, ticket_count=ticket_count)
            checkout = await self.checkout_repo.create(checkout=checkout)
            Logger.base.info(
                f'🛒 [CHECKOUT] Opened {checkout_id} for event {event.id} '
                f'({ticket_count} x {event.unit_price} = {checkout.amount})'
            )
            return checkout
