from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_checkout_repo import ICheckoutRepo
from src.service.checkout.domain.entity.checkout_entity import Checkout


class GetCheckoutUseCase:
    def __init__(self, *, checkout_repo: ICheckoutRepo) -> None:
        self.checkout_repo = checkout_repo

    @classmethod
    @inject
    def depends(
        cls,
        checkout_repo: ICheckoutRepo = Depends(Provide[Container.checkout_repo]),
    ) -> Self:
        return cls(checkout_repo=checkout_repo)

    @Logger.io
    async def get_checkout(self, *, checkout_id: UUID) -> Checkout:
        checkout = await self.checkout_repo.get_by_id(checkout_id=checkout_id)
        if checkout is None:
            raise NotFoundError(f'Checkout {checkout_id} not found')
        return checkout
