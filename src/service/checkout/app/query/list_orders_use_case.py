from typing import List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.checkout.domain.entity.order_entity import Order


class ListOrdersUseCase:
    def __init__(self, *, order_query_repo: IOrderQueryRepo) -> None:
        self.order_query_repo = order_query_repo

    @classmethod
    @inject
    def depends(
        cls,
        order_query_repo: IOrderQueryRepo = Depends(Provide[Container.order_query_repo]),
    ) -> Self:
        return cls(order_query_repo=order_query_repo)

    @Logger.io
    async def list_orders(self, *, customer_email: str) -> List[Order]:
        """Order history of one customer, newest first."""
        email = (customer_email or '').strip()
        if not email:
            raise DomainError('customer_email is required')
        return await self.order_query_repo.list_by_customer_email(customer_email=email)
