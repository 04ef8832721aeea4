from typing import AsyncContextManager, Callable, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils import UUID

from src.platform.exception.exceptions import PersistenceError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.payment_attempt_status import PaymentAttemptStatus
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.driven_adapter.model.order_model import OrderModel


class OrderQueryRepoImpl(IOrderQueryRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @staticmethod
    def _to_entity(db_order: OrderModel) -> Order:
        return Order(
            id=UUID(str(db_order.id)),
            checkout_id=UUID(str(db_order.checkout_id)),
            event_id=db_order.event_id,
            event_name=db_order.event_name,
            event_date=db_order.event_date,
            event_location=db_order.event_location,
            ticket_count=db_order.ticket_count,
            total_amount=db_order.total_amount,
            customer_name=db_order.customer_name,
            customer_email=db_order.customer_email,
            customer_phone=db_order.customer_phone,
            payment_method=PaymentMethod(db_order.payment_method),
            payment_status=PaymentAttemptStatus(db_order.payment_status),
            external_receipt=db_order.external_receipt,
            created_at=db_order.created_at,
        )

    @Logger.io
    async def list_by_customer_email(self, *, customer_email: str) -> List[Order]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(OrderModel)
                    .where(OrderModel.customer_email == customer_email)
                    .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                )
                return [self._to_entity(db_order) for db_order in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f'Failed to list orders: {e}') from e
