from typing import AsyncContextManager, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.exception.exceptions import PersistenceError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.repo.checkout_repo_impl import to_std_uuid


class OrderCommandRepoImpl(IOrderCommandRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @Logger.io
    async def record_order(self, *, order: Order) -> Order:
        try:
            async with self.session_factory() as session:
                db_order = OrderModel(
                    id=to_std_uuid(order.id),
                    checkout_id=to_std_uuid(order.checkout_id),
                    event_id=order.event_id,
                    event_name=order.event_name,
                    event_date=order.event_date,
                    event_location=order.event_location,
                    ticket_count=order.ticket_count,
                    total_amount=order.total_amount,
                    customer_name=order.customer_name,
                    customer_email=order.customer_email,
                    customer_phone=order.customer_phone,
                    payment_method=order.payment_method.value,
                    payment_status=order.payment_status.value,
                    external_receipt=order.external_receipt,
                )
                if order.created_at is not None:
                    db_order.created_at = order.created_at
                session.add(db_order)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(
                f'Failed to record order for checkout {order.checkout_id}: {e}'
            ) from e
        return order
