from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.order_entity import Order


class IOrderCommandRepo(ABC):
    @abstractmethod
    async def record_order(self, *, order: Order) -> Order:
        """
        Insert the order.

        Raises:
            PersistenceError: the write did not succeed
        """
        pass
