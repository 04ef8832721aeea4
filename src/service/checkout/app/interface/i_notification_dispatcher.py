from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.order_entity import Order


class INotificationDispatcher(ABC):
    @abstractmethod
    async def send_confirmation(self, *, order: Order) -> None:
        """
        Send the order confirmation once, without retry.

        Raises:
            NotificationError: the provider did not accept the message
        """
        pass
