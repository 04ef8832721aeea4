from abc import ABC, abstractmethod
from typing import List

from src.service.checkout.domain.entity.order_entity import Order


class IOrderQueryRepo(ABC):
    @abstractmethod
    async def list_by_customer_email(self, *, customer_email: str) -> List[Order]:
        """Newest first"""
        pass
