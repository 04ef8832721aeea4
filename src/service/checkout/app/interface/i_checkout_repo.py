from abc import ABC, abstractmethod
from typing import Optional

from uuid_utils import UUID

from src.service.checkout.domain.entity.checkout_entity import Checkout


class ICheckoutRepo(ABC):
    """Repository interface for the checkout aggregate and its current payment attempt"""

    @abstractmethod
    async def create(self, *, checkout: Checkout) -> Checkout:
        pass

    @abstractmethod
    async def get_by_id(self, *, checkout_id: UUID) -> Optional[Checkout]:
        pass

    @abstractmethod
    async def get_by_external_reference(self, *, external_reference: str) -> Optional[Checkout]:
        """Find the checkout whose current attempt carries the gateway correlation id"""
        pass

    @abstractmethod
    async def save(self, *, checkout: Checkout) -> Checkout:
        pass
