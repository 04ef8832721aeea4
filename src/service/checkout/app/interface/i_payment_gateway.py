from abc import ABC, abstractmethod

from src.service.checkout.app.dto.payment_dto import PushResult
from src.service.checkout.domain.entity.checkout_entity import Checkout


class IPaymentGateway(ABC):
    """
    One payment method capability (STK push or hosted card checkout)

    Business-level declines are returned as PushResult(accepted=False).
    Only transport and credential failures raise (NetworkError / AuthError).
    """

    @abstractmethod
    async def initiate_payment(self, *, checkout: Checkout) -> PushResult:
        pass
