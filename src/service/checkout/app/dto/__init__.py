from src.service.checkout.app.dto.payment_dto import (
    PaymentConfirmation,
    PushRequest,
    PushResult,
)


__all__ = ['PaymentConfirmation', 'PushRequest', 'PushResult']
