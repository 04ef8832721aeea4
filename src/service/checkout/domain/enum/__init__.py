from src.service.checkout.domain.enum.checkout_state import CheckoutState
from src.service.checkout.domain.enum.payment_attempt_status import PaymentAttemptStatus
from src.service.checkout.domain.enum.payment_method import PaymentMethod


__all__ = ['CheckoutState', 'PaymentAttemptStatus', 'PaymentMethod']
