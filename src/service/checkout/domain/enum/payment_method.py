from enum import StrEnum


class PaymentMethod(StrEnum):
    MPESA = 'mpesa'  # STK push to the customer's phone
    CARD = 'card'  # Redirect to a hosted card checkout session
