"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.checkout.driven_adapter.model.checkout_model import (
    CheckoutModel,
    PaymentAttemptModel,
)
from src.service.checkout.driven_adapter.model.order_model import OrderModel


__all__ = ['CheckoutModel', 'OrderModel', 'PaymentAttemptModel']
