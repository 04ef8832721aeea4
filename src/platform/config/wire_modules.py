"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.checkout.app.command import (
    confirm_payment_use_case,
    open_checkout_use_case,
    submit_checkout_use_case,
)
from src.service.checkout.app.query import get_checkout_use_case, list_orders_use_case
from src.service.checkout.driving_adapter.http_controller import payment_callback_controller


WIRE_MODULES: list[ModuleType] = [
    open_checkout_use_case,
    submit_checkout_use_case,
    confirm_payment_use_case,
    get_checkout_use_case,
    list_orders_use_case,
    payment_callback_controller,
]
