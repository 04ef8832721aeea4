"""
FastAPI app factory shared by the server entrypoint and the HTTP tests.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.platform.config.core_setting import settings
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.observability.tracing import TracingConfig
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.driving_adapter.http_controller.checkout_controller import (
    router as checkout_router,
)
from src.service.checkout.driving_adapter.http_controller.order_controller import (
    router as order_router,
)
from src.service.checkout.driving_adapter.http_controller.payment_callback_controller import (
    router as payment_router,
)


# (router, prefix, tag)
API_ROUTERS: tuple[tuple[APIRouter, str, str], ...] = (
    (checkout_router, '/api/checkout', 'checkout'),
    (payment_router, '/api/payment', 'payment'),
    (order_router, '/api/order', 'order'),
)


def enabled_payment_methods() -> list[str]:
    methods = [PaymentMethod.MPESA.value]
    if settings.CARD_PAYMENTS_ENABLED:
        methods.append(PaymentMethod.CARD.value)
    return methods


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
    description: str = 'Event ticket checkout: M-PESA STK push and card payments',
) -> FastAPI:
    """
    Args:
        lifespan: startup/shutdown context (DI wiring, task group, tracing)
        title_suffix: e.g. ' (Test)'
    """
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description=description,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    TracingConfig.instrument_fastapi(app=app)

    # Browser checkout page posts from the storefront origin
    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['GET', 'POST'],
        allow_headers=['*'],
    )
    register_exception_handlers(app)

    for router, prefix, tag in API_ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    @app.get('/health')
    async def health_check() -> dict[str, Any]:
        return {
            'status': 'healthy',
            'service': settings.PROJECT_NAME,
            'payment_methods': enabled_payment_methods(),
        }

    return app
