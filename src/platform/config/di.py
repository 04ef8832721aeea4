"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from typing import Dict

from dependency_injector import containers, providers
import httpx
from pydantic import SecretStr

from src.platform.config.core_setting import Settings, load_settings
from src.platform.database.orm_db_setting import Database
from src.platform.state.keyed_lock import KeyedLock
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.driven_adapter.gateway.access_credential_cache import (
    AccessCredentialCache,
)
from src.service.checkout.driven_adapter.gateway.mpesa_stk_push_client import MpesaStkPushClient
from src.service.checkout.driven_adapter.gateway.payment_confirmation_parser import (
    StripeWebhookParser,
)
from src.service.checkout.driven_adapter.gateway.stripe_card_checkout_client import (
    StripeCardCheckoutClient,
)
from src.service.checkout.driven_adapter.notification.resend_notification_dispatcher import (
    ResendNotificationDispatcher,
)
from src.service.checkout.driven_adapter.repo.checkout_repo_impl import CheckoutRepoImpl
from src.service.checkout.driven_adapter.repo.order_command_repo_impl import (
    OrderCommandRepoImpl,
)
from src.service.checkout.driven_adapter.repo.order_query_repo_impl import OrderQueryRepoImpl


def build_payment_gateways(
    *, config: Settings, mpesa_gateway: MpesaStkPushClient
) -> Dict[PaymentMethod, IPaymentGateway]:
    """M-PESA is always on; card payments only when a Stripe secret key is configured."""
    gateways: Dict[PaymentMethod, IPaymentGateway] = {PaymentMethod.MPESA: mpesa_gateway}
    if config.CARD_PAYMENTS_ENABLED:
        gateways[PaymentMethod.CARD] = StripeCardCheckoutClient(
            secret_key=config.STRIPE_SECRET_KEY.get_secret_value(),
            currency=config.STRIPE_CURRENCY,
            success_url=config.CHECKOUT_SUCCESS_URL,
            cancel_url=config.CHECKOUT_CANCEL_URL,
        )
    return gateways


def _secret(value: SecretStr | None) -> str | None:
    return value.get_secret_value() if value is not None else None


class Container(containers.DeclarativeContainer):
    # Configuration (raises ConfigurationError naming every missing variable)
    config_service = providers.Singleton(load_settings)

    # Database (uses AsyncEngineManager with settings from config_service)
    database = providers.Singleton(Database)

    # Background task group (set by main.py lifespan)
    # Used for fire-and-forget work: confirmation emails, inferred confirmations
    task_group = providers.Object(None)

    # Shared outbound HTTP client (gateway + notification provider)
    http_client = providers.Singleton(
        httpx.AsyncClient,
        timeout=config_service.provided.GATEWAY_HTTP_TIMEOUT_SECONDS,
    )

    # In-process lock serializing submit/confirm on the same checkout
    checkout_lock = providers.Singleton(KeyedLock)

    # Repositories (stateless - use session_factory per-request)
    checkout_repo = providers.Singleton(
        CheckoutRepoImpl, session_factory=database.provided.session
    )
    order_command_repo = providers.Singleton(
        OrderCommandRepoImpl, session_factory=database.provided.session
    )
    order_query_repo = providers.Singleton(
        OrderQueryRepoImpl, session_factory=database.provided.session
    )

    # Process-wide M-PESA access credential (single-flight)
    mpesa_credential_cache = providers.Singleton(
        AccessCredentialCache,
        expiry_margin_seconds=config_service.provided.MPESA_TOKEN_EXPIRY_MARGIN_SECONDS,
    )

    # Payment gateways
    mpesa_gateway = providers.Singleton(
        MpesaStkPushClient,
        base_url=config_service.provided.MPESA_BASE_URL,
        shortcode=config_service.provided.MPESA_SHORTCODE,
        passkey=config_service.provided.MPESA_PASSKEY.get_secret_value.call(),
        consumer_key=config_service.provided.MPESA_CONSUMER_KEY,
        consumer_secret=config_service.provided.MPESA_CONSUMER_SECRET.get_secret_value.call(),
        callback_url=config_service.provided.MPESA_CALLBACK_URL,
        credential_cache=mpesa_credential_cache,
        http_client=http_client,
        default_token_ttl_seconds=config_service.provided.MPESA_DEFAULT_TOKEN_TTL_SECONDS,
    )
    payment_gateways = providers.Singleton(
        build_payment_gateways, config=config_service, mpesa_gateway=mpesa_gateway
    )
    stripe_webhook_parser = providers.Singleton(
        StripeWebhookParser,
        webhook_secret=providers.Callable(
            _secret, config_service.provided.STRIPE_WEBHOOK_SECRET
        ),
    )

    # Notification
    notification_dispatcher = providers.Singleton(
        ResendNotificationDispatcher,
        api_key=config_service.provided.RESEND_API_KEY.get_secret_value.call(),
        from_address=config_service.provided.RESEND_FROM_ADDRESS,
        base_url=config_service.provided.RESEND_BASE_URL,
        http_client=http_client,
    )


container = Container()


def setup() -> None:
    container.config_service()


async def cleanup() -> None:
    await container.http_client().aclose()
    await container.database().dispose()
    container.reset_singletons()
