from pathlib import Path
from typing import Annotated, List, Literal

import orjson
from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict, SettingsError

from src.platform.exception.exceptions import ConfigurationError


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
# Only a real .env is read; .env.example documents the variables and must never supply them
_ENV_FILE = _PROJECT_ROOT / '.env'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Ticket Checkout Service'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # CORS
    # comma separated in .env (http://localhost:5173,https://tickets.example.com)
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and v.startswith('['):
            return orjson.loads(v)
        if isinstance(v, str):
            return [i.strip() for i in v.split(',') if i.strip()]
        return v

    # Database
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'ticket_checkout'
    POSTGRES_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_PRE_PING: bool = True

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        password = self.POSTGRES_PASSWORD.get_secret_value()
        return f'postgresql+asyncpg://{self.POSTGRES_USER}:{password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'

    @property
    def DATABASE_URL_SYNC(self) -> str:
        password = self.POSTGRES_PASSWORD.get_secret_value()
        return f'postgresql://{self.POSTGRES_USER}:{password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'

    # M-PESA (required, no defaults)
    MPESA_SHORTCODE: str
    MPESA_PASSKEY: SecretStr
    MPESA_CONSUMER_KEY: str
    MPESA_CONSUMER_SECRET: SecretStr
    MPESA_CALLBACK_URL: str

    # production: https://api.safaricom.co.ke
    MPESA_BASE_URL: str = 'https://sandbox.safaricom.co.ke'
    MPESA_TOKEN_EXPIRY_MARGIN_SECONDS: int = 60
    MPESA_DEFAULT_TOKEN_TTL_SECONDS: int = 3599  # Used when the gateway omits expires_in
    MPESA_CONFIRMATION_MODE: Literal['callback', 'inferred'] = 'callback'
    MPESA_INFERRED_CONFIRMATION_DELAY_SECONDS: float = 10.0
    GATEWAY_HTTP_TIMEOUT_SECONDS: float = 30.0
    # Second lookup of an unknown callback reference, for callbacks that beat the submit
    CONFIRMATION_LOOKUP_RETRY_SECONDS: float = 2.0

    # Stripe (card method is disabled unless STRIPE_SECRET_KEY is set)
    STRIPE_SECRET_KEY: SecretStr | None = None
    STRIPE_WEBHOOK_SECRET: SecretStr | None = None
    STRIPE_CURRENCY: str = 'kes'
    CHECKOUT_SUCCESS_URL: str = 'http://localhost:5173/success'
    CHECKOUT_CANCEL_URL: str = 'http://localhost:5173/checkout'

    # Resend (confirmation emails)
    RESEND_API_KEY: SecretStr
    RESEND_BASE_URL: str = 'https://api.resend.com'
    RESEND_FROM_ADDRESS: str = 'Tickets <onboarding@resend.dev>'

    @property
    def CARD_PAYMENTS_ENABLED(self) -> bool:
        return self.STRIPE_SECRET_KEY is not None


def load_settings() -> Settings:
    """Build settings from the environment, failing fast with every missing variable named."""
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        missing = [
            '.'.join(str(loc) for loc in error['loc'])
            for error in e.errors()
            if error['type'] == 'missing'
        ]
        if missing:
            raise ConfigurationError(
                f'Missing required configuration: {", ".join(sorted(missing))}'
            ) from e
        raise ConfigurationError(f'Invalid configuration: {e}') from e
    except SettingsError as e:
        raise ConfigurationError(f'Unreadable configuration: {e}') from e


settings = load_settings()
