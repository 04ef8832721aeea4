class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(Exception):
    """Raised at process start when required settings are missing or invalid."""


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ValidationError(CustomBaseError):
    """User-correctable input error. Raised before any network call is made."""

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message, 400)
        self.field_errors = field_errors or {}


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class AuthenticationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class AuthError(CustomBaseError):
    """Credential exchange with a payment gateway failed."""

    def __init__(self, message: str, *, gateway_status: int | None = None, body: str = '') -> None:
        super().__init__(message, 502)
        self.gateway_status = gateway_status
        self.body = body


class NetworkError(CustomBaseError):
    """Transport failure reaching an external gateway."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 502)


class GatewayRejected(CustomBaseError):
    """Business-level decline reported by the payment gateway."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 402)


class PersistenceError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 500)


class NotificationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 502)
