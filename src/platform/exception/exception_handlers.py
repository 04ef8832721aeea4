from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from src.platform.exception.exceptions import CustomBaseError, ValidationError
from src.platform.logging.loguru_io import Logger


ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


def _error_response(
    status_code: int, message: str, field_errors: dict[str, str] | None = None
) -> JSONResponse:
    content: dict[str, Any] = {'detail': message}
    if field_errors is not None:
        content['field_errors'] = field_errors
    return JSONResponse(status_code=status_code, content=content)


def _field_errors_from_request(exc: RequestValidationError) -> dict[str, str]:
    """Flatten pydantic locations ('body', 'customer', 'phone') into 'customer.phone'."""
    field_errors: dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'path')]
        field_errors.setdefault('.'.join(location) or 'request', error.get('msg', 'Invalid'))
    return field_errors


async def custom_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, CustomBaseError) else CustomBaseError(str(exc), 500)
    if error.status_code >= 500:
        Logger.base.error(f'💥 [HTTP] {request.method} {request.url.path}: {error.message}')
    return _error_response(error.status_code, error.message)


async def checkout_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, ValidationError) else ValidationError(str(exc))
    return _error_response(error.status_code, error.message, error.field_errors)


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, RequestValidationError) else RequestValidationError([])
    return _error_response(
        status.HTTP_400_BAD_REQUEST, 'Invalid request', _field_errors_from_request(error)
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    Logger.base.opt(exception=exc).error(
        f'💥 [HTTP] Unhandled error on {request.method} {request.url.path}'
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, 'Internal server error')


# Most specific first: ValidationError is also a CustomBaseError
EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    ValidationError: checkout_validation_error_handler,
    CustomBaseError: custom_error_handler,
    RequestValidationError: request_validation_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
