"""
M-PESA STK push client (Safaricom Daraja API)

Flow per payment attempt:
1. acquire_credential(): OAuth client-credentials token, cached process-wide
2. build_timestamp() + derive_password(): regenerated for every request, part of the signature
3. POST /mpesa/stkpush/v1/processrequest with the callback URL for the async result

A 401 from the push endpoint means the gateway refused the token before processing
anything, so the client invalidates the credential and resubmits once.
"""

import base64
from datetime import datetime
from typing import Any, Callable, Dict

import httpx
from opentelemetry import trace
import orjson

from src.platform.exception.exceptions import AuthError, DomainError, NetworkError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.payment_dto import PushRequest, PushResult
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway
from src.service.checkout.domain.entity.checkout_entity import Checkout
from src.service.checkout.driven_adapter.gateway.access_credential_cache import (
    AccessCredential,
    AccessCredentialCache,
)


TOKEN_PATH = '/oauth/v1/generate'
STK_PUSH_PATH = '/mpesa/stkpush/v1/processrequest'

TRANSACTION_TYPE = 'CustomerPayBillOnline'
SUCCESS_RESPONSE_CODE = '0'
ACCOUNT_REFERENCE_MAX_LENGTH = 12
TRANSACTION_DESC_MAX_LENGTH = 13
DEFAULT_TRANSACTION_DESC = 'TicketPayment'
FALLBACK_FAILURE_DESCRIPTION = 'STK Push failed'


class MpesaStkPushClient(IPaymentGateway):
    def __init__(
        self,
        *,
        base_url: str,
        shortcode: str,
        passkey: str,
        consumer_key: str,
        consumer_secret: str,
        callback_url: str,
        credential_cache: AccessCredentialCache,
        http_client: httpx.AsyncClient,
        default_token_ttl_seconds: int = 3599,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.tracer = trace.get_tracer(__name__)
        self._base_url = base_url.rstrip('/')
        self._shortcode = shortcode
        self._passkey = passkey
        self._consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self._callback_url = callback_url
        self._credential_cache = credential_cache
        self._http_client = http_client
        self._default_token_ttl_seconds = default_token_ttl_seconds
        self._clock = clock

    # ============================ Credential ============================

    async def acquire_credential(self) -> str:
        """Bearer token from the shared cache; concurrent callers share one exchange."""
        credential = await self._credential_cache.get(self._exchange_credential)
        return credential.token

    async def _exchange_credential(self) -> AccessCredential:
        with self.tracer.start_as_current_span('gateway.mpesa.exchange_credential') as span:
            try:
                response = await self._http_client.get(
                    f'{self._base_url}{TOKEN_PATH}',
                    params={'grant_type': 'client_credentials'},
                    auth=(self._consumer_key, self._consumer_secret),
                )
            except httpx.HTTPError as e:
                raise NetworkError(f'M-PESA credential endpoint unreachable: {e}') from e

            span.set_attribute('http.status_code', response.status_code)
            if not response.is_success:
                raise AuthError(
                    f'M-PESA credential exchange failed ({response.status_code}): {response.text}',
                    gateway_status=response.status_code,
                    body=response.text,
                )

            body = self._parse_json(response)
            token = body.get('access_token')
            if not token:
                raise AuthError(
                    'M-PESA credential response did not contain an access_token',
                    gateway_status=response.status_code,
                    body=response.text,
                )

            try:
                ttl_seconds = int(body.get('expires_in') or self._default_token_ttl_seconds)
            except (TypeError, ValueError):
                ttl_seconds = self._default_token_ttl_seconds

            Logger.base.info(f'🔑 [MPESA] Access credential acquired (expires_in={ttl_seconds}s)')
            return AccessCredential(
                token=str(token), expires_at=self._credential_cache.now() + ttl_seconds
            )

    # ============================ Signature ============================

    def build_timestamp(self) -> str:
        """YYYYMMDDHHMMSS from the local clock; never reuse across requests."""
        return self._clock().strftime('%Y%m%d%H%M%S')

    @staticmethod
    def derive_password(shortcode: str, passkey: str, timestamp: str) -> str:
        return base64.b64encode(f'{shortcode}{passkey}{timestamp}'.encode()).decode()

    # ============================ STK Push ============================

    def _build_payload(self, *, request: PushRequest) -> Dict[str, Any]:
        timestamp = self.build_timestamp()
        return {
            'BusinessShortCode': self._shortcode,
            'Password': self.derive_password(self._shortcode, self._passkey, timestamp),
            'Timestamp': timestamp,
            'TransactionType': TRANSACTION_TYPE,
            'Amount': request.amount,
            'PartyA': request.phone,
            'PartyB': self._shortcode,
            'PhoneNumber': request.phone,
            'CallBackURL': self._callback_url,
            'AccountReference': request.account_reference[:ACCOUNT_REFERENCE_MAX_LENGTH],
            'TransactionDesc': (request.transaction_desc or DEFAULT_TRANSACTION_DESC)[
                :TRANSACTION_DESC_MAX_LENGTH
            ],
        }

    async def _post_push(self, *, request: PushRequest, token: str) -> httpx.Response:
        try:
            return await self._http_client.post(
                f'{self._base_url}{STK_PUSH_PATH}',
                json=self._build_payload(request=request),
                headers={'Authorization': f'Bearer {token}'},
            )
        except httpx.HTTPError as e:
            raise NetworkError(f'M-PESA STK push endpoint unreachable: {e}') from e

    @Logger.io
    async def initiate_push(self, request: PushRequest) -> PushResult:
        """
        Submit an STK push.

        Returns:
            PushResult(accepted=True) only for ResponseCode "0"; any other answer is a
            business rejection returned with the gateway's own description

        Raises:
            NetworkError: transport failure
            AuthError: credential exchange failed, or the token was refused twice
        """
        if request.amount <= 0:
            raise DomainError('STK push amount must be a positive integer')

        with self.tracer.start_as_current_span('gateway.mpesa.initiate_push') as span:
            span.set_attribute('amount', request.amount)

            token = await self.acquire_credential()
            response = await self._post_push(request=request, token=token)

            if response.status_code == httpx.codes.UNAUTHORIZED:
                span.set_attribute('credential_refreshed', True)
                Logger.base.warning('🔑 [MPESA] Token rejected by STK push endpoint, refreshing')
                self._credential_cache.invalidate(token=token)
                token = await self.acquire_credential()
                response = await self._post_push(request=request, token=token)
                if response.status_code == httpx.codes.UNAUTHORIZED:
                    raise AuthError(
                        'M-PESA rejected a freshly issued access token',
                        gateway_status=response.status_code,
                        body=response.text,
                    )

            span.set_attribute('http.status_code', response.status_code)
            result = self._interpret(response)
            span.set_attribute('accepted', result.accepted)
            return result

    def _interpret(self, response: httpx.Response) -> PushResult:
        body = self._parse_json(response)
        if body.get('ResponseCode') == SUCCESS_RESPONSE_CODE:
            return PushResult(
                accepted=True,
                external_reference=body.get('CheckoutRequestID'),
                merchant_request_id=body.get('MerchantRequestID'),
                description=body.get('CustomerMessage') or body.get('ResponseDescription') or '',
            )

        description = (
            body.get('errorMessage')
            or body.get('ResponseDescription')
            or body.get('CustomerMessage')
            or FALLBACK_FAILURE_DESCRIPTION
        )
        Logger.base.warning(
            f'⚠️ [MPESA] STK push rejected (http={response.status_code}): {description}'
        )
        return PushResult(accepted=False, description=description)

    @staticmethod
    def _parse_json(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError:
            return {}
        return body if isinstance(body, dict) else {}

    # ============================ IPaymentGateway ============================

    async def initiate_payment(self, *, checkout: Checkout) -> PushResult:
        if checkout.customer is None:
            raise DomainError('Checkout has no customer to charge', 409)
        return await self.initiate_push(
            PushRequest(
                phone=checkout.customer.phone,
                amount=checkout.amount,
                account_reference=f'EVENT-{checkout.event.id}',
                transaction_desc=f'Tickets for {checkout.event.name}',
            )
        )
