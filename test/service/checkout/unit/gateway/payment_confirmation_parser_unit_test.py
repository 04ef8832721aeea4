import hashlib
import hmac
import json
import time

import pytest

from src.platform.exception.exceptions import AuthenticationError, ValidationError
from src.service.checkout.driven_adapter.gateway.payment_confirmation_parser import (
    StripeWebhookParser,
    parse_mpesa_stk_callback,
)


WEBHOOK_SECRET = 'whsec_test_secret'


def _stk_callback(result_code: int, *, result_desc: str, items=None) -> dict:
    callback = {
        'MerchantRequestID': '29115-34620561-1',
        'CheckoutRequestID': 'ws_CO_191220191020363925',
        'ResultCode': result_code,
        'ResultDesc': result_desc,
    }
    if items is not None:
        callback['CallbackMetadata'] = {'Item': items}
    return {'Body': {'stkCallback': callback}}


def _signed(event: dict, *, secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
    payload = json.dumps(event).encode()
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode(), f'{timestamp}.{payload.decode()}'.encode(), hashlib.sha256
    ).hexdigest()
    return payload, f't={timestamp},v1={signature}'


def _session_event(event_type: str, **session_fields) -> dict:
    session = {'id': 'cs_test_123', 'object': 'checkout.session', **session_fields}
    return {
        'id': 'evt_test_1',
        'object': 'event',
        'type': event_type,
        'data': {'object': session},
    }


@pytest.mark.unit
class TestParseMpesaStkCallback:
    def test_successful_callback_carries_receipt(self):
        body = _stk_callback(
            0,
            result_desc='The service request is processed successfully.',
            items=[
                {'Name': 'Amount', 'Value': 7500},
                {'Name': 'MpesaReceiptNumber', 'Value': 'NLJ7RT61SV'},
                {'Name': 'PhoneNumber', 'Value': 254712345678},
            ],
        )

        confirmation = parse_mpesa_stk_callback(body)

        assert confirmation.external_reference == 'ws_CO_191220191020363925'
        assert confirmation.succeeded is True
        assert confirmation.receipt == 'NLJ7RT61SV'

    def test_cancelled_callback_is_a_failure(self):
        confirmation = parse_mpesa_stk_callback(
            _stk_callback(1032, result_desc='Request cancelled by user')
        )

        assert confirmation.succeeded is False
        assert confirmation.description == 'Request cancelled by user'
        assert confirmation.receipt is None

    @pytest.mark.parametrize(
        'body',
        [{}, {'Body': {}}, {'Body': {'stkCallback': {'ResultCode': 0}}}, {'Body': None}],
    )
    def test_malformed_callback_raises_validation_error(self, body):
        with pytest.raises(ValidationError):
            parse_mpesa_stk_callback(body)


@pytest.mark.unit
class TestStripeWebhookParser:
    @pytest.fixture
    def parser(self):
        return StripeWebhookParser(webhook_secret=WEBHOOK_SECRET)

    def test_completed_session_succeeds_with_payment_intent_as_receipt(self, parser):
        payload, signature = _signed(
            _session_event(
                'checkout.session.completed', payment_status='paid', payment_intent='pi_123'
            )
        )

        confirmation = parser.parse(payload=payload, signature=signature)

        assert confirmation.external_reference == 'cs_test_123'
        assert confirmation.succeeded is True
        assert confirmation.receipt == 'pi_123'

    def test_unpaid_completed_session_waits_for_async_result(self, parser):
        payload, signature = _signed(
            _session_event('checkout.session.completed', payment_status='unpaid')
        )

        assert parser.parse(payload=payload, signature=signature) is None

    def test_expired_session_fails(self, parser):
        payload, signature = _signed(_session_event('checkout.session.expired'))

        confirmation = parser.parse(payload=payload, signature=signature)

        assert confirmation.succeeded is False
        assert confirmation.description == 'Card checkout expired'

    def test_unrelated_event_is_ignored(self, parser):
        payload, signature = _signed(_session_event('customer.created'))

        assert parser.parse(payload=payload, signature=signature) is None

    def test_bad_signature_is_rejected(self, parser):
        payload, signature = _signed(
            _session_event('checkout.session.completed', payment_status='paid'),
            secret='whsec_someone_else',
        )

        with pytest.raises(AuthenticationError):
            parser.parse(payload=payload, signature=signature)

    def test_missing_secret_is_rejected(self):
        payload, signature = _signed(_session_event('checkout.session.completed'))

        with pytest.raises(AuthenticationError):
            StripeWebhookParser(webhook_secret=None).parse(payload=payload, signature=signature)
