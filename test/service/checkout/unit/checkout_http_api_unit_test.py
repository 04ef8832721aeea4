"""
HTTP API tests

Use cases are replaced through FastAPI dependency_overrides, so these tests cover
request validation, status codes, response shape and error mapping only.
"""

from collections.abc import AsyncIterator, Generator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from dependency_injector import providers
from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest
import uuid_utils

from src.platform.app_factory import create_app
from src.platform.config.di import container
from src.platform.exception.exceptions import ConflictError, NotFoundError, ValidationError
from src.service.checkout.app.command.confirm_payment_use_case import ConfirmPaymentUseCase
from src.service.checkout.app.command.open_checkout_use_case import OpenCheckoutUseCase
from src.service.checkout.app.command.submit_checkout_use_case import SubmitCheckoutUseCase
from src.service.checkout.app.dto.payment_dto import PaymentConfirmation
from src.service.checkout.app.query.get_checkout_use_case import GetCheckoutUseCase
from src.service.checkout.app.query.list_orders_use_case import ListOrdersUseCase
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from src.service.checkout.driving_adapter.http_controller import payment_callback_controller
from test.service.checkout.checkout_test_helpers import awaiting_checkout, open_checkout


EVENT_PAYLOAD = {
    'id': 'evt-42',
    'name': 'Nairobi Jazz Night',
    'date': 'Sat, 14 Dec 2024',
    'location': 'KICC, Nairobi',
    'price': 2500,
}


@asynccontextmanager
async def _lifespan_for_tests(app: FastAPI) -> AsyncIterator[None]:
    yield


@pytest.fixture
def use_cases() -> dict[str, MagicMock]:
    return {
        'open': MagicMock(open_checkout=AsyncMock()),
        'submit': MagicMock(submit=AsyncMock()),
        'get': MagicMock(get_checkout=AsyncMock()),
        'confirm': MagicMock(confirm=AsyncMock()),
        'orders': MagicMock(list_orders=AsyncMock(return_value=[])),
    }


@pytest.fixture
def client(use_cases) -> Generator[TestClient, None, None]:
    app = create_app(lifespan=_lifespan_for_tests, title_suffix=' (Test)')
    app.dependency_overrides[OpenCheckoutUseCase.depends] = lambda: use_cases['open']
    app.dependency_overrides[SubmitCheckoutUseCase.depends] = lambda: use_cases['submit']
    app.dependency_overrides[GetCheckoutUseCase.depends] = lambda: use_cases['get']
    app.dependency_overrides[ConfirmPaymentUseCase.depends] = lambda: use_cases['confirm']
    app.dependency_overrides[ListOrdersUseCase.depends] = lambda: use_cases['orders']

    container.wire(modules=[payment_callback_controller])
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        container.unwire()


@pytest.mark.unit
class TestCheckoutEndpoints:
    def test_open_checkout_returns_created_checkout(self, client, use_cases, event):
        checkout = open_checkout(event, ticket_count=3)
        use_cases['open'].open_checkout.return_value = checkout

        response = client.post(
            '/api/checkout', json={'event': EVENT_PAYLOAD, 'ticket_count': 3}
        )

        assert response.status_code == 201
        body = response.json()
        assert body['id'] == str(checkout.id)
        assert body['amount'] == 7500
        assert body['state'] == 'idle'
        passed_event = use_cases['open'].open_checkout.call_args.kwargs['event']
        assert passed_event.unit_price == 2500

    @pytest.mark.parametrize('ticket_count', [0, 6])
    def test_open_checkout_validates_ticket_count(self, client, use_cases, ticket_count):
        response = client.post(
            '/api/checkout', json={'event': EVENT_PAYLOAD, 'ticket_count': ticket_count}
        )

        assert response.status_code == 400
        use_cases['open'].open_checkout.assert_not_called()

    def test_submit_returns_accepted_with_state(self, client, use_cases, event):
        checkout = awaiting_checkout(event, reference='ws_CO_1')
        use_cases['submit'].submit.return_value = checkout

        response = client.post(
            f'/api/checkout/{checkout.id}/submit',
            json={
                'full_name': 'Wanjiku Kamau',
                'phone': '0712345678',
                'email': 'wanjiku@example.com',
            },
        )

        assert response.status_code == 202
        body = response.json()
        assert body['state'] == 'awaiting_confirmation'
        assert body['external_reference'] == 'ws_CO_1'
        assert body['payment_method'] == 'mpesa'
        kwargs = use_cases['submit'].submit.call_args.kwargs
        assert kwargs['payment_method'] == PaymentMethod.MPESA
        assert str(kwargs['checkout_id']) == str(checkout.id)

    def test_submit_validation_error_carries_field_errors(self, client, use_cases):
        use_cases['submit'].submit.side_effect = ValidationError(
            'Invalid customer details', field_errors={'phone': 'Enter a valid number'}
        )

        response = client.post(
            f'/api/checkout/{uuid_utils.uuid7()}/submit',
            json={'full_name': 'Wanjiku', 'phone': '123', 'email': 'wanjiku@example.com'},
        )

        assert response.status_code == 400
        assert response.json()['field_errors'] == {'phone': 'Enter a valid number'}

    def test_submit_in_flight_is_conflict(self, client, use_cases):
        use_cases['submit'].submit.side_effect = ConflictError('A payment is already in progress')

        response = client.post(
            f'/api/checkout/{uuid_utils.uuid7()}/submit',
            json={'full_name': 'Wanjiku', 'phone': '0712345678', 'email': 'w@example.com'},
        )

        assert response.status_code == 409

    def test_get_unknown_checkout_is_not_found(self, client, use_cases):
        use_cases['get'].get_checkout.side_effect = NotFoundError('Checkout not found')

        response = client.get(f'/api/checkout/{uuid_utils.uuid7()}')

        assert response.status_code == 404

    def test_get_with_malformed_id_is_bad_request(self, client):
        response = client.get('/api/checkout/not-a-uuid')

        assert response.status_code == 400


@pytest.mark.unit
class TestPaymentCallbackEndpoints:
    def test_mpesa_callback_confirms_and_acknowledges(self, client, use_cases):
        response = client.post(
            '/api/payment/mpesa/callback',
            json={
                'Body': {
                    'stkCallback': {
                        'MerchantRequestID': '29115-34620561-1',
                        'CheckoutRequestID': 'ws_CO_1',
                        'ResultCode': 1032,
                        'ResultDesc': 'Request cancelled by user',
                    }
                }
            },
        )

        assert response.status_code == 200
        assert response.json() == {'ResultCode': 0, 'ResultDesc': 'Accepted'}
        confirmation = use_cases['confirm'].confirm.call_args.kwargs['confirmation']
        assert confirmation.external_reference == 'ws_CO_1'
        assert confirmation.succeeded is False

    def test_mpesa_callback_for_unknown_reference_is_not_acknowledged(self, client, use_cases):
        use_cases['confirm'].confirm.return_value = None

        response = client.post(
            '/api/payment/mpesa/callback',
            json={
                'Body': {
                    'stkCallback': {
                        'MerchantRequestID': '29115-34620561-1',
                        'CheckoutRequestID': 'ws_CO_unknown',
                        'ResultCode': 0,
                        'ResultDesc': 'The service request is processed successfully.',
                    }
                }
            },
        )

        assert response.status_code == 404
        assert 'ws_CO_unknown' in response.json()['detail']

    def test_stripe_webhook_for_unknown_session_is_not_acknowledged(self, client, use_cases):
        use_cases['confirm'].confirm.return_value = None
        parser = MagicMock()
        parser.parse.return_value = PaymentConfirmation(
            external_reference='cs_test_unknown', succeeded=True, receipt='pi_1'
        )

        with container.stripe_webhook_parser.override(providers.Object(parser)):
            response = client.post(
                '/api/payment/stripe/webhook',
                content=b'{"id": "evt_2"}',
                headers={'Stripe-Signature': 't=1,v1=abc'},
            )

        assert response.status_code == 404

    def test_malformed_mpesa_callback_is_bad_request(self, client, use_cases):
        response = client.post('/api/payment/mpesa/callback', json={'unexpected': True})

        assert response.status_code == 400
        use_cases['confirm'].confirm.assert_not_called()

    def test_stripe_webhook_confirms_parsed_event(self, client, use_cases):
        confirmation = PaymentConfirmation(
            external_reference='cs_test_123', succeeded=True, receipt='pi_123'
        )
        parser = MagicMock()
        parser.parse.return_value = confirmation

        with container.stripe_webhook_parser.override(providers.Object(parser)):
            response = client.post(
                '/api/payment/stripe/webhook',
                content=b'{"id": "evt_1"}',
                headers={'Stripe-Signature': 't=1,v1=abc'},
            )

        assert response.status_code == 200
        assert response.json() == {'received': True}
        parser.parse.assert_called_once_with(payload=b'{"id": "evt_1"}', signature='t=1,v1=abc')
        use_cases['confirm'].confirm.assert_awaited_once_with(confirmation=confirmation)


@pytest.mark.unit
class TestOrderEndpoints:
    def test_list_orders_by_customer_email(self, client, use_cases, event):
        order = awaiting_checkout(event).build_order(
            order_id=uuid_utils.uuid7(), receipt='NLJ7RT61SV'
        )
        use_cases['orders'].list_orders.return_value = [order]

        response = client.get('/api/order', params={'customer_email': 'wanjiku@example.com'})

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]['external_receipt'] == 'NLJ7RT61SV'
        assert body[0]['payment_status'] == 'succeeded'

    def test_health_check(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'
        assert 'mpesa' in response.json()['payment_methods']
