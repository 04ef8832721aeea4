"""
Unit tests for the Checkout state machine

Focus:
1. Only idle/failed accept a submit, and each submit starts a new attempt
2. Gateway outcomes move submitting/awaiting to the right state
3. Terminal states reject every further transition
"""

import pytest
import uuid_utils

from src.platform.exception.exceptions import ConflictError, DomainError
from src.service.checkout.domain.entity.checkout_entity import Checkout
from src.service.checkout.domain.enum.checkout_state import CheckoutState
from src.service.checkout.domain.enum.payment_attempt_status import PaymentAttemptStatus
from src.service.checkout.domain.enum.payment_method import PaymentMethod
from test.service.checkout.checkout_test_helpers import (
    awaiting_checkout,
    build_customer,
    open_checkout,
)


def _submitting(checkout: Checkout) -> Checkout:
    return checkout.begin_validation().begin_submission(
        customer=build_customer(),
        payment_method=PaymentMethod.MPESA,
        attempt_id=uuid_utils.uuid7(),
    )


@pytest.mark.unit
class TestOpenCheckout:
    def test_open_starts_idle_with_amount_from_snapshot(self, event):
        checkout = open_checkout(event, ticket_count=3)

        assert checkout.state == CheckoutState.IDLE
        assert checkout.amount == 7500
        assert checkout.attempt is None

    @pytest.mark.parametrize('ticket_count', [0, 6, -1])
    def test_open_rejects_ticket_count_out_of_range(self, event, ticket_count):
        with pytest.raises(DomainError):
            Checkout.open(id=uuid_utils.uuid7(), event=event, ticket_count=ticket_count)


@pytest.mark.unit
class TestSubmission:
    def test_reject_input_returns_to_idle_with_field_errors(self, event):
        checkout = open_checkout(event).begin_validation()

        rejected = checkout.reject_input(field_errors={'phone': 'invalid'})

        assert rejected.state == CheckoutState.IDLE
        assert rejected.field_errors == {'phone': 'invalid'}
        assert rejected.attempt is None

    def test_begin_submission_creates_pending_attempt_for_full_amount(self, event):
        checkout = _submitting(open_checkout(event, ticket_count=2))

        assert checkout.state == CheckoutState.SUBMITTING
        assert checkout.attempt.status == PaymentAttemptStatus.PENDING
        assert checkout.attempt.amount == 5000
        assert checkout.attempt.checkout_id == checkout.id
        assert checkout.customer.phone == '254712345678'

    def test_transitions_do_not_mutate_the_original(self, event):
        checkout = open_checkout(event)

        checkout.begin_validation()

        assert checkout.state == CheckoutState.IDLE

    def test_accepted_push_moves_to_awaiting_with_reference(self, event):
        checkout = _submitting(open_checkout(event)).mark_awaiting_confirmation(
            external_reference='ws_CO_1'
        )

        assert checkout.state == CheckoutState.AWAITING_CONFIRMATION
        assert checkout.attempt.external_reference == 'ws_CO_1'

    def test_submission_failure_discards_reference(self, event):
        checkout = _submitting(open_checkout(event)).mark_submission_failed(
            reason='Invalid Access Token'
        )

        assert checkout.state == CheckoutState.FAILED
        assert checkout.failure_reason == 'Invalid Access Token'
        assert checkout.attempt.status == PaymentAttemptStatus.FAILED
        assert checkout.attempt.external_reference is None

    @pytest.mark.parametrize(
        'state',
        [CheckoutState.VALIDATING, CheckoutState.SUBMITTING, CheckoutState.AWAITING_CONFIRMATION],
    )
    def test_second_submit_while_in_flight_is_rejected(self, event, state):
        checkout = open_checkout(event)
        checkout = Checkout(id=checkout.id, event=event, ticket_count=1, state=state)

        with pytest.raises(ConflictError):
            checkout.begin_validation()

    def test_retry_after_failure_starts_new_attempt(self, event):
        failed = awaiting_checkout(event).mark_payment_failed(reason='Request cancelled by user')

        retried = _submitting(failed)

        assert retried.state == CheckoutState.SUBMITTING
        assert retried.attempt.request_id != failed.attempt.request_id
        assert retried.attempt.is_pending
        assert retried.failure_reason is None


@pytest.mark.unit
class TestConfirmation:
    def test_payment_failed_keeps_reference(self, event):
        checkout = awaiting_checkout(event, reference='ws_CO_9').mark_payment_failed(
            reason='Request cancelled by user'
        )

        assert checkout.state == CheckoutState.FAILED
        assert checkout.attempt.external_reference == 'ws_CO_9'
        assert checkout.attempt.status == PaymentAttemptStatus.FAILED

    def test_mark_succeeded_records_receipt(self, event):
        checkout = awaiting_checkout(event).mark_succeeded(receipt='NLJ7RT61SV')

        assert checkout.state == CheckoutState.SUCCEEDED
        assert checkout.attempt.status == PaymentAttemptStatus.SUCCEEDED
        assert checkout.attempt.receipt == 'NLJ7RT61SV'

    def test_receipt_defaults_to_external_reference(self, event):
        checkout = awaiting_checkout(event, reference='ws_CO_7').mark_succeeded()

        assert checkout.attempt.receipt == 'ws_CO_7'

    def test_reconciliation_required_marks_attempt_paid(self, event):
        checkout = awaiting_checkout(event).mark_reconciliation_required(
            reason='order write failed', receipt='NLJ7RT61SV'
        )

        assert checkout.state == CheckoutState.RECONCILIATION_REQUIRED
        assert checkout.state.is_terminal
        assert checkout.attempt.status == PaymentAttemptStatus.SUCCEEDED

    def test_build_order_copies_snapshot_customer_and_receipt(self, event):
        checkout = awaiting_checkout(event)

        order = checkout.build_order(order_id=uuid_utils.uuid7(), receipt='NLJ7RT61SV')

        assert order.checkout_id == checkout.id
        assert order.event_id == event.id
        assert order.total_amount == checkout.amount
        assert order.customer_phone == '254712345678'
        assert order.payment_status == PaymentAttemptStatus.SUCCEEDED
        assert order.external_receipt == 'NLJ7RT61SV'

    def test_build_order_requires_awaiting_state(self, event):
        with pytest.raises(ConflictError):
            open_checkout(event).build_order(order_id=uuid_utils.uuid7())

    @pytest.mark.parametrize('terminal', ['succeeded', 'reconciliation_required'])
    def test_terminal_states_reject_every_transition(self, event, terminal):
        awaiting = awaiting_checkout(event)
        checkout = (
            awaiting.mark_succeeded()
            if terminal == 'succeeded'
            else awaiting.mark_reconciliation_required(reason='order write failed')
        )

        with pytest.raises(ConflictError):
            checkout.begin_validation()
        with pytest.raises(ConflictError):
            checkout.mark_payment_failed(reason='late failure')
        with pytest.raises(ConflictError):
            checkout.mark_succeeded()


@pytest.mark.unit
class TestUnrecordedSubmission:
    def test_unrecorded_submission_keeps_reference_and_pending_attempt(self, event):
        submitting = _submitting(open_checkout(event))

        parked = submitting.mark_unrecorded_submission(
            external_reference='ws_CO_1', reason='could not be recorded'
        )

        assert parked.state == CheckoutState.RECONCILIATION_REQUIRED
        assert parked.attempt.external_reference == 'ws_CO_1'
        assert parked.attempt.is_pending
        assert parked.failure_reason == 'could not be recorded'
        with pytest.raises(ConflictError):
            parked.begin_validation()

    def test_late_result_is_attached_once(self, event):
        parked = _submitting(open_checkout(event)).mark_unrecorded_submission(
            external_reference='ws_CO_1', reason='could not be recorded'
        )

        settled = parked.record_late_result(succeeded=False, description='Cancelled by user')

        assert settled.state == CheckoutState.RECONCILIATION_REQUIRED
        assert settled.attempt.status == PaymentAttemptStatus.FAILED
        assert settled.attempt.external_reference == 'ws_CO_1'
        with pytest.raises(DomainError):
            settled.record_late_result(succeeded=True, receipt='NLJ7RT61SV')
