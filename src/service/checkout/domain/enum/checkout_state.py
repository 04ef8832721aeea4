from enum import StrEnum


class CheckoutState(StrEnum):
    IDLE = 'idle'
    VALIDATING = 'validating'
    SUBMITTING = 'submitting'
    AWAITING_CONFIRMATION = 'awaiting_confirmation'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    RECONCILIATION_REQUIRED = 'reconciliation_required'

    @property
    def accepts_submission(self) -> bool:
        return self in (CheckoutState.IDLE, CheckoutState.FAILED)

    @property
    def is_in_flight(self) -> bool:
        return self in (
            CheckoutState.VALIDATING,
            CheckoutState.SUBMITTING,
            CheckoutState.AWAITING_CONFIRMATION,
        )

    @property
    def is_terminal(self) -> bool:
        return self in (CheckoutState.SUCCEEDED, CheckoutState.RECONCILIATION_REQUIRED)
