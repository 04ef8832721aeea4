from pydantic import BaseModel


class MpesaCallbackAck(BaseModel):
    """Daraja only checks that the callback was received; the body is informational."""

    ResultCode: int = 0
    ResultDesc: str = 'Accepted'


class StripeWebhookAck(BaseModel):
    received: bool = True
