import pytest

from src.platform.observability.tracing import outbound_provider


@pytest.mark.unit
@pytest.mark.parametrize(
    'host,provider',
    [
        ('sandbox.safaricom.co.ke', 'mpesa'),
        ('api.safaricom.co.ke', 'mpesa'),
        ('api.resend.com', 'resend'),
        ('notsafaricom.co.ke', 'other'),
        ('localhost', 'other'),
    ],
)
def test_outbound_provider_from_host(host, provider):
    assert outbound_provider(host) == provider
