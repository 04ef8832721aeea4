"""
Test Configuration and Fixtures

This module provides:
- Environment setup before any application module is imported
- A throwaway SQLite database (aiosqlite) for repository tests
- Shared domain fixtures (event snapshot, customer details)

Architecture:
- Unit tests (test/**/unit/): pure, collaborators replaced by AsyncMock
- Integration tests (test/**/integration/): real repositories on SQLite
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are loaded at import time (src.platform.config.core_setting)
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    os.environ.setdefault('MPESA_SHORTCODE', '174379')
    os.environ.setdefault('MPESA_PASSKEY', 'test-passkey')
    os.environ.setdefault('MPESA_CONSUMER_KEY', 'test-consumer-key')
    os.environ.setdefault('MPESA_CONSUMER_SECRET', 'test-consumer-secret')
    os.environ.setdefault('MPESA_CALLBACK_URL', 'https://example.test/api/payment/mpesa/callback')
    os.environ.setdefault('RESEND_API_KEY', 're_test_key')
    os.environ.setdefault('POSTGRES_DB', 'ticket_checkout_test_db')

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)


# Call immediately to set env vars before any imports
_early_setup_test_environment()

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402

from src.platform.database.orm_db_setting import Database, create_db_and_tables  # noqa: E402
from src.service.checkout.domain.value_object.event_snapshot import EventSnapshot  # noqa: E402
from src.service.checkout.driven_adapter import model  # noqa: E402, F401


@pytest.fixture
def event() -> EventSnapshot:
    return EventSnapshot(
        id='evt-42',
        name='Nairobi Jazz Night',
        date='Sat, 14 Dec 2024',
        location='KICC, Nairobi',
        unit_price=2500,
    )


@pytest.fixture
def customer_details() -> dict[str, str]:
    return {
        'full_name': 'Wanjiku Kamau',
        'phone': '0712345678',
        'email': 'wanjiku@example.com',
    }


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """File-backed SQLite database with the full schema, one per test."""
    db = Database(database_url=f'sqlite+aiosqlite:///{tmp_path / "checkout.db"}')
    await create_db_and_tables(db.engine)
    yield db
    await db.dispose()
