import logging

import pytest

from src.platform.logging.loguru_io import Logger
from src.platform.logging.loguru_io_config import access_log_level
from src.platform.logging.loguru_io_utils import (
    MAX_CONTENT_LENGTH,
    mask_sensitive,
    should_mask_keyword,
    truncate_content,
)


def _access_record(status_code: int, *, name: str = 'uvicorn.access') -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=('127.0.0.1:5000', 'POST', '/api/checkout', '1.1', status_code),
        exc_info=None,
    )


@pytest.mark.unit
class TestAccessLogLevel:
    @pytest.mark.parametrize(
        'status_code,expected',
        [(201, 'SUCCESS'), (307, 'WARNING'), (409, 'ERROR'), (502, 'CRITICAL')],
    )
    def test_level_follows_status_code(self, status_code, expected):
        assert access_log_level(_access_record(status_code)) == expected

    def test_other_loggers_keep_their_own_level(self):
        assert access_log_level(_access_record(500, name='sqlalchemy.engine')) is None


@pytest.mark.unit
class TestMasking:
    def test_credential_keyword_value_is_masked(self):
        masked = mask_sensitive("{'shortcode': '174379', 'passkey': 'bfb279f9aa9bdbcf'}")

        assert 'bfb279f9aa9bdbcf' not in masked
        assert "'shortcode': '174379'" in masked

    def test_plain_values_are_returned_untouched(self):
        data = {'checkout_id': 'abc'}

        assert mask_sensitive(data) is data

    def test_sensitive_dict_key_hides_value(self):
        assert should_mask_keyword('consumer_secret', 's3cr3t') == '********'
        assert should_mask_keyword('full_name', 'Jane Wanjiru') == 'Jane Wanjiru'

    def test_long_content_is_truncated(self):
        truncated = truncate_content('x' * (MAX_CONTENT_LENGTH + 5))

        assert truncated.endswith('...(truncated 5 chars)')


@pytest.mark.unit
class TestLoggerIO:
    @pytest.mark.asyncio
    async def test_decorated_coroutine_returns_value(self):
        @Logger.io
        async def total(*, unit_price: int, ticket_count: int) -> int:
            return unit_price * ticket_count

        assert await total(unit_price=2500, ticket_count=3) == 7500

    def test_decorated_function_reraises(self):
        @Logger.io
        def explode() -> None:
            raise RuntimeError('boom')

        with pytest.raises(RuntimeError, match='boom'):
            explode()
