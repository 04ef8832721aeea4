from pathlib import Path

import pytest

from src.platform.config.core_setting import Settings, load_settings
from src.platform.exception.exceptions import ConfigurationError


ENV_EXAMPLE = Path(__file__).resolve().parents[2] / '.env.example'


@pytest.fixture
def without_env_file(monkeypatch):
    monkeypatch.setitem(Settings.model_config, 'env_file', None)


@pytest.mark.unit
class TestLoadSettings:
    def test_every_missing_variable_is_named(self, monkeypatch, without_env_file):
        monkeypatch.delenv('MPESA_PASSKEY', raising=False)
        monkeypatch.delenv('RESEND_API_KEY', raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        message = str(exc_info.value)
        assert 'MPESA_PASSKEY' in message
        assert 'RESEND_API_KEY' in message
        assert 'MPESA_SHORTCODE' not in message

    def test_empty_value_counts_as_missing(self, monkeypatch, without_env_file):
        monkeypatch.setenv('MPESA_CONSUMER_SECRET', '')

        with pytest.raises(ConfigurationError, match='MPESA_CONSUMER_SECRET'):
            load_settings()

    def test_card_payments_follow_stripe_key(self, monkeypatch, without_env_file):
        monkeypatch.delenv('STRIPE_SECRET_KEY', raising=False)
        assert load_settings().CARD_PAYMENTS_ENABLED is False

        monkeypatch.setenv('STRIPE_SECRET_KEY', 'sk_test_123')
        assert load_settings().CARD_PAYMENTS_ENABLED is True


@pytest.mark.unit
class TestEnvExample:
    @pytest.fixture
    def env_example(self, monkeypatch):
        monkeypatch.setitem(Settings.model_config, 'env_file', str(ENV_EXAMPLE))

    def test_only_the_real_env_file_is_read(self):
        assert Path(Settings.model_config['env_file']).name == '.env'

    def test_example_does_not_supply_the_callback_url(self, monkeypatch, env_example):
        monkeypatch.delenv('MPESA_CALLBACK_URL', raising=False)

        with pytest.raises(ConfigurationError, match='MPESA_CALLBACK_URL'):
            load_settings()

    def test_comma_separated_cors_origins_are_split(self, monkeypatch, env_example):
        monkeypatch.delenv('BACKEND_CORS_ORIGINS', raising=False)

        assert load_settings().BACKEND_CORS_ORIGINS == ['http://localhost:5173']

    def test_json_list_cors_origins_are_accepted(self, monkeypatch, without_env_file):
        monkeypatch.setenv('BACKEND_CORS_ORIGINS', '["https://a.test", "https://b.test"]')

        assert load_settings().BACKEND_CORS_ORIGINS == ['https://a.test', 'https://b.test']

    def test_malformed_cors_origins_raise_configuration_error(
        self, monkeypatch, without_env_file
    ):
        monkeypatch.setenv('BACKEND_CORS_ORIGINS', '["https://a.test"')

        with pytest.raises(ConfigurationError):
            load_settings()
