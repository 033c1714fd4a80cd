"""
Unit тесты конфигурации: feature flags и валидация окружения.
"""

import importlib

import pytest

from bot.env_validator import EnvValidator
from catalog_relay.config import FeatureConfig

VALID_TOKEN = "123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw1"


@pytest.fixture
def features_file(tmp_path):
    path = tmp_path / "features.yaml"
    path.write_text(
        "relay:\n"
        "  enabled: true\n"
        "  components:\n"
        "    change_poller: true\n"
        "    inline_search: false\n"
        "limits:\n"
        "  search_results_per_table: 3\n",
        encoding="utf-8"
    )
    return path


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        'BOT_TOKEN', 'TELEGRAM_BOT_TOKEN', 'SEND_SECRET', 'DATABASE_URL', 'SENTRY_DSN',
        'POLL_INTERVAL', 'POLL_BATCH_SIZE', 'HEALTH_CHECK_PORT',
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.mark.unit
class TestFeatureConfig:

    def test_components(self, features_file):
        config = FeatureConfig(features_file)

        assert config.is_relay_enabled
        assert config.is_component_enabled('change_poller')
        assert not config.is_component_enabled('inline_search')
        assert not config.is_component_enabled('unknown')

    def test_limits(self, features_file):
        config = FeatureConfig(features_file)

        assert config.get_limit('search_results_per_table', 5) == 3
        assert config.get_limit('inline_cache_time', 1) == 1

    def test_disabled_relay_disables_components(self, tmp_path):
        path = tmp_path / "features.yaml"
        path.write_text("relay:\n  enabled: false\n  components:\n    change_poller: true\n", encoding="utf-8")

        assert not FeatureConfig(path).is_component_enabled('change_poller')

    def test_missing_file(self, tmp_path):
        config = FeatureConfig(tmp_path / "absent.yaml")

        assert not config.is_relay_enabled
        assert config.get_limit('search_results_per_table', 5) == 5


@pytest.mark.unit
class TestEnvValidator:

    def test_valid_environment(self, clean_env):
        clean_env.setenv('BOT_TOKEN', VALID_TOKEN)
        clean_env.setenv('SEND_SECRET', 'a-long-enough-secret-value')

        result = EnvValidator.validate_all()

        assert result['valid'] is True
        assert result['errors'] == []

    def test_missing_required(self, clean_env):
        result = EnvValidator.validate_all()

        assert result['valid'] is False
        assert len(result['errors']) == 2

    def test_legacy_token_variable(self, clean_env):
        clean_env.setenv('TELEGRAM_BOT_TOKEN', VALID_TOKEN)
        clean_env.setenv('SEND_SECRET', 'a-long-enough-secret-value')

        assert EnvValidator.validate_all()['valid'] is True

    def test_short_secret_is_a_warning(self, clean_env):
        clean_env.setenv('BOT_TOKEN', VALID_TOKEN)
        clean_env.setenv('SEND_SECRET', 's3cr3t')

        result = EnvValidator.validate_all()

        assert result['valid'] is True
        assert any('SEND_SECRET' in warning for warning in result['warnings'])

    def test_bad_poll_interval(self, clean_env):
        clean_env.setenv('BOT_TOKEN', VALID_TOKEN)
        clean_env.setenv('SEND_SECRET', 'a-long-enough-secret-value')
        clean_env.setenv('POLL_INTERVAL', '0')

        assert EnvValidator.validate_all()['valid'] is False

    def test_strict_mode_requires_recommended(self, clean_env):
        clean_env.setenv('BOT_TOKEN', VALID_TOKEN)
        clean_env.setenv('SEND_SECRET', 'a-long-enough-secret-value')

        assert EnvValidator.validate_all(strict=True)['valid'] is False

    @pytest.mark.parametrize("url,valid", [
        ("postgresql://user:pass@db:5432/catalog", True),
        ("postgres://user:pass@db/catalog", True),
        ("sqlite+aiosqlite:///catalog.db", True),
        ("mysql://user:pass@db/catalog", False),
        ("postgresql://db/catalog", False),
    ])
    def test_database_url(self, url, valid):
        assert EnvValidator.validate_database_url(url)[0] is valid

    @pytest.mark.parametrize("token,valid", [
        (VALID_TOKEN, True),
        ("no-colon", False),
        ("abc:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw1", False),
        ("123:short", False),
    ])
    def test_bot_token(self, token, valid):
        assert EnvValidator.validate_bot_token(token)[0] is valid


@pytest.mark.unit
class TestBotConfig:

    @pytest.fixture
    def bot_config(self, monkeypatch):
        from bot.config import BotConfig

        monkeypatch.setattr(BotConfig, 'BOT_TOKEN', VALID_TOKEN)
        monkeypatch.setattr(BotConfig, 'SEND_SECRET', 'a-long-enough-secret-value')
        for name in BotConfig.INT_SETTINGS:
            monkeypatch.setattr(BotConfig, name, getattr(BotConfig, name))
        return BotConfig

    def test_bad_integer_does_not_break_import(self, clean_env):
        import bot.config

        clean_env.setenv('POLL_INTERVAL', 'often')
        try:
            module = importlib.reload(bot.config)
            assert module.BotConfig.POLL_INTERVAL == 'often'
        finally:
            clean_env.delenv('POLL_INTERVAL', raising=False)
            importlib.reload(bot.config)

    def test_validate_converts_numbers(self, bot_config):
        bot_config.POLL_INTERVAL = '30'

        assert bot_config.validate() is True
        assert bot_config.POLL_INTERVAL == 30
        assert isinstance(bot_config.HEALTH_CHECK_PORT, int)

    @pytest.mark.parametrize("value", ['often', '0', '-5'])
    def test_validate_rejects_bad_interval(self, bot_config, value):
        bot_config.POLL_INTERVAL = value

        with pytest.raises(ValueError, match='POLL_INTERVAL'):
            bot_config.validate()
