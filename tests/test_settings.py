# tests/test_settings.py

import pytest

from common.config.settings import EquityFallback, IngestionMode, PipelineSettings, load_settings

ENV_NAMES = [
    "DATABASE_URL", "REDIS_URL", "INGESTION_MODE", "POLYGON_API_KEY", "COINGECKO_API_KEY",
    "EQUITY_FALLBACK_PROVIDER", "PROVIDER_REQUEST_TIMEOUT_SECONDS", "INGESTION_BATCH_SIZE",
    "INGESTION_BATCH_DELAY_SECONDS", "ACTIVE_SYMBOL_LIMIT", "MAX_LOOKBACK_YEARS", "SCHEDULER_TIMEZONE",
    "DAILY_HISTORICAL_CRON", "FULL_HISTORICAL_CRON", "HOURLY_CRON", "LATEST_PRICE_CRON",
    "LOG_LEVEL", "LOG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_without_keys_use_synthetic_data():
    settings = PipelineSettings.from_env()
    assert settings.ingestion_mode == IngestionMode.LIVE
    assert settings.equity_fallback == EquityFallback.YAHOO
    assert settings.use_synthetic_data
    assert settings.cron_overrides == {}


def test_live_mode_with_key(clean_env):
    clean_env.setenv("POLYGON_API_KEY", "pk")
    clean_env.setenv("EQUITY_FALLBACK_PROVIDER", "none")
    settings = PipelineSettings.from_env()
    assert not settings.use_synthetic_data
    assert settings.equity_fallback == EquityFallback.NONE


def test_synthetic_mode_overrides_key(clean_env):
    clean_env.setenv("POLYGON_API_KEY", "pk")
    clean_env.setenv("INGESTION_MODE", "Synthetic")
    assert PipelineSettings.from_env().use_synthetic_data


def test_invalid_numbers_fall_back_to_defaults(clean_env):
    clean_env.setenv("INGESTION_BATCH_SIZE", "lots")
    clean_env.setenv("INGESTION_BATCH_DELAY_SECONDS", "-3")
    clean_env.setenv("ACTIVE_SYMBOL_LIMIT", "0")
    settings = PipelineSettings.from_env()
    assert settings.batch_size == 50
    assert settings.batch_delay_seconds == 0.0
    assert settings.active_symbol_limit == 1


def test_cron_overrides_and_logging(clean_env):
    clean_env.setenv("HOURLY_CRON", "*/5 9-16 * * mon-fri")
    clean_env.setenv("LOG_LEVEL", "debug")
    settings = PipelineSettings.from_env()
    assert settings.cron_overrides == {"hourly": "*/5 9-16 * * mon-fri"}
    assert settings.log_level == "DEBUG"


def test_load_settings_reads_env_file(tmp_path, clean_env):
    # load_dotenv 가 os.environ 에 직접 쓰므로 테스트 종료 시 지워지도록 등록해 둡니다.
    for name in ("DATABASE_URL", "INGESTION_MODE"):
        clean_env.setenv(name, "placeholder")
        clean_env.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("DATABASE_URL=sqlite:///market.db\nINGESTION_MODE=synthetic\n")
    settings = load_settings(str(env_file))
    assert settings.database_url == "sqlite:///market.db"
    assert settings.ingestion_mode == IngestionMode.SYNTHETIC
