"""
Tests for Settings loading.
"""

import logging
from unittest.mock import patch

import pytest

from asset_sync.config import (
    DEFAULT_MLE_API_URL,
    Settings,
    get_settings,
    reset_settings_cache,
)


class TestFromParams:

    def test_defaults(self):
        settings = Settings.from_params({})

        assert settings.port == 8000
        assert settings.mle_api_url == DEFAULT_MLE_API_URL
        assert settings.mle_api_version == "v1"
        assert settings.oauth_scope == "api:write"
        assert settings.log_level == "info"
        assert settings.sync_max_retries == 0
        assert settings.sync_unmatched_events == "create"
        assert settings.signature_required is False

    def test_reads_upper_case_names_and_coerces_types(self):
        settings = Settings.from_params({
            "PORT": "9000",
            "AEM_WEBHOOK_SECRET": "s3cret",
            "SYNC_TIMEOUT_SECONDS": "5",
            "SYNC_MAX_RETRIES": "3",
        })

        assert settings.port == 9000
        assert settings.aem_webhook_secret == "s3cret"
        assert settings.signature_required is True
        assert settings.sync_timeout_seconds == 5.0
        assert settings.sync_max_retries == 3

    def test_empty_values_fall_back_to_defaults(self):
        settings = Settings.from_params({"MLE_API_URL": "", "LOG_LEVEL": None})

        assert settings.mle_api_url == DEFAULT_MLE_API_URL
        assert settings.log_level == "info"

    def test_unrelated_keys_ignored(self):
        settings = Settings.from_params({"type": "x", "data": {}, "HOME": "/root"})
        assert settings.port == 8000


class TestLogLevel:

    @pytest.mark.parametrize("name,expected", [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        ("warning", logging.WARNING),
        ("error", logging.ERROR),
        ("chatty", logging.INFO),
    ])
    def test_log_level_value(self, name, expected):
        assert Settings(log_level=name).log_level_value == expected


class TestMissingRequired:

    def test_all_missing_by_default(self):
        assert Settings().missing_required() == [
            "OAUTH_CLIENT_ID",
            "OAUTH_CLIENT_SECRET",
            "OAUTH_TOKEN_URL",
        ]

    def test_empty_mle_url_reported(self):
        settings = Settings(
            mle_api_url="",
            oauth_client_id="id",
            oauth_client_secret="secret",
            oauth_token_url="https://auth",
        )
        assert settings.missing_required() == ["MLE_API_URL"]

    def test_nothing_missing(self):
        settings = Settings(
            oauth_client_id="id",
            oauth_client_secret="secret",
            oauth_token_url="https://auth",
        )
        assert settings.missing_required() == []


class TestSummary:

    def test_summary_omits_secrets(self):
        settings = Settings(aem_webhook_secret="s3cret", oauth_client_secret="hunter2")
        summary = settings.summary()

        assert summary["webhook_secret_configured"] is True
        assert "s3cret" not in str(summary)
        assert "hunter2" not in str(summary)


class TestGetSettings:

    def test_cached_until_reset(self):
        reset_settings_cache()
        with patch.dict("os.environ", {"MLE_API_VERSION": "v7"}):
            first = get_settings()
            assert first.mle_api_version == "v7"
            assert get_settings() is first

        with patch.dict("os.environ", {"MLE_API_VERSION": "v8"}):
            assert get_settings().mle_api_version == "v7"
            reset_settings_cache()
            assert get_settings().mle_api_version == "v8"

        reset_settings_cache()
