"""Tests for Settings validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from listing_importer.config.settings import DEFAULT_INTERNAL_TOKEN, Settings


class TestInternalToken:
    def test_production_rejects_default_token(self) -> None:
        with pytest.raises(ValidationError, match="INTERNAL_API_TOKEN"):
            Settings(
                _env_file=None,
                environment="production",
                internal_api_token=DEFAULT_INTERNAL_TOKEN,
            )

    def test_production_accepts_explicit_token(self) -> None:
        settings = Settings(_env_file=None, environment="production", internal_api_token="s3cret")

        assert settings.internal_api_token == "s3cret"
        assert settings.trust_cron_header is True

    def test_development_keeps_default_token(self) -> None:
        settings = Settings(
            _env_file=None, environment="development", internal_api_token=DEFAULT_INTERNAL_TOKEN
        )

        assert settings.internal_api_token == DEFAULT_INTERNAL_TOKEN


class TestCascadeMode:
    def test_local_mode_is_accepted(self) -> None:
        assert Settings(_env_file=None, cascade_mode="local").cascade_mode == "local"

    def test_unknown_mode_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cascade_mode="carrier-pigeon")
