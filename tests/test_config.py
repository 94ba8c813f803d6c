"""Tests for Settings loading from the environment and .env files."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tickertape.config import (
    DEFAULT_CONTEXT_DB,
    DEFAULT_FAST_MODEL,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MODEL,
    Settings,
    _ENV_VARS,
)
from tickertape.exceptions import ConfigError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for names in _ENV_VARS.values():
        for name in names:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestFromMapping:
    def test_defaults(self) -> None:
        settings = Settings.from_env(environ={})
        assert settings.model == DEFAULT_MODEL
        assert settings.fast_model == DEFAULT_FAST_MODEL
        assert settings.context_db == DEFAULT_CONTEXT_DB
        assert settings.max_iterations == DEFAULT_MAX_ITERATIONS
        assert not settings.has_llm
        assert settings.alpha_vantage_api_key == ""

    def test_reads_variables(self) -> None:
        settings = Settings.from_env(environ={
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_BASE_URL": "http://localhost:8000/v1",
            "TICKERTAPE_MODEL": "gpt-4.1",
            "TICKERTAPE_FAST_MODEL": "gpt-4.1-mini",
            "TAVILY_API_KEY": "tv",
            "TICKERTAPE_DB": "/tmp/ctx.db",
            "TICKERTAPE_MAX_ITERATIONS": "4",
        })
        assert settings.has_llm
        assert settings.openai_base_url == "http://localhost:8000/v1"
        assert settings.model == "gpt-4.1"
        assert settings.fast_model == "gpt-4.1-mini"
        assert settings.tavily_api_key == "tv"
        assert settings.context_db == "/tmp/ctx.db"
        assert settings.max_iterations == 4

    @pytest.mark.parametrize("name", ["ALPHAVANTAGE_API_KEY", "ALPHA_VANTAGE_API_KEY"])
    def test_alpha_vantage_aliases(self, name: str) -> None:
        assert Settings.from_env(environ={name: "av"}).alpha_vantage_api_key == "av"

    def test_first_alias_wins(self) -> None:
        settings = Settings.from_env(
            environ={"ALPHAVANTAGE_API_KEY": "first", "ALPHA_VANTAGE_API_KEY": "second"}
        )
        assert settings.alpha_vantage_api_key == "first"

    def test_empty_values_ignored(self) -> None:
        settings = Settings.from_env(environ={"TICKERTAPE_MODEL": ""})
        assert settings.model == DEFAULT_MODEL

    @pytest.mark.parametrize("value", ["many", "-1"])
    def test_invalid_max_iterations(self, value: str) -> None:
        with pytest.raises(ConfigError, match="Invalid configuration"):
            Settings.from_env(environ={"TICKERTAPE_MAX_ITERATIONS": value})

    def test_frozen(self) -> None:
        settings = Settings.from_env(environ={})
        with pytest.raises(ValidationError):
            settings.model = "other"  # type: ignore[misc]

    def test_model_copy_override(self) -> None:
        settings = Settings.from_env(environ={}).model_copy(update={"model": "o3"})
        assert settings.model == "o3"


class TestEnvFile:
    def test_loads_env_file(self, clean_env) -> None:
        env = clean_env / "custom.env"
        env.write_text("OPENAI_API_KEY=sk-file\nTICKERTAPE_MODEL=gpt-4.1\n")
        settings = Settings.from_env(str(env))
        assert settings.openai_api_key == "sk-file"
        assert settings.model == "gpt-4.1"

    def test_environment_wins_over_file(self, clean_env, monkeypatch) -> None:
        env = clean_env / "custom.env"
        env.write_text("TICKERTAPE_MODEL=from-file\n")
        monkeypatch.setenv("TICKERTAPE_MODEL", "from-env")
        assert Settings.from_env(str(env)).model == "from-env"
