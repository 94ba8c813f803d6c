"""Process-wide settings for Tickertape.

Settings are read once at startup from the environment (after loading a
``.env`` file with python-dotenv) and passed explicitly from there on; no
other module reads the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from tickertape.exceptions import ConfigError

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_FAST_MODEL = "gpt-4o-mini"
DEFAULT_CONTEXT_DB = ".tickertape/context.db"
DEFAULT_MAX_ITERATIONS = 10


class Settings(BaseModel):
    """Read-only settings built at startup."""

    model_config = {"frozen": True}

    openai_api_key: str = ""
    openai_base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    fast_model: str = DEFAULT_FAST_MODEL
    alpha_vantage_api_key: str = ""
    tavily_api_key: str = ""
    context_db: str = DEFAULT_CONTEXT_DB
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=0)

    @classmethod
    def from_env(
        cls,
        env_file: str | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> Settings:
        """Build settings from the environment.

        Args:
            env_file: ``.env`` file to load first. When None, python-dotenv
                searches for one from the current directory upward. Values
                already in the environment are not overridden.
            environ: Mapping to read instead of ``os.environ`` (skips
                ``.env`` loading).

        Raises:
            ConfigError: If a value cannot be parsed (e.g. a non-numeric
                ``TICKERTAPE_MAX_ITERATIONS``).
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ

        values: dict[str, str] = {}
        for field_name, names in _ENV_VARS.items():
            for name in names:
                value = environ.get(name)
                if value:
                    values[field_name] = value
                    break

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

    @property
    def has_llm(self) -> bool:
        return bool(self.openai_api_key)


# field -> environment variables, first set one wins
_ENV_VARS: dict[str, tuple[str, ...]] = {
    "openai_api_key": ("OPENAI_API_KEY",),
    "openai_base_url": ("OPENAI_BASE_URL",),
    "model": ("TICKERTAPE_MODEL",),
    "fast_model": ("TICKERTAPE_FAST_MODEL",),
    "alpha_vantage_api_key": ("ALPHAVANTAGE_API_KEY", "ALPHA_VANTAGE_API_KEY"),
    "tavily_api_key": ("TAVILY_API_KEY",),
    "context_db": ("TICKERTAPE_DB",),
    "max_iterations": ("TICKERTAPE_MAX_ITERATIONS",),
}
