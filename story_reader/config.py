"""Client settings read from the environment (and an optional .env file)."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, Field

DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_API_VERSION = "/api/v1"
DEFAULT_TIMEOUT = 60.0


def _env(name: str, var: str):
    # Accept both the field name and the variable, so validation errors
    # report the variable that held the bad value.
    return AliasChoices(name, var)


class Settings(BaseModel):
    api_base: str = Field(DEFAULT_API_URL, validation_alias=_env("api_base", "STORY_API_URL"))
    api_version: str = Field(
        DEFAULT_API_VERSION, validation_alias=_env("api_version", "STORY_API_VERSION")
    )
    timeout: float = Field(
        DEFAULT_TIMEOUT, gt=0, validation_alias=_env("timeout", "STORY_API_TIMEOUT")
    )
    token: str = Field("", validation_alias=_env("token", "STORY_API_TOKEN"))

    @property
    def api_url(self) -> str:
        """Base URL plus version prefix, e.g. http://localhost:8080/api/v1."""
        return f"{self.api_base.rstrip('/')}/{self.api_version.strip('/')}"


ENV_VARS = ("STORY_API_URL", "STORY_API_VERSION", "STORY_API_TIMEOUT", "STORY_API_TOKEN")


def load_settings(env_file: Path | None = None) -> Settings:
    """Load .env (if present) and build Settings from STORY_API_* variables.

    Variables already set in the environment win over the .env file.
    Raises pydantic.ValidationError naming the variable on a bad value.
    """
    load_dotenv(env_file or Path.cwd() / ".env")
    return Settings.model_validate(
        {var: os.environ[var] for var in ENV_VARS if var in os.environ}
    )
