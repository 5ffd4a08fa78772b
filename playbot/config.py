"""Runtime settings.

Read from the environment, a `.env` file, and optionally a `playbot.json`
file in the working directory (lowest priority), e.g.

    {"PLAYGROUND_HOST": "https://play.golang.org/compile", "BOT_NAME": "playbot", "CACHE_SIZE": 256}

The camel-case keys of older config files (GoPlaygroundHost, BotName,
DebugOn, CacheSize) are accepted as aliases.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_FILE = "playbot.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=CONFIG_FILE,
        extra="ignore",
    )

    # Slack
    SLACK_BOT_TOKEN: str = ""
    SLACK_APP_TOKEN: str = ""

    # Go Playground
    PLAYGROUND_HOST: str = Field(
        default="https://play.golang.org/compile",
        validation_alias=AliasChoices("PLAYGROUND_HOST", "GoPlaygroundHost"),
    )
    GOIMPORTS_BIN: str = "goimports"
    HTTP_TIMEOUT: float = Field(default=30.0, gt=0)

    # Bot
    BOT_NAME: str = Field(validation_alias=AliasChoices("BOT_NAME", "BotName"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "DebugOn"))
    CACHE_SIZE: int = Field(default=128, gt=0, validation_alias=AliasChoices("CACHE_SIZE", "CacheSize"))

    @field_validator("PLAYGROUND_HOST", "BOT_NAME")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be provided, check your config")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(**overrides) -> Settings:
    """Build settings; raises pydantic.ValidationError on bad config."""
    return Settings(**overrides)
