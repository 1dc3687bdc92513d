"""Configuration management for botrelay."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from botrelay.errors import ConfigurationError

DEFAULT_EXIT_PHRASES = "exit,quit,goodbye,leave"
DEFAULT_WELCOME_BACK = "Welcome back to QnABot."


class Settings(BaseSettings):
    """Per-deployment settings, passed explicitly to every component."""

    model_config = SettingsConfigDict(
        env_prefix="BOTRELAY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # SMS idle reminder
    sms_hint_reminder_enable: bool = Field(default=False, description="Append a reminder to SMS answers")
    sms_hint_reminder_interval_hrs: int = Field(default=24, ge=0, description="Idle hours before the reminder")
    sms_hint_reminder: str = Field(default="", description="Reminder text")

    # Voice interruption
    connect_enable_voice_response_interrupt: bool = Field(default=False)
    connect_next_prompt_varname: str = Field(default="nextPrompt")

    # Delegate routing
    bot_router_welcome_back_msg: str = Field(default=DEFAULT_WELCOME_BACK)
    bot_router_exit_msgs: str = Field(default=DEFAULT_EXIT_PHRASES)
    bot_name_aliases: dict[str, str] = Field(default_factory=dict)
    function_endpoint: str = Field(default="http://localhost:9001")
    dialog_runtime_endpoint: str = Field(default="http://localhost:9002")
    transport_api_key: str | None = Field(default=None)
    delegate_timeout_seconds: float = Field(default=10.0, gt=0)

    # Translation
    enable_multi_language_support: bool = Field(default=False)
    translation_source_language: str = Field(default="en")

    # Hooks
    log_hook_function: str | None = Field(default=None, description="Remote audit function name")
    response_hook_function: str | None = Field(default=None, description="Remote rewrite function name")
    hook_timeout_seconds: float = Field(default=10.0, gt=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_profile: Literal["default", "json"] = Field(default="default")

    @property
    def exit_phrases(self) -> frozenset[str]:
        phrases = (entry.strip().lower() for entry in self.bot_router_exit_msgs.split(","))
        return frozenset(phrase for phrase in phrases if phrase)

    @classmethod
    def from_deployment(cls, values: Mapping[str, Any], *, base: Settings | None = None) -> Settings:
        """Build settings from the string-keyed deployment map carried on a turn.

        Keys are matched case-insensitively against field names, so the
        upper-case deployment names (``SMS_HINT_REMINDER_ENABLE``) work as-is.
        Unknown keys are ignored. Values override ``base`` when given.
        """

        data: dict[str, Any] = base.model_dump() if base is not None else {}
        for key, value in values.items():
            name = str(key).lower()
            if name in cls.model_fields and value is not None:
                data[name] = value
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid deployment settings: {exc}") from exc


def get_settings(**overrides: Any) -> Settings:
    """Load settings from the environment (and ``.env``)."""

    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid settings: {exc}") from exc
