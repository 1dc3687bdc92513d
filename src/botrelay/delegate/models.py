"""Delegate references and the shared request/reply shapes of both transports."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from botrelay.turn import ALT_MESSAGES_KEY, APP_CONTEXT_KEY

FUNCTION_PREFIX = "lambda::"
MAX_USER_ID_LENGTH = 100
END_ROUTING_ATTRIBUTE = "QNABOT_END_ROUTING"


@dataclass(frozen=True)
class DelegateRef:
    """Where a delegate lives: a plain function, or a bot behind an alias."""

    kind: Literal["function", "bot"]
    name: str
    alias: str | None = None

    @classmethod
    def parse(cls, bot: str, alias: str | None = None, aliases: Mapping[str, str] | None = None) -> DelegateRef:
        if bot.lower().startswith(FUNCTION_PREFIX):
            return cls(kind="function", name=bot.split("::", 1)[1])
        mapped = (aliases or {}).get(bot) or bot
        return cls(kind="bot", name=mapped, alias=alias)


@dataclass(frozen=True)
class DelegateRequest:
    input_text: str
    session_attributes: dict[str, Any] = field(default_factory=dict)
    user_id: str = "nouser"

    def __post_init__(self) -> None:
        object.__setattr__(self, "user_id", self.user_id[:MAX_USER_ID_LENGTH])


class DelegateReply(BaseModel):
    """Reply from either transport, validated at the boundary."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message: str | None = None
    message_format: str | None = Field(default=None, alias="messageFormat")
    session_attributes: dict[str, Any] = Field(default_factory=dict, alias="sessionAttributes")

    @field_validator("session_attributes", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def alt_messages(self) -> dict[str, Any] | None:
        """Alternate renderings the delegate attached in its ``appContext`` attribute."""

        raw = self.session_attributes.get(APP_CONTEXT_KEY)
        if raw is None:
            return None
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                return None
        if not isinstance(raw, Mapping):
            return None
        alt = raw.get(ALT_MESSAGES_KEY)
        return dict(alt) if isinstance(alt, Mapping) else None

    @property
    def end_routing_requested(self) -> bool:
        # any non-empty value counts, including the text "false"
        return bool(self.session_attributes.get(END_ROUTING_ATTRIBUTE))
