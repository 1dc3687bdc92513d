"""Typed turn records and session-attribute accessors."""

from __future__ import annotations

import json
from collections import UserDict
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

DELEGATE_KEY = "specialtyBot"
DELEGATE_NAME_KEY = "specialtyBotName"
DELEGATE_ALIAS_KEY = "specialtyBotAlias"
DELEGATE_SESSION_KEY = "specialtySessionAttributes"
DELEGATION_KEYS = (DELEGATE_KEY, DELEGATE_NAME_KEY, DELEGATE_ALIAS_KEY, DELEGATE_SESSION_KEY)

APP_CONTEXT_KEY = "appContext"
ALT_MESSAGES_KEY = "altMessages"
USER_LOCALE_KEY = "userLocale"
PREVIOUS_KEY = "previous"

ANSWER_CONTEXT_NAMESPACE = "qnabotcontext"
ANSWER_CONTEXT_SOURCE = "kendra"
ANSWER_CONTEXT_RESPONSIBLE_KEY = "kendraResponsibleQid"


class ResponseType(StrEnum):
    PLAIN_TEXT = "PlainText"
    SSML = "SSML"


def parse_text_value(value: Any) -> Any:
    """Read back a value that may have been serialized to JSON text."""

    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class DelegationState:
    """Delegate bot ownership stored in session attributes."""

    bot: str
    name: str | None
    alias: str | None
    session_attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AnswerContext:
    """Secondary answer-source context tied to the result that produced it."""

    responsible_result_id: str | None
    values: dict[str, Any]


class SessionAttributes(UserDict[str, Any]):
    """Flat session mapping with namespace-aware accessors.

    Nested namespaces (``appContext``, ``qnabotcontext``, delegate session
    attributes) may be held either as mappings or as their JSON text form,
    depending on whether the mapping has been normalized yet.
    """

    def namespace(self, key: str) -> dict[str, Any]:
        value = parse_text_value(self.data.get(key))
        return dict(value) if isinstance(value, Mapping) else {}

    # delegation

    @property
    def is_delegated(self) -> bool:
        return bool(self.data.get(DELEGATE_KEY))

    def delegation(self) -> DelegationState | None:
        if not self.is_delegated:
            return None
        stored = parse_text_value(self.data.get(DELEGATE_SESSION_KEY))
        return DelegationState(
            bot=str(self.data[DELEGATE_KEY]),
            name=_optional_text(self.data.get(DELEGATE_NAME_KEY)),
            alias=_optional_text(self.data.get(DELEGATE_ALIAS_KEY)),
            session_attributes=dict(stored) if isinstance(stored, Mapping) else {},
        )

    def set_delegate_session_attributes(self, attributes: Mapping[str, Any]) -> None:
        self.data[DELEGATE_SESSION_KEY] = dict(attributes)

    def clear_delegation_state(self) -> None:
        """Drop every delegation key as one unit."""

        for key in DELEGATION_KEYS:
            self.data.pop(key, None)

    # alternate message renderings

    def alt_messages(self) -> dict[str, Any]:
        alt = self.namespace(APP_CONTEXT_KEY).get(ALT_MESSAGES_KEY)
        return dict(alt) if isinstance(alt, Mapping) else {}

    def set_alt_messages(self, alt_messages: Mapping[str, Any]) -> None:
        app_context = self.namespace(APP_CONTEXT_KEY)
        app_context[ALT_MESSAGES_KEY] = dict(alt_messages)
        self.data[APP_CONTEXT_KEY] = app_context

    # answer context

    def answer_context(self) -> AnswerContext | None:
        source = self.namespace(ANSWER_CONTEXT_NAMESPACE).get(ANSWER_CONTEXT_SOURCE)
        if not isinstance(source, Mapping) or not source:
            return None
        return AnswerContext(
            responsible_result_id=_optional_text(source.get(ANSWER_CONTEXT_RESPONSIBLE_KEY)),
            values=dict(source),
        )

    def clear_answer_context(self) -> None:
        """Remove the whole secondary answer-source context, keeping its namespace text-encoded if it was."""

        raw = self.data.get(ANSWER_CONTEXT_NAMESPACE)
        if raw is None:
            return
        namespace = self.namespace(ANSWER_CONTEXT_NAMESPACE)
        namespace.pop(ANSWER_CONTEXT_SOURCE, None)
        if isinstance(raw, str):
            self.data[ANSWER_CONTEXT_NAMESPACE] = json.dumps(namespace, separators=(",", ":"), ensure_ascii=False)
        else:
            self.data[ANSWER_CONTEXT_NAMESPACE] = namespace

    # misc

    @property
    def user_locale(self) -> str | None:
        return _optional_text(self.data.get(USER_LOCALE_KEY))

    def previous_result_id(self) -> str | None:
        return _optional_text(self.namespace(PREVIOUS_KEY).get("qid"))


@dataclass(frozen=True)
class CardButton:
    text: str
    value: str


@dataclass
class Card:
    title: str
    buttons: list[CardButton] = field(default_factory=list)
    subtitle: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class TurnRequest:
    """One inbound turn. Fields are read-only; ``session`` is the prior turn's attributes."""

    question: str
    session: SessionAttributes = field(default_factory=SessionAttributes)
    channel_family: str = "LEX"
    client_type: str | None = None
    channel_type: str | None = None
    settings: Mapping[str, Any] = field(default_factory=dict)
    user_id: str = "nouser"
    time_since_last_interaction_ms: float | None = None
    preferred_response_type: ResponseType | None = None
    turn_id: str = "-"


@dataclass
class TurnResponse:
    """The response under construction for one turn."""

    message: str = ""
    plain_message: str | None = None
    type: ResponseType = ResponseType.PLAIN_TEXT
    message_format: str | None = None
    card: Card | None = None
    result_id: str | None = None
    session: SessionAttributes = field(default_factory=SessionAttributes)
    payload: dict[str, Any] | None = None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None
