"""Utilities for converting raw turn events to and from typed records."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from botrelay.turn import Card, CardButton, ResponseType, SessionAttributes, TurnRequest, TurnResponse

CHANNEL_TYPE_ATTRIBUTE = "x-amz-lex:channel-type"


def field_of(message: Any, key: str, default: Any = None) -> Any:
    """Read a field from mapping-like or attribute-based messages."""

    if isinstance(message, Mapping):
        return message.get(key, default)
    return getattr(message, key, default)


def path_of(message: Any, *keys: str, default: Any = None) -> Any:
    """Walk nested fields, returning ``default`` at the first missing hop."""

    current = message
    for key in keys:
        current = field_of(current, key)
        if current is None:
            return default
    return current


def request_from_event(event: Mapping[str, Any]) -> TurnRequest:
    """Build a request record from the wire-level request mapping."""

    elapsed = path_of(event, "_userInfo", "TimeSinceLastInteraction")
    preferred = field_of(event, "_preferredResponseType")
    return TurnRequest(
        question=str(field_of(event, "question", "") or ""),
        session=SessionAttributes(_mapping(field_of(event, "session"))),
        channel_family=str(field_of(event, "_type", "LEX")).upper(),
        client_type=field_of(event, "_clientType"),
        channel_type=path_of(event, "_event", "requestAttributes", CHANNEL_TYPE_ATTRIBUTE),
        settings=_mapping(field_of(event, "_settings")),
        user_id=str(path_of(event, "_userInfo", "UserId", default="nouser")),
        time_since_last_interaction_ms=float(elapsed) if elapsed is not None else None,
        preferred_response_type=_response_type(preferred) if preferred else None,
        turn_id=str(field_of(event, "turn_id", "-")),
    )


def response_from_payload(payload: Mapping[str, Any]) -> TurnResponse:
    """Build a response record from the wire-level response mapping."""

    card = field_of(payload, "card")
    return TurnResponse(
        message=str(field_of(payload, "message", "") or ""),
        plain_message=field_of(payload, "plainMessage"),
        type=_response_type(field_of(payload, "type", ResponseType.PLAIN_TEXT)),
        message_format=field_of(payload, "messageFormat"),
        card=card_from_payload(card) if isinstance(card, Mapping) else None,
        result_id=_result_id(field_of(payload, "result")),
        session=SessionAttributes(_mapping(field_of(payload, "session"))),
        payload=field_of(payload, "out"),
    )


def card_from_payload(card: Mapping[str, Any]) -> Card:
    buttons = [
        CardButton(text=str(field_of(button, "text", "")), value=str(field_of(button, "value", "")))
        for button in field_of(card, "buttons") or []
    ]
    return Card(
        title=str(field_of(card, "title", "")),
        buttons=buttons,
        subtitle=field_of(card, "subTitle"),
        image_url=field_of(card, "imageUrl"),
    )


def response_to_payload(response: TurnResponse) -> dict[str, Any]:
    """Render a response record in its wire-level shape."""

    payload: dict[str, Any] = {
        "message": response.message,
        "type": str(response.type),
        "session": dict(response.session),
    }
    if response.plain_message is not None:
        payload["plainMessage"] = response.plain_message
    if response.message_format is not None:
        payload["messageFormat"] = response.message_format
    if response.card is not None:
        payload["card"] = card_to_payload(response.card)
    if response.result_id is not None:
        payload["result"] = {"qid": response.result_id}
    if response.payload is not None:
        payload["out"] = response.payload
    return payload


def card_to_payload(card: Card) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": card.title,
        "buttons": [{"text": button.text, "value": button.value} for button in card.buttons],
    }
    if card.subtitle is not None:
        payload["subTitle"] = card.subtitle
    if card.image_url is not None:
        payload["imageUrl"] = card.image_url
    return payload


def merge_response_fields(response: TurnResponse, partial: Mapping[str, Any]) -> None:
    """Overwrite response fields with those present in ``partial``.

    Scalars and the card are replaced wholesale. Session attributes are
    overwritten key by key so unrelated session state survives.
    """

    if "message" in partial:
        response.message = str(partial["message"] or "")
    if "plainMessage" in partial:
        response.plain_message = partial["plainMessage"]
    if "type" in partial:
        response.type = _response_type(partial["type"])
    if "messageFormat" in partial:
        response.message_format = partial["messageFormat"]
    if "card" in partial:
        card = partial["card"]
        response.card = card_from_payload(card) if isinstance(card, Mapping) else None
    if "result" in partial:
        response.result_id = _result_id(partial["result"])
    session = partial.get("session")
    if isinstance(session, Mapping):
        response.session.update(session)


def _response_type(value: Any) -> ResponseType:
    text = str(value)
    if text.upper() == ResponseType.SSML:
        return ResponseType.SSML
    return ResponseType.PLAIN_TEXT


def _result_id(result: Any) -> str | None:
    qid = field_of(result, "qid") if result is not None else None
    return str(qid) if qid is not None else None


def _mapping(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}
