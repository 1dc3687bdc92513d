"""Voice-assistant (ALEXA family) response encoder."""

from __future__ import annotations

from typing import Any

from botrelay.hookspecs import hookimpl
from botrelay.turn import ResponseType, TurnRequest, TurnResponse

CHANNEL_FAMILY = "ALEXA"


class AlexaEncoder:
    @hookimpl
    def encode_response(self, channel_family: str, request: TurnRequest, response: TurnResponse) -> dict[str, Any] | None:
        if channel_family != CHANNEL_FAMILY:
            return None
        _ = request
        if response.type is ResponseType.SSML:
            speech = {"type": "SSML", "ssml": response.message}
        else:
            speech = {"type": "PlainText", "text": response.message}
        body: dict[str, Any] = {"outputSpeech": speech, "shouldEndSession": False}
        if response.card is not None and response.card.title:
            body["card"] = {
                "type": "Simple",
                "title": response.card.title,
                "content": response.plain_message or response.message,
            }
        return {"version": "1.0", "sessionAttributes": dict(response.session), "response": body}
