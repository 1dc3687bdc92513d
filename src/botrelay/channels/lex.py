"""Dialog-platform (LEX family) response encoder."""

from __future__ import annotations

from typing import Any

from botrelay.hookspecs import hookimpl
from botrelay.turn import TurnRequest, TurnResponse

CHANNEL_FAMILY = "LEX"
MAX_BUTTONS = 5


def exclude_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


class LexEncoder:
    @hookimpl
    def encode_response(self, channel_family: str, request: TurnRequest, response: TurnResponse) -> dict[str, Any] | None:
        if channel_family != CHANNEL_FAMILY:
            return None
        _ = request
        dialog_action: dict[str, Any] = {
            "type": "Close",
            "fulfillmentState": "Fulfilled",
            "message": {"contentType": str(response.type), "content": response.message},
        }
        if response.card is not None:
            dialog_action["responseCard"] = {
                "version": "1",
                "contentType": "application/vnd.amazonaws.card.generic",
                "genericAttachments": [
                    exclude_none(
                        {
                            "title": response.card.title or None,
                            "subTitle": response.card.subtitle,
                            "imageUrl": response.card.image_url,
                            "buttons": [
                                {"text": button.text, "value": button.value}
                                for button in response.card.buttons[:MAX_BUTTONS]
                            ],
                        }
                    )
                ],
            }
        return {"sessionAttributes": dict(response.session), "dialogAction": dialog_action}
