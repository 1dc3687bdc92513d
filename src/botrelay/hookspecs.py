"""Pluggy hook namespace and relay hook specifications."""

from __future__ import annotations

from typing import Any

import pluggy

from botrelay.turn import TurnRequest, TurnResponse

RELAY_HOOK_NAMESPACE = "botrelay"
hookspec = pluggy.HookspecMarker(RELAY_HOOK_NAMESPACE)
hookimpl = pluggy.HookimplMarker(RELAY_HOOK_NAMESPACE)


class RelayHookSpecs:
    """Hook contract for botrelay extensions."""

    @hookspec
    def audit_turn(self, request: TurnRequest, response: TurnResponse) -> None:
        """Observe a finished turn. Dispatched without awaiting; failures are ignored."""

    @hookspec(firstresult=True)
    def rewrite_response(self, response: dict[str, Any]) -> dict[str, Any] | None:
        """Return fields to overwrite on the response envelope."""

    @hookspec(firstresult=True)
    def encode_response(
        self,
        channel_family: str,
        request: TurnRequest,
        response: TurnResponse,
    ) -> dict[str, Any] | None:
        """Render the channel delivery payload for one family (``LEX``, ``ALEXA``)."""

    @hookspec(firstresult=True)
    def translate_text(self, text: str, source_language: str, target_language: str) -> str | None:
        """Translate one text fragment."""

    @hookspec
    def on_error(self, stage: str, error: Exception, request: TurnRequest | None) -> None:
        """Observe failures from any stage."""
