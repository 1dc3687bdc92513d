"""Interruptible voice responses: first sentence now, the rest on the next prompt."""

from __future__ import annotations

import re

from loguru import logger

from botrelay.config import Settings
from botrelay.turn import ResponseType, TurnRequest, TurnResponse

VOICE_CLIENT_TYPE = "LEX.AmazonConnect.Voice"
SPEAK_OPEN = "<speak>"
SPEAK_CLOSE = "</speak>"

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_SENTENCE_END_RE = re.compile(r"[.?!](.+)", re.DOTALL)
_SPEAK_TAG_RE = re.compile(r"</?speak>")


def split_message(message: str) -> tuple[str, str]:
    """Split at the first sentence terminator that has text after it.

    The head keeps its terminator; the tail keeps its leading whitespace, so
    ``head + tail`` reproduces the line-break-normalized message.
    """

    flattened = _LINE_BREAK_RE.sub(" ", message)
    match = _SENTENCE_END_RE.search(flattened)
    if match is None:
        return flattened, ""
    return flattened[: match.start(1)], match.group(1)


def strip_speak(text: str) -> str:
    return _SPEAK_TAG_RE.sub("", text)


def wrap_speak(text: str) -> str:
    return f"{SPEAK_OPEN}{text}{SPEAK_CLOSE}"


class ResponseSplitter:
    """Defers everything after the first sentence into the next-prompt session slot."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def is_active(self, request: TurnRequest) -> bool:
        return request.client_type == VOICE_CLIENT_TYPE and self._settings.connect_enable_voice_response_interrupt

    def apply_interruptible(self, request: TurnRequest, response: TurnResponse) -> TurnResponse:
        if not self.is_active(request):
            return response

        slot = self._settings.connect_next_prompt_varname
        pending = strip_speak(str(response.session.get(slot) or ""))
        if response.type is ResponseType.SSML:
            head, tail = split_message(strip_speak(response.message))
            response.message = wrap_speak(head)
            response.session[slot] = wrap_speak(_join(tail, pending))
        else:
            head, tail = split_message(response.message)
            response.message = head
            response.session[slot] = _join(tail, pending)
        logger.debug("splitter.applied slot={} message={!r} deferred={!r}", slot, response.message, response.session[slot])
        return response


def _join(tail: str, pending: str) -> str:
    return " ".join(part for part in (tail, pending) if part)
