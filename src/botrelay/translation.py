"""Translation boundary applied to every routed response."""

from __future__ import annotations

from loguru import logger

from botrelay.config import Settings
from botrelay.errors import HookFailure
from botrelay.hook_runtime import HookRuntime
from botrelay.turn import CardButton, TurnRequest, TurnResponse


class ResponseTranslator:
    """Translates user-facing response text into the session locale.

    Text is translated through the ``translate_text`` hook. When no
    translator answers, or it fails, the original text is kept.
    """

    def __init__(self, settings: Settings, hooks: HookRuntime) -> None:
        self._settings = settings
        self._hooks = hooks

    def target_language(self, request: TurnRequest) -> str | None:
        if not self._settings.enable_multi_language_support:
            return None
        locale = request.session.user_locale
        if locale is None or locale == self._settings.translation_source_language:
            return None
        return locale

    async def translate_response(self, request: TurnRequest, response: TurnResponse) -> TurnResponse:
        target = self.target_language(request)
        if target is None:
            return response

        if response.message:
            response.message = await self.translate_text(response.message, target)
        if response.plain_message:
            response.plain_message = await self.translate_text(response.plain_message, target)
        if response.card is not None:
            response.card.title = await self.translate_text(response.card.title, target)
            buttons = []
            for button in response.card.buttons:
                # button values feed confirmation prompts and stay untranslated
                buttons.append(CardButton(text=await self.translate_text(button.text, target), value=button.value))
            response.card.buttons = buttons
        return response

    async def translate_text(self, text: str, target: str) -> str:
        source = self._settings.translation_source_language
        if not text or source == target:
            return text
        try:
            translated = await self._hooks.call_first_strict(
                "translate_text",
                timeout_seconds=self._settings.hook_timeout_seconds,
                text=text,
                source_language=source,
                target_language=target,
            )
        except HookFailure as exc:
            # translators raise TranslationUnavailable; the runtime wraps it
            logger.warning("translation.failed target={} error={}", target, exc.__cause__ or exc)
            return text
        if translated is None:
            return text
        return str(translated)
