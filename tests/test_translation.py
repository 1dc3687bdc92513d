from __future__ import annotations

import pytest
from fakes import make_hooks, make_settings

from botrelay.errors import TranslationUnavailable
from botrelay.hookspecs import hookimpl
from botrelay.translation import ResponseTranslator
from botrelay.turn import Card, CardButton, SessionAttributes, TurnRequest, TurnResponse


class RecordingTranslator:
    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.fail_on = fail_on

    @hookimpl
    async def translate_text(self, text: str, source_language: str, target_language: str) -> str:
        self.calls.append((text, source_language, target_language))
        if text == self.fail_on:
            raise TranslationUnavailable("service down")
        return f"{target_language}:{text}"


def _request(locale: str | None = "es") -> TurnRequest:
    session = SessionAttributes({"userLocale": locale} if locale else {})
    return TurnRequest(question="hola", session=session)


def _response() -> TurnResponse:
    return TurnResponse(
        message="Hello",
        plain_message="Hello plain",
        card=Card(title="Options", buttons=[CardButton("Yes", "yes"), CardButton("No", "no")]),
    )


@pytest.mark.asyncio
async def test_translates_every_user_facing_field_in_order() -> None:
    translator = RecordingTranslator()
    boundary = ResponseTranslator(make_settings(enable_multi_language_support=True), make_hooks(translator))

    response = await boundary.translate_response(_request(), _response())

    assert response.message == "es:Hello"
    assert response.plain_message == "es:Hello plain"
    assert response.card is not None
    assert response.card.title == "es:Options"
    assert [(button.text, button.value) for button in response.card.buttons] == [("es:Yes", "yes"), ("es:No", "no")]
    assert [call[0] for call in translator.calls] == ["Hello", "Hello plain", "Options", "Yes", "No"]
    assert all(call[1:] == ("en", "es") for call in translator.calls)


@pytest.mark.asyncio
async def test_failure_keeps_original_text() -> None:
    translator = RecordingTranslator(fail_on="Hello plain")
    boundary = ResponseTranslator(make_settings(enable_multi_language_support=True), make_hooks(translator))

    response = await boundary.translate_response(_request(), _response())

    assert response.message == "es:Hello"
    assert response.plain_message == "Hello plain"
    assert response.card is not None and response.card.title == "es:Options"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("enabled", "locale"),
    [(False, "es"), (True, None), (True, "en")],
)
async def test_inactive_cases_make_no_calls(enabled: bool, locale: str | None) -> None:
    translator = RecordingTranslator()
    boundary = ResponseTranslator(make_settings(enable_multi_language_support=enabled), make_hooks(translator))

    response = await boundary.translate_response(_request(locale), _response())

    assert response.message == "Hello"
    assert translator.calls == []


@pytest.mark.asyncio
async def test_missing_translator_keeps_text() -> None:
    boundary = ResponseTranslator(make_settings(enable_multi_language_support=True), make_hooks())

    response = await boundary.translate_response(_request(), _response())

    assert response.message == "Hello"
