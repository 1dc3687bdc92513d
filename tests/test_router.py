from __future__ import annotations

import json

import pytest
from fakes import FakeTransport, make_delegate_client, make_hooks, make_settings

from botrelay.config import Settings
from botrelay.delegate import DelegateReply
from botrelay.errors import DelegateUnavailable
from botrelay.hookspecs import hookimpl
from botrelay.router import RouterEvent, RouterState, SessionRouter
from botrelay.translation import ResponseTranslator
from botrelay.turn import DELEGATION_KEYS, ResponseType, SessionAttributes, TurnRequest, TurnResponse


class UpperTranslator:
    @hookimpl
    def translate_text(self, text: str, source_language: str, target_language: str) -> str:
        return f"[{target_language}] {text.upper()}"


def _delegated_session(**extra: object) -> SessionAttributes:
    return SessionAttributes(
        {
            "specialtyBot": "ClockBot",
            "specialtyBotName": "Clock",
            "specialtyBotAlias": "live",
            "specialtySessionAttributes": json.dumps({"turns": "1"}),
            **extra,
        }
    )


def _turn(question: str, **request_fields: object) -> tuple[TurnRequest, TurnResponse]:
    session = request_fields.pop("session", None) or _delegated_session()
    request = TurnRequest(question=question, session=session, user_id="user-1", **request_fields)  # type: ignore[arg-type]
    response = TurnResponse(message="host answer", session=SessionAttributes(dict(session)))
    return request, response


def _router(
    replies: list[DelegateReply | Exception] | None = None,
    *,
    settings: Settings | None = None,
    translator_plugins: tuple[object, ...] = (),
) -> tuple[SessionRouter, FakeTransport]:
    settings = settings or make_settings()
    dialog = FakeTransport(replies=list(replies or []))
    client = make_delegate_client(settings, dialog=dialog)
    translator = ResponseTranslator(settings, make_hooks(*translator_plugins))
    return SessionRouter(settings, client, translator), dialog


@pytest.mark.asyncio
async def test_exit_phrase_ends_delegation_with_welcome_back() -> None:
    router, dialog = _router(settings=make_settings(bot_router_exit_msgs="exit,quit,goodbye,leave"))
    request, response = _turn("goodbye")

    outcome = await router.route(request, response)

    assert outcome.state is RouterState.NOT_DELEGATING
    assert outcome.event is RouterEvent.EXIT_PHRASE
    assert not any(key in response.session for key in DELEGATION_KEYS)
    assert response.message == "Welcome back to QnABot."
    assert response.plain_message == "Welcome back to QnABot."
    assert response.session.alt_messages() == {"html": "<i> Welcome back to QnABot. </i>"}
    assert dialog.calls == []


@pytest.mark.asyncio
async def test_exit_phrase_is_case_insensitive() -> None:
    router, dialog = _router()
    request, response = _turn("EXIT")

    outcome = await router.route(request, response)

    assert outcome.event is RouterEvent.EXIT_PHRASE
    assert dialog.calls == []


@pytest.mark.asyncio
async def test_padded_utterance_is_not_an_exit_phrase() -> None:
    router, dialog = _router([DelegateReply(message="still here", messageFormat="PlainText")])
    request, response = _turn("  Exit  ")

    outcome = await router.route(request, response)

    assert outcome.state is RouterState.DELEGATING
    assert dialog.calls[0][2].input_text == "  Exit  "


@pytest.mark.asyncio
async def test_configured_phrases_are_trimmed() -> None:
    router, _ = _router(settings=make_settings(bot_router_exit_msgs=" stop ,  done"))
    request, response = _turn("done")

    outcome = await router.route(request, response)

    assert outcome.event is RouterEvent.EXIT_PHRASE


@pytest.mark.asyncio
async def test_exit_without_welcome_back_leaves_message() -> None:
    router, _ = _router(settings=make_settings(bot_router_welcome_back_msg=""))
    request, response = _turn("quit")

    await router.route(request, response)

    assert response.message == "host answer"
    assert not response.session.is_delegated


@pytest.mark.asyncio
async def test_delegate_reply_is_folded_into_response() -> None:
    router, dialog = _router(
        [DelegateReply.model_validate({"message": "It's 3pm", "messageFormat": "PlainText", "sessionAttributes": {}})]
    )
    request, response = _turn("what time is it")

    outcome = await router.route(request, response)

    assert outcome.state is RouterState.DELEGATING
    assert outcome.event is RouterEvent.DELEGATE_REPLY
    assert response.message == "It's 3pm"
    assert response.plain_message == "It's 3pm"
    assert response.message_format == "PlainText"
    assert response.session["specialtySessionAttributes"] == {}
    assert response.session.is_delegated

    target, alias, sent = dialog.calls[0]
    assert (target, alias) == ("ClockBot", "live")
    assert sent.session_attributes == {"turns": "1"}
    assert sent.user_id == "user-1"


@pytest.mark.asyncio
async def test_ssml_rendering_used_when_channel_prefers_markup() -> None:
    app_context = json.dumps({"altMessages": {"ssml": "<speak>It is <emphasis>3</emphasis></speak>", "markdown": "*3*"}})
    reply = DelegateReply.model_validate(
        {"message": "It is 3", "messageFormat": "PlainText", "sessionAttributes": {"appContext": app_context}}
    )
    router, _ = _router([reply])
    request, response = _turn("time?", preferred_response_type=ResponseType.SSML)

    await router.route(request, response)

    assert response.type is ResponseType.SSML
    assert response.message == "<speak>It is <emphasis>3</emphasis></speak>"
    assert response.plain_message == "It is 3"
    assert response.session.alt_messages()["markdown"] == "*3*"


@pytest.mark.asyncio
async def test_ssml_rendering_ignored_for_plain_text_channel() -> None:
    app_context = json.dumps({"altMessages": {"ssml": "<speak>It is 3</speak>"}})
    reply = DelegateReply.model_validate({"message": "It is 3", "sessionAttributes": {"appContext": app_context}})
    router, _ = _router([reply])
    request, response = _turn("time?", preferred_response_type=ResponseType.PLAIN_TEXT)

    await router.route(request, response)

    assert response.type is ResponseType.PLAIN_TEXT
    assert response.message == "It is 3"


@pytest.mark.asyncio
async def test_delegate_can_end_routing() -> None:
    reply = DelegateReply.model_validate(
        {"message": "All done, handing you back.", "sessionAttributes": {"QNABOT_END_ROUTING": "true"}}
    )
    router, _ = _router([reply])
    request, response = _turn("thanks")

    outcome = await router.route(request, response)

    assert outcome.state is RouterState.NOT_DELEGATING
    assert outcome.event is RouterEvent.END_ROUTING
    assert response.message == "All done, handing you back."
    assert not any(key in response.session for key in DELEGATION_KEYS)


@pytest.mark.asyncio
async def test_any_end_routing_value_ends_routing() -> None:
    reply = DelegateReply.model_validate({"message": "Bye.", "sessionAttributes": {"QNABOT_END_ROUTING": "false"}})
    router, _ = _router([reply])
    request, response = _turn("thanks")

    outcome = await router.route(request, response)

    assert outcome.event is RouterEvent.END_ROUTING
    assert not response.session.is_delegated


@pytest.mark.asyncio
async def test_delegate_without_stored_attributes_gets_empty_bag() -> None:
    router, dialog = _router([DelegateReply(message="Hi.")])
    session = SessionAttributes({"specialtyBot": "ClockBot"})
    request, response = _turn("hello", session=session)

    outcome = await router.route(request, response)

    assert outcome.state is RouterState.DELEGATING
    target, alias, sent = dialog.calls[0]
    assert (target, alias) == ("ClockBot", None)
    assert sent.session_attributes == {}
    assert response.message == "Hi."


@pytest.mark.asyncio
async def test_empty_delegate_reply_keeps_host_response() -> None:
    router, _ = _router([DelegateReply(message=None)])
    request, response = _turn("hmm")

    outcome = await router.route(request, response)

    assert outcome.state is RouterState.DELEGATING
    assert response.message == "host answer"


@pytest.mark.asyncio
async def test_delegate_failure_propagates() -> None:
    router, _ = _router([DelegateUnavailable("down")])
    request, response = _turn("hello")

    with pytest.raises(DelegateUnavailable):
        await router.route(request, response)

    assert response.message == "host answer"


@pytest.mark.asyncio
async def test_undelegated_session_passes_through() -> None:
    router, dialog = _router()
    request, response = _turn("goodbye", session=SessionAttributes({"topic": "x"}))

    outcome = await router.route(request, response)

    assert outcome.state is RouterState.NOT_DELEGATING
    assert outcome.event is None
    assert response.message == "host answer"
    assert dialog.calls == []


@pytest.mark.asyncio
async def test_both_branches_translate_last() -> None:
    settings = make_settings(enable_multi_language_support=True)
    session = _delegated_session(userLocale="fr")

    router, _ = _router(settings=settings, translator_plugins=(UpperTranslator(),))
    request, response = _turn("exit", session=session)
    await router.route(request, response)
    assert response.message == "[fr] WELCOME BACK TO QNABOT."

    router, _ = _router([DelegateReply(message="it is 3")], settings=settings, translator_plugins=(UpperTranslator(),))
    request, response = _turn("quelle heure", session=_delegated_session(userLocale="fr"))
    await router.route(request, response)
    assert response.message == "[fr] IT IS 3"
    assert response.plain_message == "[fr] IT IS 3"
