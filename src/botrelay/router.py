"""Delegate bot session routing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from botrelay.config import Settings
from botrelay.delegate import DelegateClient, DelegateReply
from botrelay.splitter import SPEAK_OPEN
from botrelay.translation import ResponseTranslator
from botrelay.turn import DelegationState, ResponseType, TurnRequest, TurnResponse


class RouterState(StrEnum):
    DELEGATING = "delegating"
    NOT_DELEGATING = "not_delegating"


class RouterEvent(StrEnum):
    EXIT_PHRASE = "exit_phrase"
    DELEGATE_REPLY = "delegate_reply"
    END_ROUTING = "end_routing"


TRANSITIONS: dict[tuple[RouterState, RouterEvent], RouterState] = {
    (RouterState.DELEGATING, RouterEvent.EXIT_PHRASE): RouterState.NOT_DELEGATING,
    (RouterState.DELEGATING, RouterEvent.END_ROUTING): RouterState.NOT_DELEGATING,
    (RouterState.DELEGATING, RouterEvent.DELEGATE_REPLY): RouterState.DELEGATING,
}


@dataclass(frozen=True)
class RouteOutcome:
    """Routing outcome for one turn."""

    state: RouterState
    event: RouterEvent | None
    response: TurnResponse


class SessionRouter:
    """Decides per turn whether a delegate keeps ownership of the conversation."""

    def __init__(self, settings: Settings, client: DelegateClient, translator: ResponseTranslator) -> None:
        self._settings = settings
        self._client = client
        self._translator = translator

    def is_exit_phrase(self, utterance: str) -> bool:
        # only the configured phrases are trimmed, not the utterance
        return utterance.lower() in self._settings.exit_phrases

    async def route(self, request: TurnRequest, response: TurnResponse) -> RouteOutcome:
        delegation = request.session.delegation()
        if delegation is None:
            return RouteOutcome(state=RouterState.NOT_DELEGATING, event=None, response=response)

        state = RouterState.DELEGATING
        if self.is_exit_phrase(request.question):
            event = RouterEvent.EXIT_PHRASE
            self._end_delegation(response, self._settings.bot_router_welcome_back_msg)
        else:
            reply = await self._ask_delegate(request, delegation)
            event = self._fold_reply(request, response, reply)
            if event is RouterEvent.END_ROUTING:
                self._end_delegation(response, None)

        next_state = TRANSITIONS[(state, event)]
        logger.info("router.transition from={} event={} to={}", state, event, next_state)
        translated = await self._translator.translate_response(request, response)
        return RouteOutcome(state=next_state, event=event, response=translated)

    async def _ask_delegate(self, request: TurnRequest, delegation: DelegationState) -> DelegateReply:
        ref = self._client.resolve(delegation.bot, delegation.alias)
        return await self._client.invoke(ref, request.question, delegation.session_attributes, request.user_id)

    def _fold_reply(self, request: TurnRequest, response: TurnResponse, reply: DelegateReply) -> RouterEvent:
        if not reply.message:
            logger.warning("router.empty_reply - keeping host response")
            return RouterEvent.DELEGATE_REPLY

        markup = None
        alt_messages = reply.alt_messages
        if alt_messages is not None:
            ssml = alt_messages.get("ssml")
            if isinstance(ssml, str) and SPEAK_OPEN in ssml:
                markup = ssml
            response.session.set_alt_messages(alt_messages)

        response.session.set_delegate_session_attributes(reply.session_attributes)
        response.message = reply.message
        response.plain_message = reply.message
        response.message_format = reply.message_format
        if markup is not None and request.preferred_response_type is ResponseType.SSML:
            response.type = ResponseType.SSML
            response.message = markup

        if reply.end_routing_requested:
            logger.info("router.delegate_requested_exit")
            return RouterEvent.END_ROUTING
        return RouterEvent.DELEGATE_REPLY

    @staticmethod
    def _end_delegation(response: TurnResponse, welcome_back: str | None) -> None:
        response.session.clear_delegation_state()
        if not welcome_back:
            return
        response.message = welcome_back
        response.plain_message = welcome_back
        response.session.set_alt_messages({"html": f"<i> {welcome_back} </i>"})
