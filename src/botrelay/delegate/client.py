"""One call shape for both delegate transports."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger

from botrelay.config import Settings
from botrelay.delegate.models import DelegateRef, DelegateReply, DelegateRequest
from botrelay.delegate.transports import DelegateTransport, DialogRuntimeTransport, FunctionTransport


class DelegateClient:
    def __init__(
        self,
        settings: Settings,
        *,
        function_transport: DelegateTransport | None = None,
        dialog_transport: DelegateTransport | None = None,
    ) -> None:
        self._settings = settings
        self._function_transport = function_transport or FunctionTransport(
            settings.function_endpoint,
            timeout_seconds=settings.delegate_timeout_seconds,
            api_key=settings.transport_api_key,
        )
        self._dialog_transport = dialog_transport or DialogRuntimeTransport(
            settings.dialog_runtime_endpoint,
            timeout_seconds=settings.delegate_timeout_seconds,
            api_key=settings.transport_api_key,
        )

    def resolve(self, bot: str, alias: str | None) -> DelegateRef:
        return DelegateRef.parse(bot, alias, self._settings.bot_name_aliases)

    async def invoke(
        self,
        ref: DelegateRef,
        utterance: str,
        session_attributes: Mapping[str, Any],
        user_id: str,
    ) -> DelegateReply:
        """Send the utterance to the delegate. Raises DelegateUnavailable on any transport failure."""

        request = DelegateRequest(input_text=utterance, session_attributes=dict(session_attributes), user_id=user_id)
        transport = self._function_transport if ref.kind == "function" else self._dialog_transport
        logger.info("delegate.invoke kind={} target={} alias={}", ref.kind, ref.name, ref.alias)
        reply = await transport.send(ref.name, ref.alias, request)
        logger.debug("delegate.reply format={} has_message={}", reply.message_format, bool(reply.message))
        return reply

    async def aclose(self) -> None:
        await self._function_transport.aclose()
        await self._dialog_transport.aclose()
