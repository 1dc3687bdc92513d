"""Audit and rewrite hooks backed by remotely invoked functions."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from botrelay.config import Settings
from botrelay.delegate.transports import FunctionTransport
from botrelay.envelope import response_to_payload
from botrelay.errors import DelegateUnavailable, HookFailure, HookUnavailable
from botrelay.hookspecs import hookimpl
from botrelay.turn import TurnRequest, TurnResponse


class RemoteAuditHook:
    """Sends every finished turn to the configured audit function."""

    def __init__(self, function_name: str, transport: FunctionTransport) -> None:
        self.function_name = function_name
        self._transport = transport

    @hookimpl
    async def audit_turn(self, request: TurnRequest, response: TurnResponse) -> None:
        body = {
            "req": {"question": request.question, "session": dict(request.session), "_type": request.channel_family},
            "res": response_to_payload(response),
        }
        await self._transport.invoke(self.function_name, body)
        logger.debug("hooks.audit_sent function={}", self.function_name)


class RemoteRewriteHook:
    """Lets the configured function rewrite the response envelope."""

    def __init__(self, function_name: str, transport: FunctionTransport) -> None:
        self.function_name = function_name
        self._transport = transport

    @hookimpl
    async def rewrite_response(self, response: dict[str, Any]) -> dict[str, Any] | None:
        try:
            result = await self._transport.invoke(self.function_name, response)
        except DelegateUnavailable as exc:
            if isinstance(exc.__cause__, httpx.TimeoutException):
                raise HookUnavailable("rewrite_response", str(exc)) from exc
            raise HookFailure("rewrite_response", str(exc)) from exc
        if result is None:
            return None
        if not isinstance(result, dict):
            raise HookFailure("rewrite_response", f"{self.function_name} returned {type(result).__name__}")
        return result


def build_remote_hooks(settings: Settings, transport: FunctionTransport) -> list[tuple[str, object]]:
    """Plugins for the remote functions named in settings, with their registration names."""

    plugins: list[tuple[str, object]] = []
    if settings.log_hook_function:
        plugins.append(("builtin:remote-audit", RemoteAuditHook(settings.log_hook_function, transport)))
    if settings.response_hook_function:
        plugins.append(("builtin:remote-rewrite", RemoteRewriteHook(settings.response_hook_function, transport)))
    return plugins
