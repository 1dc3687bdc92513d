"""Response assembly: the fixed stage sequence every turn passes through before delivery."""

from __future__ import annotations

import copy
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

from loguru import logger

from botrelay.config import Settings
from botrelay.envelope import merge_response_fields, response_to_payload
from botrelay.errors import HookFailure
from botrelay.hints import HintInjector
from botrelay.hook_runtime import HookRuntime
from botrelay.session_codec import invalidate_stale_answer_context, normalize
from botrelay.splitter import ResponseSplitter
from botrelay.turn import SessionAttributes, TurnRequest, TurnResponse


class StageKind(StrEnum):
    DISPATCH = "dispatch"  # started, never awaited, failures dropped
    AWAIT = "await"  # awaited, failures abort the turn


StageFn: TypeAlias = Callable[[TurnRequest, TurnResponse], Awaitable[None]]


@dataclass(frozen=True)
class Stage:
    name: str
    kind: StageKind
    run: StageFn


class AssemblyPipeline:
    """Runs the assembly stages in order and attaches the channel payload."""

    def __init__(self, settings: Settings, hooks: HookRuntime) -> None:
        self._settings = settings
        self._hooks = hooks
        self._hints = HintInjector(settings)
        self._splitter = ResponseSplitter(settings)
        self.stages: tuple[Stage, ...] = (
            Stage("audit", StageKind.DISPATCH, self._audit),
            Stage("rewrite", StageKind.AWAIT, self._rewrite),
            Stage("hint", StageKind.AWAIT, self._hint),
            Stage("interrupt", StageKind.AWAIT, self._interrupt),
            Stage("normalize", StageKind.AWAIT, self._normalize),
            Stage("answer_context", StageKind.AWAIT, self._answer_context),
            Stage("encode", StageKind.AWAIT, self._encode),
        )

    async def assemble(self, request: TurnRequest, response: TurnResponse) -> TurnResponse:
        for stage in self.stages:
            if stage.kind is StageKind.DISPATCH:
                try:
                    await stage.run(request, response)
                except Exception:
                    logger.opt(exception=True).warning("pipeline.dispatch_failed stage={}", stage.name)
                continue
            try:
                await stage.run(request, response)
            except Exception as exc:
                logger.error("pipeline.stage_failed stage={} error={}", stage.name, exc)
                await self._hooks.notify_error(stage=f"pipeline:{stage.name}", error=exc, request=request)
                raise
        return response

    async def _audit(self, request: TurnRequest, response: TurnResponse) -> None:
        self._hooks.dispatch("audit_turn", request=request, response=copy.deepcopy(response))

    async def _rewrite(self, request: TurnRequest, response: TurnResponse) -> None:
        if not self._hooks.has_impls("rewrite_response"):
            return
        partial = await self._hooks.call_first_strict(
            "rewrite_response",
            timeout_seconds=self._settings.hook_timeout_seconds,
            response=response_to_payload(response),
        )
        if partial is None:
            return
        if not isinstance(partial, dict):
            raise HookFailure("rewrite_response", f"expected a mapping, got {type(partial).__name__}")
        merge_response_fields(response, partial)

    async def _hint(self, request: TurnRequest, response: TurnResponse) -> None:
        response.message += self._hints.compute_hint(request)

    async def _interrupt(self, request: TurnRequest, response: TurnResponse) -> None:
        self._splitter.apply_interruptible(request, response)

    async def _normalize(self, request: TurnRequest, response: TurnResponse) -> None:
        response.session = SessionAttributes(normalize(response.session))

    async def _answer_context(self, request: TurnRequest, response: TurnResponse) -> None:
        invalidate_stale_answer_context(
            response.session,
            response.result_id,
            prior_result_id=request.session.previous_result_id(),
        )

    async def _encode(self, request: TurnRequest, response: TurnResponse) -> None:
        payload = await self._hooks.call_first_strict(
            "encode_response",
            channel_family=request.channel_family,
            request=request,
            response=response,
        )
        if payload is None:
            raise HookFailure("encode_response", f"no encoder for channel family {request.channel_family!r}")
        response.payload = payload
