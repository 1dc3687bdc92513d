"""Hook-first relay runtime: routing then assembly for one turn."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import pluggy
from loguru import logger

from botrelay.channels import AlexaEncoder, LexEncoder
from botrelay.config import Settings
from botrelay.delegate import DelegateClient, FunctionTransport
from botrelay.envelope import field_of, request_from_event, response_from_payload
from botrelay.hook_runtime import HookRuntime
from botrelay.hookspecs import RELAY_HOOK_NAMESPACE, RelayHookSpecs
from botrelay.logging_utils import turn_context
from botrelay.pipeline import AssemblyPipeline
from botrelay.plugins.remote_hooks import build_remote_hooks
from botrelay.router import RouteOutcome, SessionRouter
from botrelay.translation import ResponseTranslator
from botrelay.turn import SessionAttributes, TurnRequest, TurnResponse

ENTRY_POINT_GROUP = "botrelay"


@dataclass(frozen=True)
class TurnResult:
    """Result of one complete turn."""

    request: TurnRequest
    response: TurnResponse
    route: RouteOutcome | None = None

    @property
    def payload(self) -> dict[str, Any] | None:
        return self.response.payload


class RelayFramework:
    """Wires plugins, the session router and the assembly pipeline."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        delegate_client: DelegateClient | None = None,
        load_entry_points: bool = True,
    ) -> None:
        self.settings = settings or Settings()
        self._plugin_manager = pluggy.PluginManager(RELAY_HOOK_NAMESPACE)
        self._plugin_manager.add_hookspecs(RelayHookSpecs)
        self._hook_runtime = HookRuntime(self._plugin_manager)
        self._function_transport = FunctionTransport(
            self.settings.function_endpoint,
            timeout_seconds=self.settings.hook_timeout_seconds,
            api_key=self.settings.transport_api_key,
        )
        self._register_builtin_plugins()
        if load_entry_points:
            loaded = self._plugin_manager.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
            if loaded:
                logger.info("framework.entry_points_loaded count={}", loaded)

        self.delegate_client = delegate_client or DelegateClient(self.settings)
        self.translator = ResponseTranslator(self.settings, self._hook_runtime)
        self.router = SessionRouter(self.settings, self.delegate_client, self.translator)
        self.pipeline = AssemblyPipeline(self.settings, self._hook_runtime)

    @property
    def hooks(self) -> HookRuntime:
        return self._hook_runtime

    def register(self, plugin: object, name: str | None = None) -> None:
        self._plugin_manager.register(plugin, name=name)

    async def process_event(self, event: Mapping[str, Any]) -> TurnResult:
        """Run one wire-level ``{"request": ..., "response": ...}`` event."""

        request = request_from_event(field_of(event, "request") or {})
        response = response_from_payload(field_of(event, "response") or {})
        return await self.process_turn(request, response)

    async def process_turn(self, request: TurnRequest, response: TurnResponse) -> TurnResult:
        """Route through the delegate (when one owns the session), then assemble.

        Delegate transports and remote hooks keep the framework-level settings;
        the request's deployment settings apply to routing and assembly.
        """

        with turn_context(request.turn_id):
            # session state not touched by this turn's answer carries over
            response.session = SessionAttributes({**request.session, **response.session})
            try:
                router, pipeline = self._components_for(request)
                route = await router.route(request, response)
            except Exception as exc:
                await self._hook_runtime.notify_error(stage="route", error=exc, request=request)
                raise
            # the pipeline reports its own stage failures
            assembled = await pipeline.assemble(request, route.response)
            return TurnResult(request=request, response=assembled, route=route)

    def _components_for(self, request: TurnRequest) -> tuple[SessionRouter, AssemblyPipeline]:
        """Router and pipeline for one turn, honouring the request's deployment settings."""

        if not request.settings:
            return self.router, self.pipeline
        settings = Settings.from_deployment(request.settings, base=self.settings)
        logger.debug("framework.turn_settings keys={}", sorted(request.settings))
        translator = ResponseTranslator(settings, self._hook_runtime)
        return (
            SessionRouter(settings, self.delegate_client, translator),
            AssemblyPipeline(settings, self._hook_runtime),
        )

    def hook_report(self) -> dict[str, list[str]]:
        """Return hook implementation summary for diagnostics."""

        return self._hook_runtime.hook_report()

    async def aclose(self) -> None:
        await self._hook_runtime.drain()
        await self.delegate_client.aclose()
        await self._function_transport.aclose()

    def _register_builtin_plugins(self) -> None:
        self._plugin_manager.register(LexEncoder(), name="builtin:lex")
        self._plugin_manager.register(AlexaEncoder(), name="builtin:alexa")
        for name, plugin in build_remote_hooks(self.settings, self._function_transport):
            self._plugin_manager.register(plugin, name=name)
