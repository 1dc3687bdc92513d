"""Hook execution runtime: isolated, strict and fire-and-forget calls."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

import pluggy
from loguru import logger

from botrelay.errors import HookFailure, HookUnavailable, RelayError
from botrelay.turn import TurnRequest


class HookRuntime:
    """Wrapper around pluggy hook execution with explicit failure policies."""

    def __init__(self, plugin_manager: pluggy.PluginManager) -> None:
        self._plugin_manager = plugin_manager
        self._background: set[asyncio.Task[None]] = set()

    def has_impls(self, hook_name: str) -> bool:
        return bool(self._iter_hookimpls(hook_name))

    async def call_first_strict(self, hook_name: str, *, timeout_seconds: float | None = None, **kwargs: Any) -> Any:
        """Return the first non-None result; any failure aborts with HookFailure."""

        for impl in self._iter_hookimpls(hook_name):
            call_kwargs = self._kwargs_for_impl(impl, kwargs)
            adapter = impl.plugin_name or "<unknown>"
            try:
                value = await asyncio.wait_for(_invoke(impl, call_kwargs), timeout=timeout_seconds)
            except TimeoutError as error:
                raise HookUnavailable(hook_name, f"{adapter} timed out after {timeout_seconds}s") from error
            except HookFailure:
                raise
            except Exception as error:
                raise HookFailure(hook_name, f"{adapter} failed: {error}") from error
            if value is not None:
                return value
        return None

    def dispatch(self, hook_name: str, **kwargs: Any) -> None:
        """Start every implementation without awaiting it. Failures are logged and dropped."""

        for impl in self._iter_hookimpls(hook_name):
            call_kwargs = self._kwargs_for_impl(impl, kwargs)
            task = asyncio.get_running_loop().create_task(self._run_detached(hook_name, impl, call_kwargs))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for in-flight dispatched calls."""

        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def notify_error(self, *, stage: str, error: Exception, request: TurnRequest | None) -> None:
        """Call on_error hooks, swallowing observer failures."""

        for impl in self._iter_hookimpls("on_error"):
            call_kwargs = self._kwargs_for_impl(impl, {"stage": stage, "error": error, "request": request})
            try:
                await _invoke(impl, call_kwargs)
            except Exception:
                logger.opt(exception=True).warning(
                    "hook.on_error_failed stage={} adapter={}",
                    stage,
                    impl.plugin_name or "<unknown>",
                )

    def hook_report(self) -> dict[str, list[str]]:
        """Build a hook->adapters mapping for diagnostics."""

        report: dict[str, list[str]] = {}
        for hook_name, hook_caller in sorted(self._plugin_manager.hook.__dict__.items()):
            if hook_name.startswith("_") or not hasattr(hook_caller, "get_hookimpls"):
                continue
            adapter_names = [impl.plugin_name for impl in hook_caller.get_hookimpls()]
            if adapter_names:
                report[hook_name] = adapter_names
        return report

    async def _run_detached(self, hook_name: str, impl: Any, call_kwargs: dict[str, Any]) -> None:
        try:
            await _invoke(impl, call_kwargs)
        except Exception as error:
            level = "warning" if isinstance(error, RelayError) else "error"
            logger.opt(exception=level == "error").log(
                level.upper(),
                "hook.dispatch_failed hook={} adapter={} error={}",
                hook_name,
                impl.plugin_name or "<unknown>",
                error,
            )

    def _iter_hookimpls(self, hook_name: str) -> list[Any]:
        hook = getattr(self._plugin_manager.hook, hook_name, None)
        if hook is None or not hasattr(hook, "get_hookimpls"):
            return []
        return list(reversed(hook.get_hookimpls()))

    @staticmethod
    def _kwargs_for_impl(impl: Any, kwargs: dict[str, Any]) -> dict[str, Any]:
        return {name: kwargs[name] for name in impl.argnames if name in kwargs}


async def _invoke(impl: Any, call_kwargs: dict[str, Any]) -> Any:
    value = impl.function(**call_kwargs)
    if inspect.isawaitable(value):
        value = await value
    return value
