"""HTTP transports for invoking delegate bots."""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import ValidationError

from botrelay.delegate.models import DelegateReply, DelegateRequest
from botrelay.errors import DelegateUnavailable


class DelegateTransport(Protocol):
    """Minimal async contract shared by delegate transports."""

    async def send(self, target: str, alias: str | None, request: DelegateRequest) -> DelegateReply: ...

    async def aclose(self) -> None: ...


class _HttpTransport:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds, headers=headers)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def post_json(self, path: str, body: dict[str, Any]) -> Any:
        """POST ``body`` and return the decoded JSON reply. Every failure surfaces as DelegateUnavailable."""

        try:
            response = await self._client.post(path, json=body)
        except httpx.TimeoutException as exc:
            raise DelegateUnavailable(f"timed out: {path}") from exc
        except httpx.HTTPError as exc:
            raise DelegateUnavailable(f"transport error: {exc}") from exc

        if not response.is_success:
            logger.warning("transport.http_error path={} status={} body={}", path, response.status_code, response.text[:200])
            raise DelegateUnavailable(f"HTTP {response.status_code}: {path}")
        try:
            return response.json()
        except ValueError as exc:
            raise DelegateUnavailable(f"reply is not JSON: {path}") from exc

    async def _post(self, path: str, body: dict[str, Any]) -> DelegateReply:
        payload = await self.post_json(path, body)
        try:
            return DelegateReply.model_validate(payload)
        except ValidationError as exc:
            raise DelegateUnavailable(f"delegate reply is not valid: {exc}") from exc


class FunctionTransport(_HttpTransport):
    """Synchronous function invocation: the delegate is a plain function."""

    async def invoke(self, target: str, body: dict[str, Any]) -> Any:
        return await self.post_json(self.path_for(target), body)

    @staticmethod
    def path_for(target: str) -> str:
        return f"/functions/{quote(target, safe='')}/invocations"

    async def send(self, target: str, alias: str | None, request: DelegateRequest) -> DelegateReply:
        _ = alias
        body = {
            "request": "message",
            "inputText": request.input_text,
            "sessionAttributes": request.session_attributes,
            "userId": request.user_id,
        }
        return await self._post(self.path_for(target), body)


class DialogRuntimeTransport(_HttpTransport):
    """Dialog-runtime text endpoint: the delegate is a bot behind an alias."""

    async def send(self, target: str, alias: str | None, request: DelegateRequest) -> DelegateReply:
        body = {
            "botName": target,
            "botAlias": alias,
            "inputText": request.input_text,
            "sessionAttributes": request.session_attributes,
            "userId": request.user_id,
        }
        path = (
            f"/bot/{quote(target, safe='')}/alias/{quote(alias or '$LATEST', safe='')}"
            f"/user/{quote(request.user_id, safe='')}/text"
        )
        return await self._post(path, body)
