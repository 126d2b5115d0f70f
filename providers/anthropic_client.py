import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Mapping, Optional

import httpx

logger = logging.getLogger("smart-router.upstream")

DEFAULT_UPSTREAM_URL = "https://api.anthropic.com"
DEFAULT_ANTHROPIC_VERSION = "2023-06-01"

# Headers that describe one hop and must not be copied to the next one
HOP_BY_HOP = {
    "host", "content-length", "connection", "keep-alive", "proxy-authenticate",
    "proxy-authorization", "te", "trailers", "transfer-encoding", "upgrade",
    "accept-encoding",
}


class UpstreamError(Exception):
    """Upstream answered non-2xx, or could not be reached at all (status 500)."""

    def __init__(self, status_code: int, payload: Any):
        super().__init__(f"Upstream Error {status_code}: {payload}")
        self.status_code = status_code
        self.payload = payload


@dataclass
class UpstreamReply:
    status_code: int
    content: bytes = b""
    media_type: str = "application/json"
    stream: Optional[AsyncIterator[bytes]] = None
    close: Optional[Callable[[], Awaitable[None]]] = None


def _error_payload(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {"message": resp.text or resp.reason_phrase}


def messages_headers(incoming: Mapping[str, str]) -> Dict[str, str]:
    """Caller headers the Messages API needs: credentials and protocol version."""
    headers = {
        "content-type": "application/json",
        "anthropic-version": incoming.get("anthropic-version") or DEFAULT_ANTHROPIC_VERSION,
    }
    for name in ("x-api-key", "authorization", "anthropic-beta"):
        value = incoming.get(name)
        if value:
            headers[name] = value
    return headers


def passthrough_headers(incoming: Mapping[str, str]) -> Dict[str, str]:
    return {k: v for k, v in incoming.items() if k.lower() not in HOP_BY_HOP}


class AnthropicClient:
    """Thin async client for the upstream API. Never retries."""

    def __init__(
        self,
        base_url: str = DEFAULT_UPSTREAM_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        # No overall timeout: long generations and streams stay open as long as upstream keeps them.
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=None, transport=transport)

    async def send_messages(self, body: Any, headers: Dict[str, str], stream: bool = False) -> UpstreamReply:
        request = self._client.build_request("POST", "/v1/messages", json=body, headers=headers)
        resp = await self._send(request, stream=stream)

        if resp.is_error:
            if stream:
                await resp.aread()
                await resp.aclose()
            raise UpstreamError(resp.status_code, _error_payload(resp))

        if stream:
            return UpstreamReply(
                status_code=resp.status_code,
                media_type="text/event-stream",
                stream=resp.aiter_bytes(),
                close=resp.aclose,
            )
        return UpstreamReply(
            status_code=resp.status_code,
            content=resp.content,
            media_type=resp.headers.get("content-type", "application/json"),
        )

    async def forward(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        content: bytes = b"",
        query: str = "",
    ) -> httpx.Response:
        """Relay any other endpoint unchanged; non-2xx answers are returned, not raised."""
        url = f"{path}?{query}" if query else path
        request = self._client.build_request(
            method, url, headers=passthrough_headers(headers), content=content or None,
        )
        return await self._send(request)

    async def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        try:
            return await self._client.send(request, stream=stream)
        except httpx.RequestError as e:
            logger.error(f"Upstream unreachable: {request.method} {request.url}: {type(e).__name__}: {e}")
            raise UpstreamError(500, {"message": str(e) or type(e).__name__}) from e

    async def aclose(self) -> None:
        await self._client.aclose()
