"""
Proxy Pipeline for POST /v1/messages.

extract prompt -> classify -> rewrite ``model`` -> forward -> relay
(buffered JSON or SSE byte stream) -> count the decision.
"""

import json
import logging
from typing import Any, AsyncIterator, Mapping

import httpx
from fastapi import Response
from fastapi.responses import JSONResponse, StreamingResponse

from providers.anthropic_client import AnthropicClient, UpstreamError, UpstreamReply, messages_headers
from routing.classifier import ClassificationRouter
from routing.models import SCORED_TIERS, ClassificationResult
from routing.prompt import extract_prompt
from services.stats import RoutingStats

logger = logging.getLogger("smart-router.proxy")

PROMPT_PREVIEW_CHARS = 80


def _sse_event(event: str, data: dict) -> bytes:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n".encode()


class ProxyPipeline:
    def __init__(
        self,
        router: ClassificationRouter,
        upstream: AnthropicClient,
        stats: RoutingStats,
        top_tier_marker: str = "opus",
        verbose: bool = False,
    ):
        self.router = router
        self.upstream = upstream
        self.stats = stats
        self.top_tier_marker = top_tier_marker
        self.verbose = verbose

    def is_top_tier(self, model: Any) -> bool:
        return isinstance(model, str) and self.top_tier_marker in model

    async def classify(self, body: Any) -> ClassificationResult:
        """Classify a request body and record the decision."""
        payload = body if isinstance(body, dict) else {}
        original_model = payload.get("model") or ""
        prompt = extract_prompt(payload)

        result = await self.router.route(prompt, original_model)

        # Approximate savings signal: a top-tier request downgraded by scoring.
        saved = (
            result.tier in SCORED_TIERS
            and self.is_top_tier(original_model)
            and not self.is_top_tier(result.model)
        )
        self.stats.record(result.tier, saved=saved)
        self.log_decision(original_model, result, prompt)
        return result

    async def handle_messages(self, body: Any, headers: Mapping[str, str]) -> Response:
        result = await self.classify(body)

        forwarded = body
        if isinstance(body, dict) and result.tier != "passthrough":
            forwarded = {**body, "model": result.model}
        stream = isinstance(body, dict) and bool(body.get("stream"))

        try:
            reply = await self.upstream.send_messages(forwarded, messages_headers(headers), stream=stream)
        except UpstreamError as e:
            logger.error(f"Proxy error: {e}")
            return JSONResponse({"error": e.payload}, status_code=e.status_code)

        if stream:
            return StreamingResponse(
                self._relay(reply),
                status_code=reply.status_code,
                media_type="text/event-stream",
                headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
            )
        return Response(content=reply.content, status_code=reply.status_code, media_type=reply.media_type)

    async def _relay(self, reply: UpstreamReply) -> AsyncIterator[bytes]:
        """Yield upstream bytes in arrival order; always release the upstream connection."""
        try:
            async for chunk in reply.stream:
                yield chunk
        except httpx.HTTPError as e:
            # Headers are already sent, so the failure can only be reported in-band.
            logger.error(f"Upstream stream interrupted: {type(e).__name__}: {e}")
            yield _sse_event("error", {"type": "error", "error": {"type": "api_error", "message": str(e)}})
        finally:
            if reply.close is not None:
                await reply.close()

    async def passthrough(
        self, method: str, path: str, headers: Mapping[str, str], content: bytes = b"", query: str = "",
    ) -> Response:
        try:
            resp = await self.upstream.forward(method, path, headers, content=content, query=query)
        except UpstreamError as e:
            return JSONResponse({"error": e.payload}, status_code=e.status_code)

        return Response(
            content=resp.content,
            status_code=resp.status_code,
            media_type=resp.headers.get("content-type"),
        )

    def log_decision(self, original_model: str, result: ClassificationResult, prompt: str) -> None:
        arrow = "->" if original_model != result.model else "="
        logger.info(
            f"[{result.tier.upper()}] score={result.score:.2f} source={result.source} | "
            f"{original_model or '?'} {arrow} {result.model or '?'}"
        )
        if self.verbose:
            more = "..." if len(prompt) > PROMPT_PREVIEW_CHARS else ""
            logger.info(f"  Prompt: {prompt[:PROMPT_PREVIEW_CHARS]!r}{more}")
