import json
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from pydantic import BaseModel, Field

from app.config import RouterSettings
from providers.anthropic_client import AnthropicClient
from providers.ollama_client import OllamaScorer
from routing.classifier import ClassificationRouter
from services.proxy import ProxyPipeline
from services.stats import RoutingStats

# ---------- Structured Logging ----------
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='{"time":"%(asctime)s","level":"%(levelname)s","msg":"%(message)s"}',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logger = logging.getLogger("smart-router")

PASSTHROUGH_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def build_pipeline(settings: RouterSettings) -> ProxyPipeline:
    scorer = OllamaScorer(
        base_url=settings.ollama_url,
        model=settings.ollama_model,
        timeout=settings.ollama_timeout,
        probe_timeout=settings.ollama_probe_timeout,
    )
    router = ClassificationRouter(
        settings.routing,
        scorer=scorer,
        force_model=settings.force_model,
        disabled=settings.disabled,
    )
    return ProxyPipeline(
        router,
        AnthropicClient(settings.upstream_url),
        RoutingStats(),
        top_tier_marker=settings.top_tier_marker,
        verbose=settings.verbose,
    )


def log_banner(pipeline: ProxyPipeline, settings: Optional[RouterSettings]) -> None:
    cfg = pipeline.router.config
    where = f"http://{settings.host}:{settings.port}" if settings else "(embedded)"
    classifier = "ollama (accurate)" if pipeline.router.external_available else "heuristics (fast)"

    logger.info(f"Smart Router listening on {where} -> {pipeline.upstream.base_url}")
    logger.info(f"Classifier: {classifier}")
    if pipeline.router.force_model:
        logger.info(f"FORCE_MODEL set: every request goes to {pipeline.router.force_model}")
    elif pipeline.router.disabled:
        logger.info("Routing DISABLED: passthrough mode")
    logger.info(f"  Simple  (< {cfg.simple_threshold:.2f}) -> {cfg.simple_model}")
    logger.info(f"  Medium  (< {cfg.complex_threshold:.2f}) -> {cfg.medium_model}")
    logger.info(f"  Complex (>= {cfg.complex_threshold:.2f}) -> {cfg.complex_model}")
    if settings and not pipeline.router.external_available:
        logger.info(
            f"For better accuracy install Ollama (curl -fsSL https://ollama.com/install.sh | sh) "
            f"and run: ollama pull {settings.ollama_model}"
        )


class ClassifyRequest(BaseModel):
    prompt: str = Field(..., description="Prompt to classify")
    model: Optional[str] = ""


def create_app(pipeline: Optional[ProxyPipeline] = None) -> FastAPI:
    """
    Build the proxy app.

    With no ``pipeline`` the lifespan builds one from the environment and
    probes Ollama once (skipped when ROUTER_ENV=test).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.pipeline is None
        if owned:
            settings = RouterSettings.from_env()
            app.state.settings = settings
            app.state.pipeline = build_pipeline(settings)
            if settings.env != "test":
                await app.state.pipeline.router.scorer.probe()
        log_banner(app.state.pipeline, app.state.settings)
        yield
        if owned:
            await app.state.pipeline.upstream.aclose()
        logger.info("Shutting down Smart Router.")

    app = FastAPI(title="Smart Router", version="1.0.0", lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.settings = None
    app.state.started_at = time.monotonic()

    Instrumentator(registry=CollectorRegistry()).instrument(app).expose(app)

    # Global Exception Handler for clean 500s
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return Response(
            content=json.dumps({
                "error": "Internal Server Error",
                "detail": str(exc),
                "type": type(exc).__name__
            }),
            status_code=500,
            media_type="application/json"
        )

    @app.post("/v1/messages")
    async def messages(request: Request):
        p: ProxyPipeline = request.app.state.pipeline
        try:
            body = await request.json()
        except ValueError:
            # Not JSON: let upstream reject it with its own error
            return await p.passthrough("POST", request.url.path, request.headers,
                                       content=await request.body(), query=request.url.query)
        return await p.handle_messages(body, request.headers)

    @app.get("/_stats")
    async def stats(request: Request):
        p: ProxyPipeline = request.app.state.pipeline
        cfg = p.router.config
        return {
            **p.stats.snapshot(),
            "config": {
                "simpleModel": cfg.simple_model,
                "mediumModel": cfg.medium_model,
                "complexModel": cfg.complex_model,
                "thresholds": {
                    "simple": cfg.simple_threshold,
                    "complex": cfg.complex_threshold,
                },
            },
        }

    @app.get("/_health")
    async def health(request: Request):
        return {"status": "ok", "uptime": time.monotonic() - request.app.state.started_at}

    @app.post("/_debug/classify")
    async def debug_classify(request: Request, req: ClassifyRequest):
        """Show the routing decision for a prompt without forwarding or counting it."""
        p: ProxyPipeline = request.app.state.pipeline
        result = await p.router.route(req.prompt, req.model or "")
        return {**result.to_dict(), "classifier": p.router.classifier_name}

    # Registered last so every route above takes precedence
    @app.api_route("/{path:path}", methods=PASSTHROUGH_METHODS)
    async def passthrough(request: Request, path: str):
        p: ProxyPipeline = request.app.state.pipeline
        return await p.passthrough(
            request.method, request.url.path, request.headers,
            content=await request.body(), query=request.url.query,
        )

    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = RouterSettings.from_env()
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
