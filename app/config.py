import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from providers.anthropic_client import DEFAULT_UPSTREAM_URL
from providers.ollama_client import DEFAULT_OLLAMA_MODEL, DEFAULT_OLLAMA_URL
from routing.tiers import (
    DEFAULT_COMPLEX_MODEL,
    DEFAULT_MEDIUM_MODEL,
    DEFAULT_SIMPLE_MODEL,
    RoutingConfig,
)

TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return str(os.getenv(name, "")).strip().lower() in TRUTHY


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


class RouterSettings(BaseModel):
    """Process configuration, read once at startup. Invalid values fail fast."""
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(8080, gt=0, lt=65536)
    upstream_url: str = DEFAULT_UPSTREAM_URL
    routing: RoutingConfig = RoutingConfig()
    top_tier_marker: str = Field("opus", min_length=1)
    verbose: bool = False
    force_model: Optional[str] = None
    disabled: bool = False
    ollama_url: str = DEFAULT_OLLAMA_URL
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    ollama_timeout: float = Field(5.0, gt=0)
    ollama_probe_timeout: float = Field(2.0, gt=0)
    env: str = ""

    @classmethod
    def from_env(cls) -> "RouterSettings":
        routing = RoutingConfig(
            simple_model=_env_str("SIMPLE_MODEL", DEFAULT_SIMPLE_MODEL),
            medium_model=_env_str("MEDIUM_MODEL", DEFAULT_MEDIUM_MODEL),
            complex_model=_env_str("COMPLEX_MODEL", DEFAULT_COMPLEX_MODEL),
            simple_threshold=_env_float("SIMPLE_THRESHOLD", 0.35),
            complex_threshold=_env_float("COMPLEX_THRESHOLD", 0.65),
        )
        port = _env_str("PORT", "8080")
        if not port.isdigit():
            raise ValueError(f"PORT must be an integer, got {port!r}")

        return cls(
            host=_env_str("HOST", "0.0.0.0"),
            port=int(port),
            upstream_url=_env_str("ANTHROPIC_BASE_URL_UPSTREAM", DEFAULT_UPSTREAM_URL),
            routing=routing,
            top_tier_marker=_env_str("TOP_TIER_MARKER", "opus"),
            verbose=_env_flag("VERBOSE"),
            force_model=os.getenv("FORCE_MODEL") or None,
            disabled=_env_flag("DISABLED"),
            ollama_url=os.getenv("OLLAMA_URL") or os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_URL,
            ollama_model=_env_str("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL),
            ollama_timeout=_env_float("OLLAMA_TIMEOUT_SEC", 5.0),
            ollama_probe_timeout=_env_float("OLLAMA_PROBE_TIMEOUT_SEC", 2.0),
            env=_env_str("ROUTER_ENV", ""),
        )
