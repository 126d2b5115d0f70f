"""
Tier Mapper shared by the heuristic and Ollama scorers.

[0, simple) -> simple, [simple, complex) -> medium, [complex, 1] -> complex.
A score equal to a threshold belongs to the tier above it.
"""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_SIMPLE_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_MEDIUM_MODEL = "claude-sonnet-4-20250514"
DEFAULT_COMPLEX_MODEL = "claude-opus-4-20250514"


class RoutingConfig(BaseModel):
    """Immutable tier/model snapshot taken at process start."""
    model_config = ConfigDict(frozen=True)

    simple_model: str = Field(DEFAULT_SIMPLE_MODEL, min_length=1)
    medium_model: str = Field(DEFAULT_MEDIUM_MODEL, min_length=1)
    complex_model: str = Field(DEFAULT_COMPLEX_MODEL, min_length=1)
    simple_threshold: float = Field(0.35, ge=0.0, le=1.0)
    complex_threshold: float = Field(0.65, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _ordered_thresholds(self):
        if self.simple_threshold >= self.complex_threshold:
            raise ValueError(
                f"simple_threshold ({self.simple_threshold}) must be lower than "
                f"complex_threshold ({self.complex_threshold})"
            )
        return self


def map_to_tier(score: float, config: RoutingConfig) -> Tuple[str, str]:
    """Return ``(model, tier)`` for a score in [0, 1]."""
    if score < config.simple_threshold:
        return config.simple_model, "simple"
    if score < config.complex_threshold:
        return config.medium_model, "medium"
    return config.complex_model, "complex"
