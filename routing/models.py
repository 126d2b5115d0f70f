"""Routing decision data model."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal, Union

Tier = Literal["simple", "medium", "complex", "forced", "passthrough"]
Source = Literal["heuristics", "ollama", "forced", "none"]

SCORED_TIERS = ("simple", "medium", "complex")


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one request. Built once, never mutated."""
    score: float
    tier: Tier
    model: str
    source: Source

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Scored:
    """The external scorer produced a usable classification."""
    result: ClassificationResult


@dataclass(frozen=True)
class Unavailable:
    """The external scorer could not answer (timeout, transport error, bad output)."""
    reason: str


ScoreOutcome = Union[Scored, Unavailable]
