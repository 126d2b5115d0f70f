"""
Heuristic complexity scorer.

Maps free-form prompt text to a score in [0, 1] without any I/O:

1. Start neutral at 0.5
2. Word-count bands (short prompts down, long prompts up)
3. Fenced code volume
4. Pattern Library matches (complex / simple / medium)
5. Question-mark density
6. Numbered-list steps

Identical input always yields the identical score.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from routing.models import ClassificationResult
from routing.patterns import PatternRule, load_patterns
from routing.tiers import RoutingConfig, map_to_tier

NEUTRAL_SCORE = 0.5

CODE_BLOCK = re.compile(r"```[\s\S]*?```")
NUMBERED_ITEM = re.compile(r"^\d+\.", re.M)
WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CodeStats:
    blocks: int
    lines: int


def as_text(prompt: Any) -> str:
    """Non-text payloads are scored on their JSON serialization."""
    if isinstance(prompt, str):
        return prompt
    return json.dumps(prompt, separators=(",", ":"), default=str)


def count_words(text: str) -> int:
    # Splitting on runs of whitespace keeps the empty leading/trailing pieces,
    # so an empty prompt counts as one word.
    return len(WHITESPACE.split(text))


def analyze_code(text: str) -> CodeStats:
    """Count fenced code blocks and the lines they span (fences included)."""
    blocks = CODE_BLOCK.findall(text)
    return CodeStats(blocks=len(blocks), lines=sum(len(b.split("\n")) for b in blocks))


def count_matches(text: str, rules: Sequence[PatternRule]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for rule in rules:
        if rule.matches(text):
            counts[rule.category] = counts.get(rule.category, 0) + 1
    return counts


def _category_weights(rules: Sequence[PatternRule]) -> Dict[str, float]:
    return {rule.category: rule.weight for rule in rules}


def score_text(prompt: Any, rules: Optional[Sequence[PatternRule]] = None) -> float:
    """Complexity score in [0, 1] for a prompt."""
    rules = load_patterns() if rules is None else rules
    text = as_text(prompt)
    score = NEUTRAL_SCORE

    words = count_words(text)
    if words < 20:
        score -= 0.15
    elif words < 50:
        score -= 0.05
    elif words > 500:
        score += 0.2
    elif words > 200:
        score += 0.1

    code = analyze_code(text)
    if code.lines > 100:
        score += 0.15
    elif code.lines > 50:
        score += 0.1
    elif code.blocks > 0 and code.lines < 20:
        score -= 0.05

    matches = count_matches(text, rules)
    weights = _category_weights(rules)
    for category in ("complex", "simple", "medium"):
        score += matches.get(category, 0) * weights.get(category, 0.0)

    questions = text.count("?")
    if questions > 0 and words < 30:
        score -= 0.1
    if questions > 3:
        score += 0.1

    if len(NUMBERED_ITEM.findall(text)) > 3:
        score += 0.15

    return max(0.0, min(1.0, score))


def classify_heuristics(prompt: Any, config: RoutingConfig) -> ClassificationResult:
    score = score_text(prompt)
    model, tier = map_to_tier(score, config)
    return ClassificationResult(score=score, tier=tier, model=model, source="heuristics")
