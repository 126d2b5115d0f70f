"""
Pattern Library for the heuristic scorer.

The signals live in ``patterns.yaml`` next to this module as a table of
(category, weight, patterns). ``ROUTER_PATTERNS`` points the loader at an
alternate table for tuning without a code change.
"""

import logging
import os
import pathlib
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Tuple

import yaml

logger = logging.getLogger("smart-router.routing")

PATTERNS_PATH = pathlib.Path(__file__).resolve().with_name("patterns.yaml")
CATEGORIES = ("complex", "simple", "medium")


@dataclass(frozen=True)
class PatternRule:
    """One textual signal: a compiled regex tagged with its category weight."""
    category: str
    pattern: re.Pattern
    weight: float

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def parse_patterns(raw: Dict) -> Tuple[PatternRule, ...]:
    """Build rules from the YAML table. Unknown categories are rejected."""
    if not isinstance(raw, dict):
        raise ValueError("pattern table must be a mapping of categories")

    unknown = set(raw) - set(CATEGORIES)
    if unknown:
        raise ValueError(f"unknown pattern categories: {sorted(unknown)}")

    rules: List[PatternRule] = []
    for category in CATEGORIES:
        cfg = raw.get(category) or {}
        weight = float(cfg.get("weight", 0.0))
        for expr in cfg.get("patterns", []):
            rules.append(PatternRule(category, re.compile(expr, re.I), weight))
    return tuple(rules)


@lru_cache(maxsize=None)
def load_patterns(path: str = "") -> Tuple[PatternRule, ...]:
    fp = pathlib.Path(path or os.getenv("ROUTER_PATTERNS") or PATTERNS_PATH)
    with open(fp, "r") as f:
        rules = parse_patterns(yaml.safe_load(f))
    logger.debug(f"Loaded {len(rules)} complexity patterns from {fp}")
    return rules
