#!/usr/bin/env python3
"""
Print the heuristic routing decision for a set of prompts.

Run as:
  python3 scripts/debug_router_decisions.py                 # built-in prompt set
  python3 scripts/debug_router_decisions.py "Fix this typo" # your own prompts

Output is a compact table:
  expected | tier | score | model | prompt

Thresholds and model names come from the same environment variables as the
proxy (SIMPLE_THRESHOLD, COMPLEX_MODEL, ...). Nothing is sent anywhere.
"""
import sys
from typing import List, Optional

from app.config import RouterSettings
from routing.heuristics import classify_heuristics

PROMPTS = [
    # expected tier, prompt
    ("simple", "What is TypeScript?"),
    ("simple", "what's 2+2"),
    ("simple", "Explain briefly what React does"),
    ("simple", "Fix typo in this word: helo"),
    ("simple", "List 5 programming languages"),
    ("simple", "yes or no: is JavaScript typed?"),
    ("medium", "Write a function to reverse a string in JavaScript"),
    ("medium", "Create a React component for a login form"),
    ("medium", "Fix the bug in this code where users can't log in"),
    ("medium", "Add an endpoint to get user profile data"),
    ("medium", "Write unit tests for the payment service"),
    ("complex", "Architect a distributed system for handling 1M requests per second with proper caching, load balancing, and database sharding. Consider edge cases and error handling."),
    ("complex", "Debug this complex async race condition in our payment processing system that only happens under high load"),
    ("complex", "Design a scalable microservices architecture with proper error handling, circuit breakers, and backward compatibility for our e-commerce platform"),
    ("complex", "Implement a custom state machine for our order processing workflow with all edge cases, rollback mechanisms, and audit logging"),
    ("complex", "Perform a comprehensive security audit of our authentication system and identify all potential vulnerabilities with trade-offs for each fix"),
]


def pretty_row(cols: List[str], widths: List[int]) -> str:
    out = []
    for i, c in enumerate(cols):
        w = widths[i]
        s = c if c is not None else ""
        if len(s) > w:
            s = s[: w - 3] + "..."
        out.append(s.ljust(w))
    return " | ".join(out)


def run(argv: Optional[List[str]] = None) -> int:
    """Print the table; returns the number of prompts routed to an unexpected tier."""
    argv = sys.argv[1:] if argv is None else argv
    prompts = [("-", p) for p in argv] if argv else PROMPTS
    config = RouterSettings.from_env().routing

    widths = [8, 8, 5, 28, 50]
    header = pretty_row(["expected", "tier", "score", "model", "prompt"], widths)
    print(header)
    print("-" * len(header))

    misses = 0
    for expected, prompt in prompts:
        result = classify_heuristics(prompt, config)
        if expected != "-" and result.tier != expected:
            misses += 1
        print(pretty_row([expected, result.tier, f"{result.score:.2f}", result.model, prompt], widths))

    if prompts is PROMPTS:
        print(f"\n{len(PROMPTS) - misses}/{len(PROMPTS)} routed to the expected tier")
    return misses


if __name__ == "__main__":
    sys.exit(1 if run() else 0)
