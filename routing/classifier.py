"""
Classification Router.

Decision order:
  1. FORCE_MODEL set -> forced, no scoring
  2. DISABLED        -> passthrough, client's model untouched
  3. Ollama available and answers -> ollama
  4. Otherwise       -> heuristics

Step 4 always succeeds, so every request gets a usable classification.
"""

import logging
from typing import Optional

from providers.ollama_client import OllamaScorer
from routing.heuristics import classify_heuristics
from routing.models import ClassificationResult, Scored
from routing.tiers import RoutingConfig

logger = logging.getLogger("smart-router.routing")


class ClassificationRouter:
    def __init__(
        self,
        config: RoutingConfig,
        scorer: Optional[OllamaScorer] = None,
        force_model: Optional[str] = None,
        disabled: bool = False,
    ):
        self.config = config
        self.scorer = scorer
        self.force_model = force_model
        self.disabled = disabled

    @property
    def external_available(self) -> bool:
        return self.scorer is not None and self.scorer.available

    @property
    def classifier_name(self) -> str:
        return "ollama" if self.external_available else "heuristics"

    async def route(self, prompt: str, original_model: str = "") -> ClassificationResult:
        if self.force_model:
            return ClassificationResult(score=0.0, tier="forced", model=self.force_model, source="forced")

        if self.disabled:
            return ClassificationResult(score=0.0, tier="passthrough", model=original_model, source="none")

        if self.external_available:
            outcome = await self.scorer.classify(prompt, self.config)
            if isinstance(outcome, Scored):
                return outcome.result
            logger.info(f"Falling back to heuristics ({outcome.reason})")

        return classify_heuristics(prompt, self.config)
