import asyncio
import logging
import re
from typing import Optional

import httpx
from langchain_core.runnables import RunnableLambda
from langchain_ollama import ChatOllama

from routing.models import ClassificationResult, ScoreOutcome, Scored, Unavailable
from routing.tiers import RoutingConfig, map_to_tier

logger = logging.getLogger("smart-router.ollama")

DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "phi3:mini"
MAX_PROMPT_CHARS = 1000
DEFAULT_RATING = 5

CLASSIFICATION_PROMPT = """You are a prompt complexity classifier. Rate the complexity of the following task/prompt on a scale of 1-10.

1-3: Simple tasks (quick questions, definitions, simple formatting, typo fixes)
4-6: Medium tasks (write a function, create a component, fix a bug, add a feature)
7-10: Complex tasks (system architecture, security audits, complex debugging, multi-step planning, distributed systems)

Respond with ONLY a single number from 1-10. Nothing else.

Task to classify:
\"\"\"
{prompt}
\"\"\"

Complexity (1-10):"""


def make_ollama(model: str, base_url: str, temperature: float = 0.1, num_predict: int = 5):
    llm = ChatOllama(
        model=model,
        base_url=base_url,
        temperature=temperature,
        num_predict=num_predict,
    )

    to_msgs = RunnableLambda(lambda x: x["messages"])
    to_text = RunnableLambda(lambda m: getattr(m, "content", str(m)))
    return to_msgs | llm | to_text


def parse_rating(text: str) -> float:
    """First integer in the reply, 1-10 scale, normalized to [0, 1]."""
    match = re.search(r"\d+", text or "")
    rating = int(match.group(0)) if match else DEFAULT_RATING
    return max(0.0, min(1.0, rating / 10))


class OllamaScorer:
    """
    Asks a locally served model for a 1-10 complexity rating.

    ``probe()`` runs once at startup and its answer is kept for the process
    lifetime; a model pulled later is only picked up after a restart.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_URL,
        model: str = DEFAULT_OLLAMA_MODEL,
        timeout: float = 5.0,
        probe_timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.probe_timeout = probe_timeout
        self.available = False
        self._transport = transport
        self._chain = None

    async def probe(self) -> bool:
        """Check the endpoint is up and the configured model family is loaded."""
        family = self.model.split(":", 1)[0]
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.probe_timeout) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
                resp.raise_for_status()
                models = resp.json().get("models") or []
            self.available = any(family in str(m.get("name", "")) for m in models)
        except Exception as e:
            logger.debug(f"Ollama probe failed at {self.base_url}: {type(e).__name__}: {e}")
            self.available = False

        if self.available:
            logger.info(f"Ollama classifier available: {self.model} at {self.base_url}")
        return self.available

    def _get_chain(self):
        if self._chain is None:
            self._chain = make_ollama(self.model, self.base_url)
        return self._chain

    async def rate(self, text: str) -> float:
        request = CLASSIFICATION_PROMPT.format(prompt=text[:MAX_PROMPT_CHARS])
        out = await asyncio.wait_for(
            self._get_chain().ainvoke({"messages": [{"role": "user", "content": request}]}),
            timeout=self.timeout,
        )
        return parse_rating(str(out).strip())

    async def classify(self, text: str, config: RoutingConfig) -> ScoreOutcome:
        try:
            score = await self.rate(text)
        except asyncio.TimeoutError:
            logger.warning(f"Ollama classification timed out after {self.timeout}s")
            return Unavailable("timeout")
        except Exception as e:
            logger.warning(f"Ollama classification failed: {type(e).__name__}: {e}")
            return Unavailable(str(e) or type(e).__name__)

        model, tier = map_to_tier(score, config)
        return Scored(ClassificationResult(score=score, tier=tier, model=model, source="ollama"))
