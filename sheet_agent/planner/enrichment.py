from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Optional

from sheet_agent.config import Settings
from sheet_agent.planner.intent import QueryIntent
from sheet_agent.planner.rule_planner import extract_intent

try:
    from openai import OpenAI  # type: ignore
except Exception:  # pragma: no cover
    OpenAI = None  # type: ignore

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    'Extract database query information from this text: "{query}". '
    "Identify action (find or count), sheet name, filters, fields, limit, and sort criteria."
)

CLASSIFIER_SYSTEM = (
    "You are a text classifier. Decide whether the user text is a well-formed request to look up "
    "or count rows in a spreadsheet. Only respond with valid JSON: "
    '{"label": "QUERY"|"OTHER", "score": <confidence between 0 and 1>}.'
)


class EnrichmentUnavailable(RuntimeError):
    pass


@dataclass
class Enrichment:
    confidence: float
    enhanced_understanding: str


@dataclass
class _ModelHandle:
    client: Any
    classifier_model: str
    generator_model: str


class EnrichmentAdapter:
    """Classifier + generator model pair used to annotate query intents.

    The model handle is created on first use and reused for the life of the
    adapter; `close()` releases it. Nothing in the deterministic query path
    depends on this class.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        self.settings = settings or Settings.from_env()
        self._client = client
        self._handle: Optional[_ModelHandle] = None
        self._lock = threading.Lock()

    def _acquire(self) -> _ModelHandle:
        with self._lock:
            if self._handle is not None:
                return self._handle
            client = self._client
            if client is None:
                if not self.settings.enrichment_enabled:
                    raise EnrichmentUnavailable("enrichment disabled")
                if OpenAI is None:
                    raise EnrichmentUnavailable("openai package not available")
                if not self.settings.openai_api_key:
                    raise EnrichmentUnavailable("OPENAI_API_KEY not set")
                logger.info("Loading enrichment models (%s, %s)", self.settings.classifier_model, self.settings.generator_model)
                client = OpenAI(api_key=self.settings.openai_api_key)
            self._handle = _ModelHandle(
                client=client,
                classifier_model=self.settings.classifier_model,
                generator_model=self.settings.generator_model,
            )
            return self._handle

    def close(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is not None and self._client is None:
            close = getattr(handle.client, "close", None)
            if callable(close):
                close()

    def classify(self, text: str) -> float:
        handle = self._acquire()
        resp = handle.client.chat.completions.create(
            model=handle.classifier_model,
            messages=[
                {"role": "system", "content": CLASSIFIER_SYSTEM},
                {"role": "user", "content": text},
            ],
            temperature=0.0,
            max_tokens=50,
        )
        data = json.loads(resp.choices[0].message.content or "{}")
        score = float(data["score"])
        return min(max(score, 0.0), 1.0)

    def generate(self, text: str) -> str:
        handle = self._acquire()
        resp = handle.client.chat.completions.create(
            model=handle.generator_model,
            messages=[{"role": "user", "content": PROMPT_TEMPLATE.format(query=text)}],
            temperature=0.3,
            max_tokens=100,
        )
        return (resp.choices[0].message.content or "").strip()

    def annotate(self, text: str) -> Enrichment:
        return Enrichment(confidence=self.classify(text), enhanced_understanding=self.generate(text))


def plan_query(query: str, adapter: Optional[EnrichmentAdapter] = None) -> QueryIntent:
    """Deterministic intent, optionally annotated by the enrichment models.

    Enrichment failures of any kind are logged and dropped; the structured
    fields always come from the rule-based extractor.
    """
    text = query.lower()
    intent = extract_intent(text)
    if adapter is None:
        return intent
    try:
        enrichment = adapter.annotate(text)
    except Exception as e:
        logger.warning("LLM processing failed, falling back to rule-based: %s", e)
        return intent
    logger.debug("enrichment: confidence=%.3f understanding=%r", enrichment.confidence, enrichment.enhanced_understanding)
    return replace(intent, confidence=enrichment.confidence, enhanced_understanding=enrichment.enhanced_understanding)
