import json
import logging
from types import SimpleNamespace

import pytest

from sheet_agent.config import Settings
from sheet_agent.planner.enrichment import EnrichmentAdapter, EnrichmentUnavailable, plan_query
from sheet_agent.planner.intent import Comparison


class FakeCompletions:
    def __init__(self, classifier_reply, generator_reply="find rows in sales data"):
        self.classifier_reply = classifier_reply
        self.generator_reply = generator_reply
        self.calls = []

    def create(self, model, messages, **kwargs):
        self.calls.append({"model": model, "messages": messages, **kwargs})
        if messages[0]["role"] == "system":
            content = self.classifier_reply
        else:
            content = self.generator_reply
        if isinstance(content, Exception):
            raise content
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _settings():
    return Settings(openai_api_key="test", generator_model="gen-model", classifier_model="cls-model")


def test_annotation_does_not_change_structured_fields():
    completions = FakeCompletions(json.dumps({"label": "QUERY", "score": 0.87}), "Count of rows where price > 100")
    adapter = EnrichmentAdapter(_settings(), client=fake_client(completions))
    intent = plan_query("How many products with price greater than 100", adapter)
    assert intent.action == "count"
    assert intent.filters == {"price": Comparison("gt", 100)}
    assert intent.confidence == 0.87
    assert intent.enhanced_understanding == "Count of rows where price > 100"
    assert [c["model"] for c in completions.calls] == ["cls-model", "gen-model"]
    prompt = completions.calls[1]["messages"][0]["content"]
    assert prompt.startswith('Extract database query information from this text: "how many products')


def test_score_is_clamped():
    adapter = EnrichmentAdapter(_settings(), client=fake_client(FakeCompletions('{"label": "QUERY", "score": 3}')))
    assert adapter.classify("x") == 1.0


def test_failure_falls_back_to_plain_intent(caplog):
    completions = FakeCompletions(RuntimeError("model offline"))
    adapter = EnrichmentAdapter(_settings(), client=fake_client(completions))
    with caplog.at_level(logging.WARNING):
        intent = plan_query("count rows", adapter)
    assert intent.action == "count"
    assert intent.confidence is None
    assert intent.enhanced_understanding is None
    assert "falling back to rule-based" in caplog.text


def test_bad_classifier_json_falls_back():
    adapter = EnrichmentAdapter(_settings(), client=fake_client(FakeCompletions("not json")))
    intent = plan_query("show me products", adapter)
    assert intent.confidence is None
    assert intent.action == "find"


def test_unavailable_without_key_or_when_disabled():
    adapter = EnrichmentAdapter(Settings(openai_api_key=None))
    with pytest.raises(EnrichmentUnavailable):
        adapter.classify("x")
    disabled = EnrichmentAdapter(Settings(openai_api_key="k", enrichment_enabled=False))
    assert plan_query("count rows", disabled).confidence is None


def test_handle_is_reused_and_released():
    client = fake_client(FakeCompletions('{"label": "QUERY", "score": 0.5}'))
    adapter = EnrichmentAdapter(_settings(), client=client)
    adapter.classify("a")
    first = adapter._handle
    adapter.classify("b")
    assert adapter._handle is first
    adapter.close()
    assert adapter._handle is None


def test_settings_from_env():
    s = Settings.from_env({"OPENAI_API_KEY": "k", "OPENAI_MODEL": "m", "SHEET_AGENT_ENRICH": "off", "SHEET_AGENT_LOG_LEVEL": "debug"})
    assert s.openai_api_key == "k"
    assert s.generator_model == "m"
    assert s.classifier_model == "m"
    assert s.enrichment_enabled is False
    assert s.log_level == "DEBUG"
    assert Settings.from_env({}).database == ":memory:"
