"""OpenRouter classifier: every failure path degrades to a safe default."""
import json

import pytest
import requests

from learnpath.domain.knowledge_graph.models import FOUNDATIONAL
from learnpath.integrations import classifier as classifier_module
from learnpath.integrations.classifier import OpenRouterClassifier


class FakeResponse:
    def __init__(self, content=None, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {"choices": [{"message": {"content": content}}]}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._body


@pytest.fixture
def classifier(python_graph):
    return OpenRouterClassifier(python_graph, api_key="test-key", url="http://llm.invalid/chat", model="test-model")


def reply_with(monkeypatch, response=None, error=None):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if error is not None:
            raise error
        return response

    monkeypatch.setattr(classifier_module.requests, "post", fake_post)
    return calls


# ------------------------------------------------------------------
# Assessment analysis
# ------------------------------------------------------------------
def test_analysis_is_normalized_against_catalog(classifier, monkeypatch):
    content = "```json\n" + json.dumps({
        "overall_level": "intermediate",
        "concept_confidence": {"intro": 0.95, "variables": 0.8, "cobol": 1.0},
        "weak_points": ["loops", "cobol"],
        "starting_concept": "operations",
    }) + "\n```"
    calls = reply_with(monkeypatch, FakeResponse(content))

    analysis = classifier.analyze_assessment([{"question_id": "q1", "response_text": "x = 1"}])

    assert analysis.overall_level == "intermediate"
    assert analysis.concept_confidence["intro"] == 0.95
    assert "cobol" not in analysis.concept_confidence
    assert analysis.weak_points == ["loops"]
    assert analysis.starting_concept == "operations"

    assert calls[0]["headers"]["Authorization"] == "Bearer test-key"
    assert calls[0]["json"]["model"] == "test-model"
    assert calls[0]["timeout"] == 20.0


def test_analysis_falls_back_on_transport_error(classifier, monkeypatch):
    reply_with(monkeypatch, error=requests.ConnectionError("unreachable"))
    analysis = classifier.analyze_assessment([])
    assert analysis.overall_level == "beginner"
    assert set(analysis.concept_confidence.values()) == {0.0}


@pytest.mark.parametrize("response", [
    FakeResponse("I'd rather not answer in JSON."),
    FakeResponse(status_code=503),
    FakeResponse(body={"choices": []}),
    FakeResponse(body={"unexpected": True}),
])
def test_analysis_falls_back_on_bad_reply(classifier, monkeypatch, response):
    reply_with(monkeypatch, response)
    assert classifier.analyze_assessment([]).weak_points == []


# ------------------------------------------------------------------
# Weak-point classification
# ------------------------------------------------------------------
def test_weak_point_from_reply(classifier, monkeypatch):
    reply_with(monkeypatch, FakeResponse(json.dumps({
        "weakness_type": FOUNDATIONAL,
        "severity": 0.4,
        "root_cause": "Unsure how names bind to values",
        "related_concepts": ["variables", "lambda calculus"],
    })))
    wp = classifier.classify_weak_point("loops", ["NameError"], 3)

    assert wp.weakness_type == FOUNDATIONAL
    assert wp.severity == 0.4
    assert wp.related_concepts == ["variables"]


def test_weak_point_needs_repeated_errors_before_calling_out(classifier, monkeypatch):
    calls = reply_with(monkeypatch, FakeResponse("{}"))
    assert classifier.classify_weak_point("loops", [], 5) is None
    assert classifier.classify_weak_point("loops", ["oops"], 1) is None
    assert calls == []


def test_weak_point_falls_back_to_heuristic(classifier, monkeypatch):
    reply_with(monkeypatch, error=requests.Timeout("slow"))
    wp = classifier.classify_weak_point("loops", ["off by one"], 4)
    assert wp.severity == pytest.approx(0.6)
    assert wp.root_cause == "Repeated errors suggest conceptual gap"
