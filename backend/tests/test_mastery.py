"""Score normalization, checkpoint updates and classifier-payload parsing."""
import math

import pytest

from learnpath.domain.common.structured import parse_structured_response
from learnpath.domain.knowledge_graph.models import AVAILABLE, COMPLETED, IN_PROGRESS, LOCKED, ConceptMastery
from learnpath.domain.mastery.model import (
    apply_checkpoint,
    clamp_score,
    confidence_to_mastery,
    default_analysis,
    estimate_understanding,
    known_confidence,
    normalize_analysis,
    normalize_confidence,
)


@pytest.mark.parametrize("raw, expected", [
    (0.5, 0.5),
    (1, 1.0),
    (1.7, 1.0),
    (-0.2, 0.0),
    ("0.9", 0.0),
    (None, 0.0),
    (True, 0.0),
    (math.nan, 0.0),
])
def test_clamp_score(raw, expected):
    assert clamp_score(raw) == expected


def test_confidence_to_mastery():
    assert confidence_to_mastery(1.0) == pytest.approx(0.7)
    assert confidence_to_mastery(-3) == 0.0


def test_normalize_confidence_covers_catalog_and_drops_unknown(python_graph):
    normalized = normalize_confidence(python_graph, {"intro": 2, "ghost": 0.9})
    assert set(normalized) == set(python_graph.concept_ids)
    assert normalized["intro"] == 1.0
    assert normalized["loops"] == 0.0
    assert normalize_confidence(python_graph, ["not", "a", "map"])["intro"] == 0.0


def test_known_confidence_keeps_only_supplied_numbers(python_graph):
    known = known_confidence(python_graph, {"intro": 1.4, "variables": 0.0, "loops": "high", "ghost": 0.5, "files": None})
    assert known == {"intro": 1.0, "variables": 0.0}
    assert known_confidence(python_graph, None) == {}


# ------------------------------------------------------------------
# Checkpoints
# ------------------------------------------------------------------
def test_checkpoint_moves_scores_toward_result():
    record = ConceptMastery(concept_id="loops", mastery_score=0.5, confidence_score=0.0, status=AVAILABLE)
    updated = apply_checkpoint(record, 1.0)

    assert updated.mastery_score == pytest.approx(0.6)
    assert updated.confidence_score == pytest.approx(0.2)
    assert updated.attempts == 1
    assert updated.status == IN_PROGRESS
    assert updated.last_attempted_at
    assert record.attempts == 0


def test_checkpoint_never_reopens_completed():
    record = ConceptMastery(concept_id="loops", mastery_score=1.0, confidence_score=1.0, status=COMPLETED)
    assert apply_checkpoint(record, 0.0).status == COMPLETED


def test_checkpoint_never_unlocks_a_locked_record():
    updated = apply_checkpoint(ConceptMastery(concept_id="loops", status=LOCKED), 0.5)
    assert updated.status == LOCKED
    assert updated.attempts == 1


@pytest.mark.parametrize("text, expected", [
    (None, 0.2),
    ("   short ", 0.2),
    ("a bit longer answer", 0.4),
    ("a loop repeats a block of code", 0.6),
    ("x" * 101, 0.7),
])
def test_estimate_understanding(text, expected):
    assert estimate_understanding(text) == expected


# ------------------------------------------------------------------
# Assessment analysis
# ------------------------------------------------------------------
def test_default_analysis_is_a_blank_beginner(python_graph):
    analysis = default_analysis(python_graph)
    assert analysis.overall_level == "beginner"
    assert set(analysis.concept_confidence.values()) == {0.0}
    assert analysis.weak_points == []


def test_normalize_analysis_accepts_camel_case_and_filters(python_graph):
    analysis = normalize_analysis(python_graph, {
        "overallLevel": "wizard",
        "conceptConfidence": {"intro": 0.9, "variables": 1.4, "rust": 1.0},
        "weakPoints": ["loops", "monads", "loops", {"id": "x"}],
        "insights": "Knows the basics",
        "startingConcept": "variables",
    })
    assert analysis.overall_level == "beginner"
    assert analysis.concept_confidence["variables"] == 1.0
    assert "rust" not in analysis.concept_confidence
    assert analysis.weak_points == ["loops"]
    assert analysis.starting_concept == "variables"


def test_normalize_analysis_of_non_mapping_is_default(python_graph):
    assert normalize_analysis(python_graph, "oops") == default_analysis(python_graph)


# ------------------------------------------------------------------
# Structured replies
# ------------------------------------------------------------------
def test_parse_fenced_json():
    text = 'Sure!\n```json\n{"severity": 0.4}\n```\nHope that helps.'
    assert parse_structured_response(text).value == {"severity": 0.4}


def test_parse_bare_object_inside_prose():
    result = parse_structured_response('The answer is {"a": {"b": 1}} as requested')
    assert result.is_success
    assert result.value == {"a": {"b": 1}}


@pytest.mark.parametrize("text", ["", "no json here", "{not: valid}", "```json\n[1, 2]\n```"])
def test_parse_failures(text):
    result = parse_structured_response(text)
    assert not result.is_success
    assert result.error
    assert result.value_or({}) == {}
