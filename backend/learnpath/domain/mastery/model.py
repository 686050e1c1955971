"""Confidence/mastery model: score normalization and checkpoint updates."""
from __future__ import annotations
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from learnpath.domain.knowledge_graph.graph import ConceptGraph
from learnpath.domain.knowledge_graph.models import (
    AVAILABLE,
    BEGINNER,
    IN_PROGRESS,
    VALID_LEVELS,
    AssessmentAnalysis,
    ConceptMastery,
)

# Mastery trails confidence until checkpoints measure it directly
MASTERY_FROM_CONFIDENCE = 0.7

# Step size of the exponential update P_new = P_old + LR * (score - P_old)
LEARNING_RATE = 0.2


def _is_score(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def clamp_score(value: Any) -> float:
    """Coerce anything into [0, 1]. Non-numbers, booleans and NaN become 0."""
    if not _is_score(value):
        return 0.0
    return min(max(float(value), 0.0), 1.0)


def confidence_to_mastery(confidence: float) -> float:
    return max(0.0, clamp_score(confidence) * MASTERY_FROM_CONFIDENCE)


def normalize_confidence(graph: ConceptGraph, raw: Optional[Mapping[str, Any]]) -> Dict[str, float]:
    """One clamped score per catalog concept; ids outside the catalog are dropped."""
    raw = raw if isinstance(raw, Mapping) else {}
    return {cid: clamp_score(raw.get(cid)) for cid in graph.concept_ids}


def known_confidence(graph: ConceptGraph, raw: Optional[Mapping[str, Any]]) -> Dict[str, float]:
    """
    Clamped scores for the catalog concepts that actually carry a numeric
    score. Unlike normalize_confidence, missing concepts stay missing.
    """
    if not isinstance(raw, Mapping):
        return {}
    return {
        cid: clamp_score(value)
        for cid, value in raw.items()
        if cid in graph and _is_score(value)
    }


def simple_update(p_old: float, result: float, learning_rate: float = LEARNING_RATE) -> float:
    p_new = p_old + learning_rate * (float(result) - p_old)
    return min(max(p_new, 0.0), 1.0)


def apply_checkpoint(record: ConceptMastery, understanding_score: Any) -> ConceptMastery:
    """
    Fold one checkpoint result into a learner's mastery record.

    Only an available concept moves to in_progress. A locked record stays
    locked: unlocking is decided by prerequisites, never by a checkpoint.
    """
    score = clamp_score(understanding_score)
    now = datetime.now(timezone.utc).isoformat()
    status = IN_PROGRESS if record.status == AVAILABLE else record.status
    return replace(
        record,
        mastery_score=simple_update(clamp_score(record.mastery_score), score),
        confidence_score=simple_update(clamp_score(record.confidence_score), score),
        attempts=record.attempts + 1,
        status=status,
        last_attempted_at=now,
        updated_at=now,
    )


def estimate_understanding(response: Optional[str]) -> float:
    """Length heuristic for a free-text checkpoint answer when nothing better is available."""
    if not response or len(response.strip()) < 10:
        return 0.2
    if len(response) < 30:
        return 0.4
    if len(response) > 100:
        return 0.7
    return 0.6


def default_analysis(graph: ConceptGraph) -> AssessmentAnalysis:
    return AssessmentAnalysis(
        overall_level=BEGINNER,
        concept_confidence={cid: 0.0 for cid in graph.concept_ids},
        weak_points=[],
        insights="New learner starting from the beginning.",
    )


def normalize_analysis(graph: ConceptGraph, raw: Any) -> AssessmentAnalysis:
    """
    Turn a classifier payload into a trusted AssessmentAnalysis.

    Confidences are clamped and completed for every catalog concept; weak
    points and the starting concept are dropped when they are not catalog ids.
    A payload that is not a mapping yields the default beginner analysis.
    """
    if not isinstance(raw, Mapping):
        return default_analysis(graph)

    level = raw.get("overall_level", raw.get("overallLevel"))
    if level not in VALID_LEVELS:
        level = BEGINNER

    confidence = raw.get("concept_confidence", raw.get("conceptConfidence"))
    weak_points = raw.get("weak_points", raw.get("weakPoints"))
    if not isinstance(weak_points, (list, tuple)):
        weak_points = []

    starting = raw.get("starting_concept", raw.get("startingConcept"))
    insights = raw.get("insights")

    return AssessmentAnalysis(
        overall_level=level,
        concept_confidence=normalize_confidence(graph, confidence),
        weak_points=[cid for cid in dict.fromkeys(w for w in weak_points if isinstance(w, str)) if cid in graph],
        insights=insights if isinstance(insights, str) else "",
        starting_concept=starting if isinstance(starting, str) and starting in graph else None,
    )
