"""When to interrupt the default path to revisit a gap."""
from __future__ import annotations
from typing import Any, Mapping, Optional, Sequence

from learnpath.domain.knowledge_graph.graph import ConceptGraph
from learnpath.domain.knowledge_graph.models import (
    CONCEPTUAL,
    FOUNDATIONAL,
    VALID_WEAKNESS_TYPES,
    WeakPoint,
)
from learnpath.domain.mastery.model import clamp_score

SEVERITY_THRESHOLD = 0.6

# Checkpoint-score variant
HARD_CONCEPT_DIFFICULTY = 4
HARD_CONCEPT_AVERAGE_THRESHOLD = 0.4
DEFAULT_AVERAGE_THRESHOLD = 0.5
LOW_SCORE = 0.5
MAX_LOW_SCORES = 2

# Classifier-unavailable fallback
MIN_ATTEMPTS_FOR_DETECTION = 2
HEURISTIC_SEVERITY_PER_ATTEMPT = 0.15
HEURISTIC_SEVERITY_CAP = 0.7


def should_trigger_remediation(weak_point: WeakPoint) -> bool:
    """A severe weak point, or any foundational one, interrupts progression."""
    return weak_point.severity > SEVERITY_THRESHOLD or weak_point.weakness_type == FOUNDATIONAL


def should_trigger_remediation_for_scores(scores: Sequence[float], difficulty: int) -> bool:
    """Rolling checkpoint performance: low average, or repeated low scores."""
    if not scores:
        return False
    clamped = [clamp_score(s) for s in scores]
    average = sum(clamped) / len(clamped)
    low_scores = sum(1 for s in clamped if s < LOW_SCORE)
    threshold = HARD_CONCEPT_AVERAGE_THRESHOLD if difficulty >= HARD_CONCEPT_DIFFICULTY else DEFAULT_AVERAGE_THRESHOLD
    return average < threshold or low_scores >= MAX_LOW_SCORES


def normalize_weak_point(graph: ConceptGraph, concept_id: str, raw: Mapping[str, Any]) -> Optional[WeakPoint]:
    """Trust boundary for classifier output. Unknown concepts yield None."""
    if concept_id not in graph:
        return None
    weakness_type = raw.get("weakness_type", raw.get("weaknessType"))
    if weakness_type not in VALID_WEAKNESS_TYPES:
        weakness_type = CONCEPTUAL
    severity = raw.get("severity")
    related = raw.get("related_concepts", raw.get("relatedConcepts"))
    if not isinstance(related, (list, tuple)):
        related = []
    root_cause = raw.get("root_cause", raw.get("rootCause"))
    return WeakPoint(
        concept_id=concept_id,
        weakness_type=weakness_type,
        severity=clamp_score(severity) if severity is not None else 0.5,
        root_cause=root_cause if isinstance(root_cause, str) and root_cause else "Pattern of errors detected",
        related_concepts=[c for c in dict.fromkeys(r for r in related if isinstance(r, str)) if c in graph],
    )


def heuristic_weak_point(concept_id: str, error_patterns: Sequence[str], attempts: int) -> Optional[WeakPoint]:
    if not error_patterns or attempts < MIN_ATTEMPTS_FOR_DETECTION:
        return None
    return WeakPoint(
        concept_id=concept_id,
        weakness_type=CONCEPTUAL,
        severity=min(HEURISTIC_SEVERITY_CAP, attempts * HEURISTIC_SEVERITY_PER_ATTEMPT),
        root_cause="Repeated errors suggest conceptual gap",
        related_concepts=[],
    )
