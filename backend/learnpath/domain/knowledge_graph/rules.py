"""Business rules for concept gating: the status of each concept for a learner."""
from __future__ import annotations
from typing import AbstractSet, Mapping

from learnpath.domain.knowledge_graph.models import AVAILABLE, COMPLETED, IN_PROGRESS, LOCKED, Concept

# A prerequisite with confidence above this counts as informally completed
HIGH_CONFIDENCE_THRESHOLD = 0.7

# An uncompleted prerequisite below this blocks unlock (remediation first)
LOW_CONFIDENCE_THRESHOLD = 0.3

# An unlocked concept with confidence above this is already under way
IN_PROGRESS_THRESHOLD = 0.3


def can_unlock(
    concept: Concept,
    completed_ids: AbstractSet[str],
    confidence: Mapping[str, float],
) -> bool:
    """
    True when every prerequisite is completed or held with high confidence,
    and no prerequisite has a known score below the low-confidence floor.

    `confidence` holds only the scores that are actually known. A completed
    prerequisite without a score never blocks; one completed with a low score
    does, until remediation raises it.
    """
    prereqs_met = all(
        p in completed_ids or confidence.get(p, 0.0) > HIGH_CONFIDENCE_THRESHOLD
        for p in concept.prerequisites
    )
    if not prereqs_met:
        return False

    low_confidence_prereqs = [
        p for p in concept.prerequisites
        if p in confidence and confidence[p] < LOW_CONFIDENCE_THRESHOLD
    ]
    return not low_confidence_prereqs


def derive_status(
    concept: Concept,
    completed_ids: AbstractSet[str],
    confidence: Mapping[str, float],
) -> str:
    """Status of one concept. Depends only on the inputs, never on other derived statuses."""
    if concept.id in completed_ids:
        return COMPLETED
    if not can_unlock(concept, completed_ids, confidence):
        return LOCKED
    if confidence.get(concept.id, 0.0) > IN_PROGRESS_THRESHOLD:
        return IN_PROGRESS
    return AVAILABLE


def initial_status(concept: Concept) -> str:
    """Status of a freshly created mastery record."""
    return AVAILABLE if not concept.prerequisites else LOCKED
