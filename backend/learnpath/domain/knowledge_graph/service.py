"""Roadmap derivation and the completion transition."""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from learnpath.domain.knowledge_graph.graph import ConceptGraph
from learnpath.domain.knowledge_graph.models import (
    AVAILABLE,
    COMPLETED,
    IN_PROGRESS,
    LOCKED,
    VALID_STATUSES,
    AssessmentAnalysis,
    ConceptMastery,
    Roadmap,
    RoadmapEntry,
)
from learnpath.domain.knowledge_graph.rules import can_unlock, derive_status, initial_status
from learnpath.domain.mastery.model import clamp_score, confidence_to_mastery, known_confidence, normalize_confidence

logger = logging.getLogger(__name__)


def _aggregate(entries: Sequence[RoadmapEntry]) -> Roadmap:
    completed = sum(1 for e in entries if e.status == COMPLETED)
    progress = (completed / len(entries)) * 100 if entries else 0.0
    next_entry = next((e for e in entries if e.status in (AVAILABLE, IN_PROGRESS)), None)
    return Roadmap(
        entries=tuple(entries),
        overall_progress=progress,
        next_recommended_concept=next_entry.id if next_entry else None,
    )


class RoadmapDomainService:
    """
    Pure roadmap operations over a fixed concept graph. No I/O and no shared
    mutable state. Safe to call concurrently for different learners.
    """

    def __init__(self, graph: ConceptGraph):
        self._graph = graph

    @property
    def graph(self) -> ConceptGraph:
        return self._graph

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------
    def derive_statuses(
        self,
        confidence: Optional[Mapping[str, Any]],
        completed_ids: Iterable[str] = (),
    ) -> Dict[str, str]:
        known = known_confidence(self._graph, confidence)
        completed = {cid for cid in completed_ids if cid in self._graph}
        return {c.id: derive_status(c, completed, known) for c in self._graph.concepts}

    def generate_roadmap(
        self,
        confidence: Optional[Mapping[str, Any]],
        completed_ids: Iterable[str] = (),
        mastery: Optional[Mapping[str, Any]] = None,
    ) -> Roadmap:
        """
        Build the full roadmap for one learner snapshot.

        `mastery` holds directly measured scores; concepts without one show
        mastery trailing confidence. Status rules only see the confidence
        scores that were supplied; displayed scores default missing ones to 0.
        """
        scores = normalize_confidence(self._graph, confidence)
        known = known_confidence(self._graph, confidence)
        completed = {cid for cid in completed_ids if cid in self._graph}
        mastery = mastery or {}

        entries: List[RoadmapEntry] = []
        for concept in self._graph.concepts:
            conf = scores[concept.id]
            measured = mastery.get(concept.id)
            entries.append(RoadmapEntry(
                concept=concept,
                status=derive_status(concept, completed, known),
                mastery_score=clamp_score(measured) if measured is not None else confidence_to_mastery(conf),
                confidence_score=conf,
            ))
        return _aggregate(entries)

    def roadmap_from_masteries(self, masteries: Iterable[ConceptMastery]) -> Roadmap:
        """Roadmap from stored mastery records; only stored completion counts as completed."""
        confidence: Dict[str, float] = {}
        mastery: Dict[str, float] = {}
        completed: List[str] = []
        for m in masteries:
            confidence[m.concept_id] = m.confidence_score
            mastery[m.concept_id] = m.mastery_score
            if m.status == COMPLETED:
                completed.append(m.concept_id)
        return self.generate_roadmap(confidence, completed, mastery)

    def roadmap_from_snapshot(self, items: Iterable[Mapping[str, Any]]) -> Roadmap:
        """
        Rebuild a roadmap from client-held entries.

        Unknown ids are ignored, unknown statuses and missing concepts fall
        back to locked with zero scores, so the result always covers the full
        catalog.
        """
        by_id: Dict[str, Mapping[str, Any]] = {}
        for item in items:
            if isinstance(item, Mapping) and item.get("id") in self._graph:
                by_id[item["id"]] = item

        entries = []
        for concept in self._graph.concepts:
            item = by_id.get(concept.id, {})
            status = item.get("status")
            entries.append(RoadmapEntry(
                concept=concept,
                status=status if status in VALID_STATUSES else LOCKED,
                mastery_score=clamp_score(item.get("mastery_score")),
                confidence_score=clamp_score(item.get("confidence_score")),
            ))
        return _aggregate(entries)

    # ------------------------------------------------------------------
    # Completion transition
    # ------------------------------------------------------------------
    def update_roadmap_after_completion(
        self,
        roadmap: Roadmap,
        completed_concept_id: str,
        final_mastery: Any = 1.0,
        final_confidence: Any = 1.0,
        use_live_confidence: bool = True,
    ) -> Roadmap:
        """
        Apply one completion event and unlock what it makes reachable.

        With `use_live_confidence` the unlock check sees each entry's current
        confidence, so the high-confidence leniency and the low-confidence
        block keep applying; without it the check runs against an empty
        confidence map. A roadmap entry cannot tell "no data" from zero, so
        zero scores other than the completed concept's own count as unknown.
        """
        if completed_concept_id not in self._graph or roadmap.entry(completed_concept_id) is None:
            logger.info("Ignoring completion of unknown concept '%s'", completed_concept_id)
            return _aggregate(roadmap.entries)

        completed = set(roadmap.completed_ids) | {completed_concept_id}
        marked = [
            replace(
                e,
                status=COMPLETED,
                mastery_score=clamp_score(final_mastery),
                confidence_score=clamp_score(final_confidence),
            ) if e.id == completed_concept_id else e
            for e in roadmap.entries
        ]
        confidence = {
            e.id: e.confidence_score
            for e in marked
            if e.confidence_score > 0 or e.id == completed_concept_id
        } if use_live_confidence else {}

        updated = [
            replace(e, status=AVAILABLE)
            if e.status == LOCKED and can_unlock(e.concept, completed, confidence) else e
            for e in marked
        ]
        return _aggregate(updated)

    # ------------------------------------------------------------------
    # Profile seeding
    # ------------------------------------------------------------------
    def seed_masteries(
        self, analysis: AssessmentAnalysis, already_completed: Iterable[str] = ()
    ) -> List[ConceptMastery]:
        """
        Initial mastery records after a diagnostic assessment.

        Concepts before `analysis.starting_concept` in catalog order, and
        those in `already_completed`, are treated as completed; the rest take
        their assessed confidence and a status derived from it.
        """
        completed: List[str] = [cid for cid in already_completed if cid in self._graph]
        if analysis.starting_concept in self._graph:
            for cid in self._graph.concept_ids:
                if cid == analysis.starting_concept:
                    break
                completed.append(cid)

        scores = normalize_confidence(self._graph, analysis.concept_confidence)
        # Completed records are stored at full confidence; derive against the same
        statuses = self.derive_statuses({**scores, **{cid: 1.0 for cid in completed}}, completed)
        records = []
        for concept in self._graph.concepts:
            if concept.id in completed:
                records.append(ConceptMastery(
                    concept_id=concept.id, mastery_score=1.0, confidence_score=1.0, status=COMPLETED,
                ))
                continue
            status = statuses[concept.id]
            if concept.id == analysis.starting_concept and status == LOCKED:
                status = AVAILABLE
            records.append(ConceptMastery(
                concept_id=concept.id,
                mastery_score=confidence_to_mastery(scores[concept.id]),
                confidence_score=scores[concept.id],
                status=status,
            ))
        return records

    def default_mastery(self, concept_id: str) -> Optional[ConceptMastery]:
        """Lazily created record for a concept the learner has not touched yet."""
        concept = self._graph.get_concept_by_id(concept_id)
        if concept is None:
            return None
        return ConceptMastery(concept_id=concept_id, status=initial_status(concept))
