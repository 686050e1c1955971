"""Orchestrates load, domain operation and persist for one learner at a time."""
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from dataclasses import asdict, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from learnpath.domain.common.result import Result
from learnpath.domain.knowledge_graph.models import (
    AVAILABLE,
    COMPLETED,
    CONCEPTUAL,
    LOCKED,
    AssessmentAnalysis,
    Roadmap,
    WeakPoint,
)
from learnpath.domain.knowledge_graph.service import RoadmapDomainService
from learnpath.domain.mastery.model import apply_checkpoint, clamp_score, default_analysis, estimate_understanding
from learnpath.domain.remediation.policy import (
    heuristic_weak_point,
    should_trigger_remediation,
    should_trigger_remediation_for_scores,
)
from learnpath.domain.teaching.strategy import LessonPlan, generate_lesson_plan
from learnpath.integrations.classifier import Classifier
from learnpath.persistence.interfaces.mastery_repository import MasteryRepository

logger = logging.getLogger(__name__)


class LearnerLocks:
    """
    One lock per learner profile: writes for the same learner are serialized.
    A profile's lock is dropped once its last holder or waiter leaves.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, profile_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(profile_id, threading.Lock())
            self._holders[profile_id] = self._holders.get(profile_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[profile_id] -= 1
                if not self._holders[profile_id]:
                    del self._holders[profile_id]
                    del self._locks[profile_id]


class RoadmapAppService:
    def __init__(
        self,
        repo: MasteryRepository,
        domain: RoadmapDomainService,
        classifier: Optional[Classifier] = None,
        subject: str = "python",
    ):
        self._repo = repo
        self._domain = domain
        self._classifier = classifier
        self._subject = subject
        self._locks = LearnerLocks()

    @property
    def domain(self) -> RoadmapDomainService:
        return self._domain

    def _profile_id(self, user_id: str) -> str:
        return self._repo.get_or_create_learner_profile(user_id, self._subject).id

    # ------------------------------------------------------------------
    # ROADMAP
    # ------------------------------------------------------------------
    def get_roadmap(self, user_id: str) -> Roadmap:
        profile_id = self._profile_id(user_id)
        return self._domain.roadmap_from_masteries(self._repo.get_all_concept_masteries(profile_id))

    def preview_roadmap(self, confidence: Optional[Mapping[str, Any]], completed_ids: Iterable[str]) -> Roadmap:
        """Stateless roadmap for guests and clients that hold their own progress."""
        return self._domain.generate_roadmap(confidence, completed_ids)

    def apply_completion(
        self,
        snapshot: Iterable[Mapping[str, Any]],
        concept_id: str,
        final_mastery: Any = 1.0,
        final_confidence: Any = 1.0,
    ) -> Roadmap:
        roadmap = self._domain.roadmap_from_snapshot(snapshot)
        return self._domain.update_roadmap_after_completion(roadmap, concept_id, final_mastery, final_confidence)

    # ------------------------------------------------------------------
    # COMPLETION
    # ------------------------------------------------------------------
    def complete_concept(self, user_id: str, concept_id: str) -> Result[Tuple[Roadmap, List[str]]]:
        """
        Persist a completion event and the unlocks it causes.
        Returns the updated roadmap and the ids that became available.
        """
        if concept_id not in self._domain.graph:
            return Result.fail(f"Concept '{concept_id}' not found.")

        profile_id = self._profile_id(user_id)
        with self._locks.hold(profile_id):
            stored = {m.concept_id: m for m in self._repo.get_all_concept_masteries(profile_id)}
            before = self._domain.roadmap_from_masteries(stored.values())
            after = self._domain.update_roadmap_after_completion(before, concept_id)

            now = datetime.now(timezone.utc).isoformat()
            previous = stored.get(concept_id)
            self._repo.upsert_concept_mastery(
                profile_id,
                concept_id,
                status=COMPLETED,
                mastery_score=1.0,
                confidence_score=1.0,
                completed_at=previous.completed_at if previous and previous.completed_at else now,
            )

            unlocked = [
                e.id for e in after.entries
                if e.status == AVAILABLE and before.entry(e.id).status == LOCKED
            ]
            for unlocked_id in unlocked:
                self._repo.upsert_concept_mastery(profile_id, unlocked_id, status=AVAILABLE)

        logger.info("Learner %s completed '%s'; unlocked %s", profile_id, concept_id, unlocked or "nothing")
        return Result.ok((after, unlocked))

    # ------------------------------------------------------------------
    # ASSESSMENT
    # ------------------------------------------------------------------
    def submit_assessment(
        self, user_id: str, responses: Sequence[Mapping[str, str]]
    ) -> Tuple[AssessmentAnalysis, Roadmap]:
        if self._classifier is not None:
            analysis = self._classifier.analyze_assessment(responses)
        else:
            analysis = default_analysis(self._domain.graph)

        profile_id = self._profile_id(user_id)
        with self._locks.hold(profile_id):
            stored = {m.concept_id: m for m in self._repo.get_all_concept_masteries(profile_id)}
            done = [cid for cid, m in stored.items() if m.status == COMPLETED]
            for record in self._domain.seed_masteries(analysis, done):
                if record.concept_id in done:
                    continue  # completion is sticky
                self._repo.upsert_concept_mastery(
                    profile_id,
                    record.concept_id,
                    status=record.status,
                    mastery_score=record.mastery_score,
                    confidence_score=record.confidence_score,
                )
            for concept_id in analysis.weak_points:
                weak_point = WeakPoint(
                    concept_id=concept_id,
                    weakness_type=CONCEPTUAL,
                    severity=1.0 - clamp_score(analysis.concept_confidence.get(concept_id)),
                    root_cause="Flagged by diagnostic assessment",
                )
                self._repo.save_weak_point(profile_id, weak_point, should_trigger_remediation(weak_point))
            roadmap = self._domain.roadmap_from_masteries(self._repo.get_all_concept_masteries(profile_id))
        return analysis, roadmap

    # ------------------------------------------------------------------
    # CHECKPOINTS
    # ------------------------------------------------------------------
    def record_checkpoint(
        self,
        user_id: str,
        concept_id: str,
        checkpoint_index: int,
        understanding_score: Optional[float] = None,
        response_text: Optional[str] = None,
    ) -> Result[dict]:
        concept = self._domain.graph.get_concept_by_id(concept_id)
        if concept is None:
            return Result.fail(f"Concept '{concept_id}' not found.")

        score = clamp_score(understanding_score) if understanding_score is not None else estimate_understanding(response_text)
        profile_id = self._profile_id(user_id)
        with self._locks.hold(profile_id):
            stored = self._repo.get_all_concept_masteries(profile_id)
            status = self._domain.roadmap_from_masteries(stored).entry(concept_id).status
            if status == LOCKED:
                return Result.fail("Prerequisites not met")

            record = next((m for m in stored if m.concept_id == concept_id), None)
            record = replace(record or self._domain.default_mastery(concept_id), status=status)
            updated = apply_checkpoint(record, score)
            self._repo.upsert_concept_mastery(
                profile_id,
                concept_id,
                mastery_score=updated.mastery_score,
                confidence_score=updated.confidence_score,
                status=updated.status,
                attempts=updated.attempts,
                last_attempted_at=updated.last_attempted_at,
            )
            self._repo.save_checkpoint_response(profile_id, concept_id, checkpoint_index, response_text, score)
            scores = self._repo.get_checkpoint_scores(profile_id, concept_id)

        return Result.ok({
            "understanding_score": score,
            "mastery": asdict(updated),
            "needs_remediation": should_trigger_remediation_for_scores(scores, concept.difficulty),
        })

    # ------------------------------------------------------------------
    # WEAK POINTS
    # ------------------------------------------------------------------
    def detect_weak_point(
        self, user_id: str, concept_id: str, error_patterns: Sequence[str], attempts: int
    ) -> Result[Tuple[Optional[WeakPoint], bool]]:
        if concept_id not in self._domain.graph:
            return Result.fail(f"Concept '{concept_id}' not found.")

        if self._classifier is not None:
            weak_point = self._classifier.classify_weak_point(concept_id, error_patterns, attempts)
        else:
            weak_point = heuristic_weak_point(concept_id, error_patterns, attempts)
        if weak_point is None:
            return Result.ok((None, False))

        needs_remediation = should_trigger_remediation(weak_point)
        self._repo.save_weak_point(self._profile_id(user_id), weak_point, needs_remediation)
        return Result.ok((weak_point, needs_remediation))

    def list_weak_points(self, user_id: str) -> List[dict]:
        return self._repo.list_weak_points(self._profile_id(user_id))

    # ------------------------------------------------------------------
    # LESSON PLANS
    # ------------------------------------------------------------------
    def lesson_plan(self, concept_id: str, user_id: Optional[str] = None) -> Result[LessonPlan]:
        concept = self._domain.graph.get_concept_by_id(concept_id)
        if concept is None:
            return Result.fail(f"Concept '{concept_id}' not found.")
        if user_id is None:
            return Result.ok(generate_lesson_plan(concept))

        roadmap = self.get_roadmap(user_id)
        entry = roadmap.entry(concept_id)
        if entry.status == LOCKED:
            return Result.fail("Prerequisites not met")
        return Result.ok(generate_lesson_plan(concept, entry.mastery_score, entry.confidence_score))
