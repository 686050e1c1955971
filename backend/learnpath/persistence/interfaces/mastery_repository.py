"""Abstract repository interface for learner profiles and their mastery records."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from learnpath.domain.knowledge_graph.models import ConceptMastery, LearnerProfile, WeakPoint


class MasteryRepository(ABC):

    @abstractmethod
    def get_or_create_learner_profile(self, user_id: str, subject: str) -> LearnerProfile:
        """Return the single profile for (user, subject), creating it on first access."""
        ...

    @abstractmethod
    def get_concept_mastery(self, profile_id: str, concept_id: str) -> Optional[ConceptMastery]:
        ...

    @abstractmethod
    def get_all_concept_masteries(self, profile_id: str) -> List[ConceptMastery]:
        """All stored records for a profile. Concepts never touched have no row."""
        ...

    @abstractmethod
    def upsert_concept_mastery(self, profile_id: str, concept_id: str, **fields: Any) -> ConceptMastery:
        """Insert or partially update one record; returns the stored result."""
        ...

    @abstractmethod
    def save_weak_point(self, profile_id: str, weak_point: WeakPoint, remediation_triggered: bool) -> str:
        """Append a detected weak point. Returns its id."""
        ...

    @abstractmethod
    def list_weak_points(self, profile_id: str) -> List[dict]:
        """Weak points for a profile, newest first."""
        ...

    @abstractmethod
    def save_checkpoint_response(
        self,
        profile_id: str,
        concept_id: str,
        checkpoint_index: int,
        response_text: Optional[str],
        understanding_score: float,
    ) -> str:
        ...

    @abstractmethod
    def get_checkpoint_scores(self, profile_id: str, concept_id: str) -> List[float]:
        """Understanding scores recorded for a concept, oldest first."""
        ...
