"""Knowledge-graph domain models. Pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# Concept levels (display grouping only)
BEGINNER = "beginner"
INTERMEDIATE = "intermediate"
CONFIDENT = "confident"
VALID_LEVELS = (BEGINNER, INTERMEDIATE, CONFIDENT)

# Concept statuses
LOCKED = "locked"
AVAILABLE = "available"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
VALID_STATUSES = {LOCKED, AVAILABLE, IN_PROGRESS, COMPLETED}

# Weak point types
CONCEPTUAL = "conceptual"
FOUNDATIONAL = "foundational"
APPLICATION = "application"
VALID_WEAKNESS_TYPES = {CONCEPTUAL, FOUNDATIONAL, APPLICATION}


@dataclass(frozen=True)
class Concept:
    id: str
    title: str
    description: str
    level: str  # beginner | intermediate | confident
    prerequisites: Tuple[str, ...] = ()
    estimated_time: int = 0  # minutes
    difficulty: int = 1  # 1-5


@dataclass
class ConceptMastery:
    concept_id: str
    mastery_score: float = 0.0
    confidence_score: float = 0.0
    status: str = LOCKED
    attempts: int = 0
    last_attempted_at: Optional[str] = None
    completed_at: Optional[str] = None
    updated_at: str = ""


@dataclass
class LearnerProfile:
    id: str
    user_id: str
    subject: str
    created_at: str = ""


@dataclass(frozen=True)
class RoadmapEntry:
    concept: Concept
    status: str
    mastery_score: float
    confidence_score: float

    @property
    def id(self) -> str:
        return self.concept.id


@dataclass(frozen=True)
class Roadmap:
    entries: Tuple[RoadmapEntry, ...]
    overall_progress: float
    next_recommended_concept: Optional[str]

    @property
    def completed_ids(self) -> List[str]:
        return [e.id for e in self.entries if e.status == COMPLETED]

    def entry(self, concept_id: str) -> Optional[RoadmapEntry]:
        for e in self.entries:
            if e.id == concept_id:
                return e
        return None


@dataclass
class WeakPoint:
    concept_id: str
    weakness_type: str  # conceptual | foundational | application
    severity: float
    root_cause: str = ""
    related_concepts: List[str] = field(default_factory=list)


@dataclass
class AssessmentAnalysis:
    overall_level: str
    concept_confidence: Dict[str, float]
    weak_points: List[str] = field(default_factory=list)
    insights: str = ""
    starting_concept: Optional[str] = None
