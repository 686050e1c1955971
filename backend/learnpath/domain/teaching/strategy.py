"""How a concept is taught: strategy selection and lesson layout, independent of content generation."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from learnpath.domain.knowledge_graph.models import BEGINNER, Concept

EXPLANATION = "explanation"
ANALOGY = "analogy"
QUESTION = "question"
EXAMPLE = "example"

INTRODUCTION = "introduction"
CONCEPT_SECTION = "concept"
CHECKPOINT = "checkpoint"
REFLECTION = "reflection"


@dataclass
class TeachingSection:
    type: str
    order: int
    strategy: Optional[str] = None
    checkpoint_index: Optional[int] = None


@dataclass
class LessonPlan:
    concept_id: str
    sections: List[TeachingSection] = field(default_factory=list)
    estimated_time: int = 0


def determine_teaching_strategies(concept: Concept, mastery: float, confidence: float) -> List[str]:
    strategies = []
    if mastery < 0.3 or concept.level == BEGINNER:
        strategies.append(EXPLANATION)
    if concept.difficulty >= 3:
        strategies.append(ANALOGY)
    if concept.difficulty >= 2:
        strategies.append(EXAMPLE)
    if confidence < 0.5 or concept.difficulty >= 3:
        strategies.append(QUESTION)
    return strategies or [EXPLANATION]


def generate_lesson_plan(concept: Concept, mastery: float = 0.0, confidence: float = 0.0) -> LessonPlan:
    """
    Introduction, one concept section per strategy with a checkpoint after
    every second one (never after the last), an analogy section for harder
    concepts, and a closing reflection.
    """
    sections: List[TeachingSection] = []

    def add(section_type: str, **kwargs) -> None:
        sections.append(TeachingSection(type=section_type, order=len(sections), **kwargs))

    add(INTRODUCTION)
    strategies = determine_teaching_strategies(concept, mastery, confidence)
    for i, strategy in enumerate(strategies):
        add(CONCEPT_SECTION, strategy=strategy)
        if i < len(strategies) - 1 and (i + 1) % 2 == 0:
            add(CHECKPOINT, checkpoint_index=(i + 1) // 2)
    if concept.difficulty >= 3:
        add(ANALOGY)
    add(REFLECTION)

    return LessonPlan(concept_id=concept.id, sections=sections, estimated_time=concept.estimated_time)
