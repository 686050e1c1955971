"""Dependency injection container — wires implementations to interfaces, resolved once at startup."""
from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from learnpath.application.roadmap_app_service import RoadmapAppService
from learnpath.core import config
from learnpath.domain.knowledge_graph.catalog import PYTHON_KNOWLEDGE_GRAPH
from learnpath.domain.knowledge_graph.graph import ConceptGraph
from learnpath.domain.knowledge_graph.service import RoadmapDomainService
from learnpath.integrations.classifier import Classifier, OpenRouterClassifier
from learnpath.persistence.repositories.sqlite.sqlite_mastery_repository import SqliteMasteryRepository


@dataclass(frozen=True)
class Capabilities:
    classifier: Optional[Classifier]


@lru_cache(maxsize=1)
def get_concept_graph() -> ConceptGraph:
    # Raises CatalogIntegrityError on a broken catalog; called at startup
    return ConceptGraph(PYTHON_KNOWLEDGE_GRAPH)


@lru_cache(maxsize=1)
def get_mastery_repo() -> SqliteMasteryRepository:
    return SqliteMasteryRepository()


@lru_cache(maxsize=1)
def get_capabilities() -> Capabilities:
    classifier = None
    if config.OPENROUTER_API_KEY:
        classifier = OpenRouterClassifier(
            graph=get_concept_graph(),
            api_key=config.OPENROUTER_API_KEY,
            url=config.OPENROUTER_URL,
            model=config.OPENROUTER_MODEL,
            timeout=config.CLASSIFIER_TIMEOUT_SECONDS,
        )
    return Capabilities(classifier=classifier)


@lru_cache(maxsize=1)
def get_roadmap_app_service() -> RoadmapAppService:
    return RoadmapAppService(
        repo=get_mastery_repo(),
        domain=RoadmapDomainService(get_concept_graph()),
        classifier=get_capabilities().classifier,
        subject=config.DEFAULT_SUBJECT,
    )


def reset() -> None:
    """Drop every cached singleton (shutdown, tests)."""
    for provider in (get_roadmap_app_service, get_capabilities, get_mastery_repo, get_concept_graph):
        provider.cache_clear()
