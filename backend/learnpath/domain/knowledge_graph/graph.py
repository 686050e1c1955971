"""The static prerequisite DAG and its structural queries."""
from __future__ import annotations
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

import networkx as nx

from learnpath.domain.knowledge_graph.models import Concept


class CatalogIntegrityError(ValueError):
    """The concept catalog is not a valid prerequisite DAG."""


class ConceptGraph:
    """
    Immutable view over a concept catalog.

    Catalog order is kept as the default progression order. Lookups with an
    unknown id never raise: they answer as if the concept had no data.
    """

    def __init__(self, concepts: Sequence[Concept]):
        self._concepts: List[Concept] = list(concepts)
        self._by_id: Dict[str, Concept] = {}
        for concept in self._concepts:
            if concept.id in self._by_id:
                raise CatalogIntegrityError(f"Duplicate concept id '{concept.id}'.")
            self._by_id[concept.id] = concept

        # Edges point from prerequisite to dependent
        self._dag = nx.DiGraph()
        self._dag.add_nodes_from(self._by_id)
        for concept in self._concepts:
            for prereq in concept.prerequisites:
                if prereq not in self._by_id:
                    raise CatalogIntegrityError(
                        f"Concept '{concept.id}' requires unknown concept '{prereq}'."
                    )
                if prereq == concept.id:
                    raise CatalogIntegrityError(f"Concept '{concept.id}' requires itself.")
                self._dag.add_edge(prereq, concept.id)

        if not nx.is_directed_acyclic_graph(self._dag):
            cycle = nx.find_cycle(self._dag)
            path = " -> ".join(edge[0] for edge in cycle) + f" -> {cycle[0][0]}"
            raise CatalogIntegrityError(f"Prerequisite cycle detected: {path}.")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    @property
    def concepts(self) -> List[Concept]:
        return list(self._concepts)

    @property
    def concept_ids(self) -> List[str]:
        return [c.id for c in self._concepts]

    def __len__(self) -> int:
        return len(self._concepts)

    def __contains__(self, concept_id: object) -> bool:
        return concept_id in self._by_id

    def get_concept_by_id(self, concept_id: str) -> Optional[Concept]:
        return self._by_id.get(concept_id)

    def concepts_by_level(self, level: str) -> List[Concept]:
        return [c for c in self._concepts if c.level == level]

    # ------------------------------------------------------------------
    # Prerequisite structure
    # ------------------------------------------------------------------
    def prerequisites_of(self, concept_id: str) -> FrozenSet[str]:
        concept = self._by_id.get(concept_id)
        return frozenset(concept.prerequisites) if concept else frozenset()

    def all_prerequisites(self, concept_id: str) -> FrozenSet[str]:
        """Transitive prerequisites."""
        if concept_id not in self._by_id:
            return frozenset()
        return frozenset(nx.ancestors(self._dag, concept_id))

    def dependents_of(self, concept_id: str) -> List[str]:
        """Concepts listing `concept_id` as a direct prerequisite, in catalog order."""
        if concept_id not in self._by_id:
            return []
        direct = set(self._dag.successors(concept_id))
        return [c.id for c in self._concepts if c.id in direct]

    def all_prerequisites_satisfied(self, concept_id: str, completed_ids: Iterable[str]) -> bool:
        concept = self._by_id.get(concept_id)
        if concept is None:
            return False
        completed = set(completed_ids)
        return all(p in completed for p in concept.prerequisites)

    def available_concepts(self, completed_ids: Iterable[str]) -> List[Concept]:
        """Uncompleted concepts whose prerequisites are all completed (strict, no confidence leniency)."""
        completed = set(completed_ids)
        return [
            c for c in self._concepts
            if c.id not in completed and all(p in completed for p in c.prerequisites)
        ]

    def next_concept(self, completed_ids: Iterable[str]) -> Optional[Concept]:
        available = self.available_concepts(completed_ids)
        return available[0] if available else None
