"""Concept graph: lookups, prerequisite queries and catalog integrity."""
import pytest

from conftest import make_concept
from learnpath.domain.knowledge_graph.graph import CatalogIntegrityError, ConceptGraph


# ------------------------------------------------------------------
# Built-in catalog
# ------------------------------------------------------------------
def test_python_catalog_loads_in_progression_order(python_graph):
    assert len(python_graph) == 12
    assert python_graph.concept_ids[0] == "intro"
    assert python_graph.concept_ids[-1] == "project"


def test_every_concept_is_reachable_from_intro(python_graph):
    for cid in python_graph.concept_ids[1:]:
        assert "intro" in python_graph.all_prerequisites(cid)


def test_no_concept_is_its_own_transitive_prerequisite(python_graph):
    for cid in python_graph.concept_ids:
        assert cid not in python_graph.all_prerequisites(cid)


def test_concepts_by_level(python_graph):
    assert [c.id for c in python_graph.concepts_by_level("confident")] == ["oop", "modules", "project"]


# ------------------------------------------------------------------
# Lookups with unknown ids never raise
# ------------------------------------------------------------------
def test_get_concept_by_id(python_graph):
    assert python_graph.get_concept_by_id("loops").title == "Repetition & Loops"
    assert python_graph.get_concept_by_id("haskell") is None


def test_prerequisites_of_unknown_is_empty(python_graph):
    assert python_graph.prerequisites_of("variables") == frozenset({"intro"})
    assert python_graph.prerequisites_of("nope") == frozenset()
    assert python_graph.all_prerequisites("nope") == frozenset()
    assert python_graph.dependents_of("nope") == []


def test_all_prerequisites_satisfied():
    graph = ConceptGraph([
        make_concept("a"),
        make_concept("b"),
        make_concept("c", "a", "b"),
    ])
    assert graph.all_prerequisites_satisfied("a", [])
    assert not graph.all_prerequisites_satisfied("c", ["a"])
    assert graph.all_prerequisites_satisfied("c", ["b", "a"])
    assert not graph.all_prerequisites_satisfied("missing", ["a", "b"])


def test_available_and_next_concept_use_strict_completion(python_graph):
    assert [c.id for c in python_graph.available_concepts([])] == ["intro"]
    assert [c.id for c in python_graph.available_concepts(["intro"])] == ["variables"]
    assert python_graph.next_concept(["intro", "variables"]).id == "operations"
    assert python_graph.next_concept(python_graph.concept_ids) is None


def test_dependents_follow_catalog_order():
    graph = ConceptGraph([
        make_concept("root"),
        make_concept("left", "root"),
        make_concept("right", "root"),
    ])
    assert graph.dependents_of("root") == ["left", "right"]


# ------------------------------------------------------------------
# Integrity violations are fatal at load time
# ------------------------------------------------------------------
def test_cycle_is_rejected():
    with pytest.raises(CatalogIntegrityError, match="cycle"):
        ConceptGraph([
            make_concept("a", "c"),
            make_concept("b", "a"),
            make_concept("c", "b"),
        ])


def test_self_prerequisite_is_rejected():
    with pytest.raises(CatalogIntegrityError):
        ConceptGraph([make_concept("a", "a")])


def test_dangling_prerequisite_is_rejected():
    with pytest.raises(CatalogIntegrityError, match="unknown concept"):
        ConceptGraph([make_concept("a", "ghost")])


def test_duplicate_id_is_rejected():
    with pytest.raises(CatalogIntegrityError, match="Duplicate"):
        ConceptGraph([make_concept("a"), make_concept("a")])
