"""Application service over a real sqlite repository and a scripted classifier."""
import threading

import pytest

from learnpath.application.roadmap_app_service import LearnerLocks, RoadmapAppService
from learnpath.domain.knowledge_graph.models import (
    AVAILABLE,
    COMPLETED,
    FOUNDATIONAL,
    LOCKED,
    AssessmentAnalysis,
    WeakPoint,
)
from learnpath.integrations.classifier import Classifier
from learnpath.persistence.db import init_db
from learnpath.persistence.repositories.sqlite.sqlite_mastery_repository import SqliteMasteryRepository


class ScriptedClassifier(Classifier):
    def __init__(self, analysis=None, weak_point=None):
        self.analysis = analysis
        self.weak_point = weak_point

    def analyze_assessment(self, responses):
        return self.analysis

    def classify_weak_point(self, concept_id, error_patterns, attempts):
        return self.weak_point


@pytest.fixture
def repo(tmp_path):
    path = str(tmp_path / "svc.db")
    init_db(path)
    return SqliteMasteryRepository(path)


def make_service(repo, python_domain, classifier=None):
    return RoadmapAppService(repo=repo, domain=python_domain, classifier=classifier)


def test_assessment_seeds_from_starting_concept_and_records_weak_points(repo, python_domain):
    analysis = AssessmentAnalysis(
        overall_level="intermediate",
        concept_confidence={"conditionals": 0.5, "loops": 0.1},
        weak_points=["loops"],
        starting_concept="conditionals",
    )
    svc = make_service(repo, python_domain, ScriptedClassifier(analysis=analysis))

    returned, roadmap = svc.submit_assessment("user-1", [{"question_id": "q1", "response_text": "..."}])

    assert returned is analysis
    assert roadmap.completed_ids == ["intro", "variables", "operations"]
    assert roadmap.entry("conditionals").status == "in_progress"
    assert roadmap.next_recommended_concept == "conditionals"

    [weak] = svc.list_weak_points("user-1")
    assert weak["concept_id"] == "loops"
    assert weak["severity"] == pytest.approx(0.9)
    assert weak["remediation_triggered"] is True


def test_complete_concept_reports_unlocks(repo, python_domain):
    svc = make_service(repo, python_domain)
    result = svc.complete_concept("user-1", "intro")

    roadmap, unlocked = result.value
    assert unlocked == ["variables"]
    assert roadmap.entry("intro").status == COMPLETED

    profile_id = repo.get_or_create_learner_profile("user-1", "python").id
    assert repo.get_concept_mastery(profile_id, "variables").status == AVAILABLE
    assert not svc.complete_concept("user-1", "ghost").is_success


def test_completing_a_later_concept_first_reports_only_real_unlocks(repo, python_domain):
    svc = make_service(repo, python_domain)
    roadmap, unlocked = svc.complete_concept("user-1", "variables").value

    assert unlocked == ["operations"]
    assert roadmap.entry("intro").status == AVAILABLE

    profile_id = repo.get_or_create_learner_profile("user-1", "python").id
    assert repo.get_concept_mastery(profile_id, "intro") is None
    assert repo.get_concept_mastery(profile_id, "operations").status == AVAILABLE


def test_concurrent_completions_for_one_learner(repo, python_domain):
    svc = make_service(repo, python_domain)
    errors = []

    def complete(concept_id):
        try:
            svc.complete_concept("user-1", concept_id)
        except Exception as e:  # surfaced below
            errors.append(e)

    threads = [threading.Thread(target=complete, args=(cid,)) for cid in ("intro", "intro", "variables")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    roadmap = svc.get_roadmap("user-1")
    assert set(roadmap.completed_ids) == {"intro", "variables"}
    assert roadmap.entry("operations").status == AVAILABLE


def test_weak_point_from_classifier_is_persisted(repo, python_domain):
    wp = WeakPoint("loops", FOUNDATIONAL, 0.2, "Shaky on variables", ["variables"])
    svc = make_service(repo, python_domain, ScriptedClassifier(weak_point=wp))

    weak_point, needs_remediation = svc.detect_weak_point("user-1", "loops", ["x"], 1).value
    assert weak_point is wp
    assert needs_remediation is True
    assert svc.list_weak_points("user-1")[0]["weakness_type"] == FOUNDATIONAL


def test_lesson_plan_gating(repo, python_domain):
    svc = make_service(repo, python_domain)

    assert svc.lesson_plan("loops", "user-1").error == "Prerequisites not met"
    assert svc.lesson_plan("loops").is_success
    assert svc.lesson_plan("intro", "user-1").is_success
    assert not svc.lesson_plan("ghost").is_success


def test_preview_and_snapshot_completion(python_domain, repo):
    svc = make_service(repo, python_domain)
    preview = svc.preview_roadmap({}, [])
    snapshot = [
        {"id": e.id, "status": e.status, "mastery_score": e.mastery_score, "confidence_score": e.confidence_score}
        for e in preview.entries
    ]
    updated = svc.apply_completion(snapshot, "intro", 0.8, 0.9)
    assert updated.entry("variables").status == AVAILABLE
    assert updated.entry("operations").status == LOCKED


def test_checkpoint_on_a_locked_concept_is_refused(repo, python_domain):
    svc = make_service(repo, python_domain)
    result = svc.record_checkpoint("user-1", "loops", 0, understanding_score=0.9)

    assert result.error == "Prerequisites not met"
    profile_id = repo.get_or_create_learner_profile("user-1", "python").id
    assert repo.get_concept_mastery(profile_id, "loops") is None
    assert repo.get_checkpoint_scores(profile_id, "loops") == []
    assert svc.get_roadmap("user-1").entry("loops").status == LOCKED


def test_learner_locks_are_released_after_use():
    locks = LearnerLocks()
    with locks.hold("p1"):
        with locks.hold("p2"):
            assert len(locks) == 2
    assert len(locks) == 0

    with pytest.raises(RuntimeError):
        with locks.hold("p1"):
            raise RuntimeError("boom")
    assert len(locks) == 0


def test_learner_lock_serializes_holders_of_one_profile():
    locks = LearnerLocks()
    entered = threading.Event()
    order = []

    def waiter():
        entered.set()
        with locks.hold("p1"):
            order.append("waiter")

    with locks.hold("p1"):
        t = threading.Thread(target=waiter)
        t.start()
        entered.wait()
        order.append("holder")
    t.join()

    assert order == ["holder", "waiter"]
    assert len(locks) == 0
