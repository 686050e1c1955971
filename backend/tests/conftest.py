import os
import tempfile

# Must run before any learnpath import: config reads the environment once.
os.environ["DATABASE_PATH"] = os.path.join(tempfile.mkdtemp(prefix="learnpath-tests-"), "app.db")
os.environ["OPENROUTER_API_KEY"] = ""

import pytest  # noqa: E402

from learnpath.domain.knowledge_graph.catalog import PYTHON_KNOWLEDGE_GRAPH  # noqa: E402
from learnpath.domain.knowledge_graph.graph import ConceptGraph  # noqa: E402
from learnpath.domain.knowledge_graph.models import Concept  # noqa: E402
from learnpath.domain.knowledge_graph.service import RoadmapDomainService  # noqa: E402


def make_concept(cid, *prereqs, difficulty=2, level="beginner"):
    return Concept(
        id=cid,
        title=cid.title(),
        description=f"About {cid}",
        level=level,
        prerequisites=tuple(prereqs),
        difficulty=difficulty,
    )


@pytest.fixture
def python_graph():
    return ConceptGraph(PYTHON_KNOWLEDGE_GRAPH)


@pytest.fixture
def python_domain(python_graph):
    return RoadmapDomainService(python_graph)


@pytest.fixture
def tiny_domain():
    """intro -> variables"""
    return RoadmapDomainService(ConceptGraph([make_concept("intro"), make_concept("variables", "intro")]))
