"""The built-in Python beginner curriculum, in default progression order."""
from __future__ import annotations
from typing import Tuple

from learnpath.domain.knowledge_graph.models import BEGINNER, CONFIDENT, INTERMEDIATE, Concept

PYTHON_KNOWLEDGE_GRAPH: Tuple[Concept, ...] = (
    # BEGINNER
    Concept(
        id="intro",
        title="What is Programming?",
        description="Understanding what programming is and how Python fits in",
        level=BEGINNER,
        prerequisites=(),
        estimated_time=15,
        difficulty=1,
    ),
    Concept(
        id="variables",
        title="Variables & Data Types",
        description="Storing and working with different types of data",
        level=BEGINNER,
        prerequisites=("intro",),
        estimated_time=25,
        difficulty=2,
    ),
    Concept(
        id="operations",
        title="Basic Operations",
        description="Arithmetic and basic operations with numbers",
        level=BEGINNER,
        prerequisites=("variables",),
        estimated_time=20,
        difficulty=2,
    ),
    Concept(
        id="conditionals",
        title="Making Decisions (if/else)",
        description="Controlling program flow with conditions",
        level=BEGINNER,
        prerequisites=("operations",),
        estimated_time=30,
        difficulty=3,
    ),
    Concept(
        id="loops",
        title="Repetition & Loops",
        description="Repeating actions with for and while loops",
        level=BEGINNER,
        prerequisites=("conditionals",),
        estimated_time=35,
        difficulty=3,
    ),
    # INTERMEDIATE
    Concept(
        id="functions",
        title="Creating Functions",
        description="Organizing code into reusable functions",
        level=INTERMEDIATE,
        prerequisites=("loops",),
        estimated_time=40,
        difficulty=3,
    ),
    Concept(
        id="lists",
        title="Working with Lists",
        description="Storing and manipulating collections of data",
        level=INTERMEDIATE,
        prerequisites=("functions",),
        estimated_time=35,
        difficulty=3,
    ),
    Concept(
        id="dictionaries",
        title="Dictionaries & Data Structures",
        description="Key-value pairs and organizing complex data",
        level=INTERMEDIATE,
        prerequisites=("lists",),
        estimated_time=40,
        difficulty=4,
    ),
    Concept(
        id="files",
        title="Reading & Writing Files",
        description="Persisting data to and from files",
        level=INTERMEDIATE,
        prerequisites=("dictionaries",),
        estimated_time=30,
        difficulty=3,
    ),
    # CONFIDENT
    Concept(
        id="oop",
        title="Object-Oriented Thinking",
        description="Classes, objects, and organizing code with OOP",
        level=CONFIDENT,
        prerequisites=("files",),
        estimated_time=50,
        difficulty=4,
    ),
    Concept(
        id="modules",
        title="Using Libraries & Modules",
        description="Leveraging existing code and packages",
        level=CONFIDENT,
        prerequisites=("oop",),
        estimated_time=30,
        difficulty=3,
    ),
    Concept(
        id="project",
        title="Building Your First Project",
        description="Putting it all together in a real project",
        level=CONFIDENT,
        prerequisites=("modules",),
        estimated_time=60,
        difficulty=5,
    ),
)
