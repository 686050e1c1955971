"""
Assessment / weak-point classification through an OpenRouter-compatible chat API.

Every reply crosses a trust boundary: transport errors and unparseable
replies degrade to the safe defaults, and everything that does parse is
normalized against the concept catalog before the engine sees it.
"""
from __future__ import annotations
import json
import logging
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Sequence

import requests

from learnpath.domain.common.result import Result
from learnpath.domain.common.structured import parse_structured_response
from learnpath.domain.knowledge_graph.graph import ConceptGraph
from learnpath.domain.knowledge_graph.models import AssessmentAnalysis, WeakPoint
from learnpath.domain.mastery.model import default_analysis, normalize_analysis
from learnpath.domain.remediation.policy import heuristic_weak_point, normalize_weak_point

logger = logging.getLogger(__name__)


class Classifier(ABC):

    @abstractmethod
    def analyze_assessment(self, responses: Sequence[Mapping[str, str]]) -> AssessmentAnalysis:
        ...

    @abstractmethod
    def classify_weak_point(
        self, concept_id: str, error_patterns: Sequence[str], attempts: int
    ) -> Optional[WeakPoint]:
        ...


class OpenRouterClassifier(Classifier):
    def __init__(
        self,
        graph: ConceptGraph,
        api_key: str,
        url: str,
        model: str,
        timeout: float = 20.0,
    ):
        self._graph = graph
        self._url = url
        self._model = model
        self._timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "X-Title": "learnpath",
            "Content-Type": "application/json",
        }

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _chat(self, system: str, user: str) -> Result[dict]:
        payload = {
            "model": self._model,
            "temperature": 0.3,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        try:
            response = requests.post(self._url, headers=self._headers, json=payload, timeout=self._timeout)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Classifier request failed: %s", e)
            return Result.fail(str(e))
        return parse_structured_response(content)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def analyze_assessment(self, responses: Sequence[Mapping[str, str]]) -> AssessmentAnalysis:
        concept_ids = ", ".join(self._graph.concept_ids)
        system = (
            "You assess a programming learner's diagnostic answers. Reply with one JSON object: "
            '{"overall_level": "beginner|intermediate|confident", '
            '"concept_confidence": {"<concept id>": 0.0-1.0}, '
            '"weak_points": ["<concept id>"], "insights": "...", "starting_concept": "<concept id>"}. '
            f"Valid concept ids: {concept_ids}."
        )
        result = self._chat(system, json.dumps(list(responses), indent=2))
        if not result.is_success:
            logger.warning("Falling back to default analysis: %s", result.error)
            return default_analysis(self._graph)
        return normalize_analysis(self._graph, result.value)

    def classify_weak_point(
        self, concept_id: str, error_patterns: Sequence[str], attempts: int
    ) -> Optional[WeakPoint]:
        if not error_patterns or attempts < 2:
            return None
        system = (
            "You classify a learner's repeated errors. Reply with one JSON object: "
            '{"weakness_type": "conceptual|foundational|application", "severity": 0.0-1.0, '
            '"root_cause": "...", "related_concepts": ["<concept id>"]}. '
            f"Valid concept ids: {', '.join(self._graph.concept_ids)}."
        )
        user = json.dumps({"concept_id": concept_id, "attempts": attempts, "error_patterns": list(error_patterns)})
        result = self._chat(system, user)
        if not result.is_success:
            return heuristic_weak_point(concept_id, error_patterns, attempts)
        return normalize_weak_point(self._graph, concept_id, result.value)
