"""Roadmap API — personalized roadmap views and client-side completion updates."""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from learnpath.api.auth import optional_current_user
from learnpath.application.roadmap_app_service import RoadmapAppService
from learnpath.container import get_roadmap_app_service
from learnpath.domain.knowledge_graph.models import Roadmap, RoadmapEntry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["roadmap"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class CompletionBody(BaseModel):
    roadmap: List[Dict[str, Any]] = Field(..., min_length=1)
    completed_concept_id: str = Field(..., min_length=1)
    final_mastery: float = 1.0
    final_confidence: float = 1.0


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def serialize_entry(e: RoadmapEntry) -> dict:
    return {
        "id": e.concept.id,
        "title": e.concept.title,
        "description": e.concept.description,
        "level": e.concept.level,
        "difficulty": e.concept.difficulty,
        "prerequisites": list(e.concept.prerequisites),
        "status": e.status,
        "mastery_score": e.mastery_score,
        "confidence_score": e.confidence_score,
    }


def serialize_roadmap(roadmap: Roadmap) -> dict:
    completed = len(roadmap.completed_ids)
    return {
        "roadmap": [serialize_entry(e) for e in roadmap.entries],
        "progress": {
            "completed": completed,
            "total": len(roadmap.entries),
            "percent": round(roadmap.overall_progress),
        },
        "next_recommended_concept": roadmap.next_recommended_concept,
    }


def _parse_confidence(raw: Optional[str]) -> dict:
    """Query-param confidence map; anything unusable is an empty map."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring invalid conceptConfidence parameter")
        return {}
    return parsed if isinstance(parsed, dict) else {}


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/api/roadmap")
def get_roadmap(
    concept_confidence: Optional[str] = Query(None, alias="conceptConfidence"),
    completed: Optional[str] = Query(None),
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
    current_user: Optional[dict] = Depends(optional_current_user),
):
    if current_user:
        return serialize_roadmap(svc.get_roadmap(current_user["sub"]))

    completed_ids = [c.strip() for c in (completed or "").split(",") if c.strip()]
    return serialize_roadmap(svc.preview_roadmap(_parse_confidence(concept_confidence), completed_ids))


@router.post("/api/roadmap")
def update_roadmap(
    body: CompletionBody,
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
):
    roadmap = svc.apply_completion(
        body.roadmap,
        body.completed_concept_id,
        body.final_mastery,
        body.final_confidence,
    )
    return serialize_roadmap(roadmap)


@router.get("/api/guest/roadmap")
def guest_roadmap(svc: RoadmapAppService = Depends(get_roadmap_app_service)):
    data = serialize_roadmap(svc.preview_roadmap({}, []))
    data["is_guest"] = True
    return data
