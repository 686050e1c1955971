"""Learning API — lesson plans, checkpoints, completion and weak points."""
from __future__ import annotations
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from learnpath.api.auth import get_current_user, optional_current_user
from learnpath.api.roadmap import serialize_roadmap
from learnpath.application.roadmap_app_service import RoadmapAppService
from learnpath.container import get_roadmap_app_service

router = APIRouter(prefix="/api", tags=["learn"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class CheckpointBody(BaseModel):
    checkpoint_index: int = Field(..., ge=0)
    understanding_score: Optional[float] = None
    response_text: Optional[str] = None


class WeakPointBody(BaseModel):
    concept_id: str
    error_patterns: List[str]
    attempts: Optional[int] = None


def _require_concept(svc: RoadmapAppService, concept_id: str) -> None:
    if concept_id not in svc.domain.graph:
        raise HTTPException(status_code=404, detail=f"Concept '{concept_id}' not found")


# ------------------------------------------------------------------
# Lessons
# ------------------------------------------------------------------
@router.get("/learn/{concept_id}/plan")
def get_lesson_plan(
    concept_id: str,
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
    current_user: Optional[dict] = Depends(optional_current_user),
):
    _require_concept(svc, concept_id)
    result = svc.lesson_plan(concept_id, current_user["sub"] if current_user else None)
    if not result.is_success:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.error)
    return asdict(result.value)


@router.post("/learn/{concept_id}/checkpoint")
def submit_checkpoint(
    concept_id: str,
    body: CheckpointBody,
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
    current_user: dict = Depends(get_current_user),
):
    _require_concept(svc, concept_id)
    if body.understanding_score is None and not body.response_text:
        raise HTTPException(status_code=400, detail="understanding_score or response_text required")
    result = svc.record_checkpoint(
        current_user["sub"],
        concept_id,
        body.checkpoint_index,
        understanding_score=body.understanding_score,
        response_text=body.response_text,
    )
    if not result.is_success:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.error)
    return {"success": True, **result.value}


@router.post("/learn/{concept_id}/complete")
def complete_concept(
    concept_id: str,
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
    current_user: dict = Depends(get_current_user),
):
    _require_concept(svc, concept_id)
    result = svc.complete_concept(current_user["sub"], concept_id)
    if not result.is_success:
        raise HTTPException(status_code=400, detail=result.error)
    roadmap, unlocked = result.value
    return {"success": True, "next_concepts": unlocked, **serialize_roadmap(roadmap)}


# ------------------------------------------------------------------
# Weak points
# ------------------------------------------------------------------
@router.post("/weak-points")
def detect_weak_points(
    body: WeakPointBody,
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
    current_user: dict = Depends(get_current_user),
):
    attempts = body.attempts if body.attempts is not None else len(body.error_patterns)
    result = svc.detect_weak_point(current_user["sub"], body.concept_id, body.error_patterns, attempts)
    if not result.is_success:
        raise HTTPException(status_code=404, detail=result.error)

    weak_point, needs_remediation = result.value
    if weak_point is None:
        return {"detected": False, "message": "No weak points detected yet"}
    return {"detected": True, "weak_point": asdict(weak_point), "needs_remediation": needs_remediation}


@router.get("/weak-points")
def list_weak_points(
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
    current_user: dict = Depends(get_current_user),
):
    return {"weak_points": svc.list_weak_points(current_user["sub"])}
