"""Assessment API — diagnostic submission seeds the learner's roadmap."""
from __future__ import annotations
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from learnpath.api.auth import get_current_user
from learnpath.api.roadmap import serialize_roadmap
from learnpath.application.roadmap_app_service import RoadmapAppService
from learnpath.container import get_roadmap_app_service

router = APIRouter(prefix="/api/assessment", tags=["assessment"])


class AssessmentResponseBody(BaseModel):
    question_id: str
    response_text: str = Field(..., min_length=1)


class AssessmentBody(BaseModel):
    responses: List[AssessmentResponseBody] = Field(..., min_length=1)


@router.post("/submit")
def submit_assessment(
    body: AssessmentBody,
    svc: RoadmapAppService = Depends(get_roadmap_app_service),
    current_user: dict = Depends(get_current_user),
):
    analysis, roadmap = svc.submit_assessment(
        current_user["sub"],
        [r.model_dump() for r in body.responses],
    )
    return {"success": True, "analysis": asdict(analysis), **serialize_roadmap(roadmap)}
