"""
Assessment authoring and catalog routes.

Endpoints:
- POST   /api/assessments
- GET    /api/assessments
- GET    /api/assessments/my
- GET    /api/assessments/{assessment_id}
- PUT    /api/assessments/{assessment_id}
- DELETE /api/assessments/{assessment_id}
- GET    /api/assessments/{assessment_id}/submissions
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..models import AssessmentDraft, PhaseView, User
from ..services import AssessmentService
from .deps import get_assessment_service, get_current_user


def create_assessment_routes() -> APIRouter:
    """Create assessment routes."""

    router = APIRouter(prefix="/api/assessments", tags=["assessments"])

    @router.post("", status_code=201)
    async def create_assessment(
        draft: AssessmentDraft,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """Create an assessment (interviewers only)."""
        assessment_id = await service.create_assessment(user, draft)
        return {"message": "Assessment created successfully", "id": assessment_id}

    @router.get("")
    async def list_assessments(
        page: int = Query(1),
        limit: Optional[int] = Query(None),
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """List assessments, most recent first."""
        return await service.list_assessments(user, page, limit)

    @router.get("/my")
    async def list_my_assessments(
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """List assessments created by the caller."""
        return await service.list_my_assessments(user)

    @router.get("/{assessment_id}", response_model=PhaseView)
    async def get_assessment(
        assessment_id: str,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """Open a phase. Candidates must have passed the previous phase."""
        return await service.get_phase_view(user, assessment_id)

    @router.put("/{assessment_id}")
    async def update_assessment(
        assessment_id: str,
        draft: AssessmentDraft,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """Replace an assessment's content (creator only)."""
        await service.update_assessment(user, assessment_id, draft)
        return {"message": "Assessment updated successfully"}

    @router.delete("/{assessment_id}")
    async def delete_assessment(
        assessment_id: str,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """Delete an assessment and its linked later phases."""
        deleted_count = await service.delete_assessment_chain(user, assessment_id)
        return {
            "message": "Assessment and linked phases deleted successfully",
            "deleted_count": deleted_count,
        }

    @router.get("/{assessment_id}/submissions")
    async def get_submissions(
        assessment_id: str,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """All submissions for an assessment the caller owns."""
        return await service.list_submissions_for_assessment(user, assessment_id)

    return router
