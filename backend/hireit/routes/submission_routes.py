"""
Candidate attempt routes.

Endpoints:
- POST /api/assessments/{assessment_id}/progress
- POST /api/assessments/{assessment_id}/submit
- GET  /api/assessments/{assessment_id}/result
- GET  /api/submissions/me
"""

from fastapi import APIRouter, Depends

from ..models import AnswersPayload, User
from ..services import AssessmentService
from .deps import get_assessment_service, get_current_user


def create_submission_routes() -> APIRouter:
    """Create submission routes."""

    router = APIRouter(prefix="/api", tags=["submissions"])

    @router.post("/assessments/{assessment_id}/progress")
    async def save_progress(
        assessment_id: str,
        payload: AnswersPayload,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """Save answers on the in-progress attempt."""
        return await service.save_progress(user, assessment_id, payload.answers)

    @router.post("/assessments/{assessment_id}/submit", status_code=201)
    async def submit_assessment(
        assessment_id: str,
        payload: AnswersPayload,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """Grade and record a final attempt."""
        result = await service.submit(user, assessment_id, payload.answers)
        response = {"message": "Assessment submitted successfully"}
        response.update(result.model_dump(exclude_none=True))
        return response

    @router.get("/assessments/{assessment_id}/result")
    async def get_result(
        assessment_id: str,
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        """Latest graded attempt by the caller."""
        return await service.get_my_result(user, assessment_id)

    @router.get("/submissions/me")
    async def get_my_submissions(
        user: User = Depends(get_current_user),
        service: AssessmentService = Depends(get_assessment_service),
    ):
        return await service.list_my_submissions(user)

    return router
