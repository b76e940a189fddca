"""Pydantic models for the HireIt assessment backend"""

from .user import User, ROLE_CANDIDATE, ROLE_INTERVIEWER, ROLE_ADMIN
from .assessment import (
    QuestionType,
    Question,
    Assessment,
    AssessmentDraft,
)
from .submission import (
    SubmissionStatus,
    AnswerInput,
    Answer,
    Submission,
    AnswersPayload,
    GradeResult,
    PhaseView,
)

__all__ = [
    # User models
    "User",
    "ROLE_CANDIDATE",
    "ROLE_INTERVIEWER",
    "ROLE_ADMIN",

    # Assessment models
    "QuestionType",
    "Question",
    "Assessment",
    "AssessmentDraft",

    # Submission models
    "SubmissionStatus",
    "AnswerInput",
    "Answer",
    "Submission",
    "AnswersPayload",
    "GradeResult",
    "PhaseView",
]
