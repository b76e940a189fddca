"""Submission and grading Pydantic models"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"  # reserved for manual grading


class AnswerInput(BaseModel):
    """Answer as posted by a candidate"""
    model_config = ConfigDict(extra="ignore")
    question_id: str = Field(..., min_length=1)
    value: str = ""  # Selected option or text answer


class Answer(BaseModel):
    question_id: str
    value: str = ""
    is_correct: bool = False
    points: int = 0


class Submission(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)
    submission_id: str
    assessment_id: str
    candidate_id: str
    answers: List[Answer] = []
    score: int = 0
    status: SubmissionStatus = SubmissionStatus.IN_PROGRESS
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    # Phase system
    passed: bool = False
    next_phase_unlocked: bool = False
    shuffled_options: Dict[str, List[str]] = {}  # question_id -> option order


class AnswersPayload(BaseModel):
    """Body of save-progress and submit requests"""
    model_config = ConfigDict(extra="forbid")
    answers: List[AnswerInput] = []


class GradeResult(BaseModel):
    score: int
    total_marks: int
    passed: bool
    next_phase_unlocked: bool
    next_phase_id: Optional[str] = None  # only set when unlocked


class PhaseView(BaseModel):
    """What a caller sees when opening a phase"""
    assessment: Dict[str, Any]
    saved_answers: Dict[str, str] = {}
