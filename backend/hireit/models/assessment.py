"""Assessment-related Pydantic models"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MCQ"
    CODING = "CODING"
    SUBJECTIVE = "SUBJECTIVE"


class Question(BaseModel):
    """A single question. correct_answer is only meaningful for MCQ."""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)
    id: Optional[str] = None
    text: str = Field(..., min_length=1)
    type: QuestionType
    options: List[str] = []  # MCQ only
    correct_answer: Optional[str] = None  # MCQ only, authoring view
    points: int = Field(..., ge=0)

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == QuestionType.MULTIPLE_CHOICE


class AssessmentDraft(BaseModel):
    """Everything an author may write on create or full replace"""
    model_config = ConfigDict(extra="forbid")
    title: str = Field(..., min_length=1)
    description: str = ""
    duration: int = Field(0, ge=0)  # minutes
    questions: List[Question] = []
    phase: int = Field(1, ge=1)
    passing_score: int = Field(0, ge=0)
    total_marks: int = Field(0, ge=0)  # author-declared, not recomputed
    next_phase_id: Optional[str] = None


class Assessment(BaseModel):
    model_config = ConfigDict(extra="ignore")
    assessment_id: str
    title: str
    description: str = ""
    duration: int = 0
    questions: List[Question] = []
    created_by: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Phase system
    phase: int = 1
    passing_score: int = 0
    total_marks: int = 0
    next_phase_id: Optional[str] = None

    def find_question(self, question_id: str) -> Optional[Question]:
        """First question with this id, if any."""
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
