"""
Grading service - scores a finished attempt against the answer key.

Only multiple-choice answers are auto-scored, by exact string comparison.
Coding and subjective answers are stored with is_correct=False and
points=0 and wait for a manual grading path.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..models import Answer, AnswerInput, Assessment, GradeResult, Submission, SubmissionStatus
from ..utils import new_submission_id, utcnow


def grade_answers(assessment: Assessment, answers: List[AnswerInput]) -> Tuple[List[Answer], int]:
    """
    Mark each answer and total the awarded points.

    Answers whose question id is not in the assessment are kept and score 0.
    """
    graded: List[Answer] = []
    score = 0
    for submitted in answers:
        answer = Answer(question_id=submitted.question_id, value=submitted.value)
        question = assessment.find_question(submitted.question_id)
        if question is not None and question.is_multiple_choice:
            if submitted.value == question.correct_answer:
                answer.is_correct = True
                answer.points = question.points
                score += question.points
        graded.append(answer)
    return graded, score


class GradingService:
    """Turns a candidate's final answers into a terminal submission record."""

    def grade(
        self,
        assessment: Assessment,
        candidate_id: str,
        answers: List[AnswerInput],
        started_at: Optional[datetime] = None,
    ) -> Tuple[Dict[str, Any], GradeResult]:
        """
        Score answers and build the submitted document and the caller's result.

        Pure: no store access. The caller persists the document.
        """
        graded, score = grade_answers(assessment, answers)
        passed = score >= assessment.passing_score
        next_phase_unlocked = passed and assessment.next_phase_id is not None
        now = utcnow()

        submission = Submission(
            submission_id=new_submission_id(),
            assessment_id=assessment.assessment_id,
            candidate_id=candidate_id,
            answers=graded,
            score=score,
            status=SubmissionStatus.SUBMITTED,
            started_at=started_at or now,
            submitted_at=now,
            passed=passed,
            next_phase_unlocked=next_phase_unlocked,
        )
        doc = submission.model_dump(exclude={"shuffled_options", "updated_at"})

        result = GradeResult(
            score=score,
            total_marks=assessment.total_marks,
            passed=passed,
            next_phase_unlocked=next_phase_unlocked,
            next_phase_id=assessment.next_phase_id if next_phase_unlocked else None,
        )
        return doc, result
