"""
Assessment service - coordinates the phased assessment lifecycle.

FLOW:
1. Interviewer authors phases → each may point at the next via next_phase_id
2. Candidate opens a phase → Access Gate → Presentation Randomizer
3. Candidate saves progress repeatedly → in-progress upsert
4. Candidate submits → Grading → new submitted record → next phase unlocked?
5. Interviewer deletes a phase → Cascade Deleter walks the rest of the chain
"""

import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..cache import ASSESSMENTS_LIST_KEY, ResponseCache
from ..config.settings import Settings
from ..models import (
    Answer,
    AnswerInput,
    Assessment,
    AssessmentDraft,
    GradeResult,
    Question,
    ROLE_INTERVIEWER,
    User,
)
from ..utils import (
    is_valid_assessment_id,
    is_valid_question_id,
    new_assessment_id,
    new_question_id,
    normalize_pagination,
    utcnow,
)
from .access_gate import AccessGate
from .cascade import CascadeDeleter
from .errors import NotFound, PermissionDenied, PhaseLocked, ValidationError
from .grading import GradingService
from .phase_chain import PhaseChainResolver
from .randomizer import PresentationRandomizer, strip_answer_key
from .store import AssessmentStore, SubmissionStore, UserStore

logger = logging.getLogger(__name__)

NOT_FOUND_OR_DENIED = "Assessment not found or permission denied"


class AssessmentService:
    """Entry point for every assessment and submission operation."""

    def __init__(self, db: AsyncIOMotorDatabase, cache: ResponseCache, settings: Settings):
        self.settings = settings
        self.cache = cache
        self.assessments = AssessmentStore(db, settings)
        self.submissions = SubmissionStore(db, settings)
        self.users = UserStore(db, settings)
        self.chain = PhaseChainResolver(self.assessments, settings.MAX_CHAIN_LENGTH)
        self.gate = AccessGate(self.chain, self.submissions)
        self.randomizer = PresentationRandomizer(self.submissions)
        self.grader = GradingService()
        self.deleter = CascadeDeleter(self.assessments, settings.MAX_CHAIN_LENGTH)

    # ============ HELPERS ============

    @staticmethod
    def _require_id(assessment_id: str) -> None:
        if not is_valid_assessment_id(assessment_id):
            raise ValidationError("Invalid assessment ID")

    @staticmethod
    def _require_candidate(user: User) -> None:
        if not user.is_candidate:
            raise PermissionDenied("Only candidates can take assessments")

    @staticmethod
    def _require_unique_answers(answers: List[AnswerInput]) -> None:
        seen = set()
        for answer in answers:
            if answer.question_id in seen:
                raise ValidationError(f"Duplicate answer for question: {answer.question_id}")
            seen.add(answer.question_id)

    @staticmethod
    def _prepare_questions(questions: List[Question]) -> List[Question]:
        """Assign missing question ids and reject unusable or duplicate ones."""
        seen = set()
        prepared = []
        for question in questions:
            question = question.model_copy()
            if not question.id:
                question.id = new_question_id()
            elif not is_valid_question_id(question.id):
                raise ValidationError(f"Invalid question ID: {question.id!r}")
            if question.id in seen:
                raise ValidationError(f"Duplicate question ID: {question.id}")
            seen.add(question.id)
            prepared.append(question)
        return prepared

    @staticmethod
    def _shows_answer_key(user: User, doc: Dict[str, Any]) -> bool:
        return user.is_admin or doc.get("created_by") == user.user_id

    def _view_for(self, user: User, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Authoring view for the creator and admins, redacted for everyone else."""
        if self._shows_answer_key(user, doc):
            return doc
        return strip_answer_key(doc)

    async def _load(self, assessment_id: str) -> Assessment:
        doc = await self.assessments.get(assessment_id)
        if doc is None:
            raise NotFound("Assessment not found")
        return Assessment(**doc)

    async def _enforce_gate(self, user: User, assessment: Assessment) -> None:
        decision = await self.gate.check(user.user_id, assessment.model_dump())
        if not decision.allowed:
            raise PhaseLocked(decision.reason)

    def _invalidate_listing(self) -> None:
        self.cache.delete(ASSESSMENTS_LIST_KEY)

    # ============ AUTHORING ============

    async def create_assessment(self, user: User, draft: AssessmentDraft) -> str:
        """Create an assessment owned by the caller. Returns its id."""
        if user.role != ROLE_INTERVIEWER:
            raise PermissionDenied("Only interviewers can create assessments")

        assessment_id = new_assessment_id()
        questions = self._prepare_questions(draft.questions)
        await self.chain.validate_link(assessment_id, draft.next_phase_id)

        now = utcnow()
        assessment = Assessment(
            assessment_id=assessment_id,
            created_by=user.user_id,
            created_at=now,
            updated_at=now,
            **draft.model_dump(exclude={"questions"}),
            questions=questions,
        )
        await self.assessments.insert(assessment.model_dump())
        self._invalidate_listing()

        logger.info(f"Assessment {assessment_id} (phase {assessment.phase}) created by {user.user_id}")
        return assessment_id

    async def update_assessment(self, user: User, assessment_id: str, draft: AssessmentDraft) -> None:
        """Replace every gradeable field. Only the creator may update."""
        self._require_id(assessment_id)

        if await self.assessments.get_owned(assessment_id, user.user_id) is None:
            raise NotFound(NOT_FOUND_OR_DENIED)

        questions = self._prepare_questions(draft.questions)
        await self.chain.validate_link(assessment_id, draft.next_phase_id)

        fields = draft.model_dump(exclude={"questions"})
        fields["questions"] = [q.model_dump() for q in questions]
        fields["updated_at"] = utcnow()

        matched = await self.assessments.replace_fields(assessment_id, user.user_id, fields)
        if matched == 0:
            raise NotFound(NOT_FOUND_OR_DENIED)
        self._invalidate_listing()

        logger.info(f"Assessment {assessment_id} updated by {user.user_id}")

    async def delete_assessment_chain(self, user: User, assessment_id: str) -> int:
        """Delete an assessment and every later phase the caller owns."""
        self._require_id(assessment_id)
        deleted_count = await self.deleter.delete_chain(assessment_id, user.user_id)
        self._invalidate_listing()

        logger.info(f"Cascade delete from {assessment_id} by {user.user_id}: {deleted_count} removed")
        return deleted_count

    # ============ CATALOG ============

    async def list_assessments(self, user: User, page: int = 1, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest-first page of assessments, redacted for the caller."""
        default_limit = self.settings.DEFAULT_PAGE_LIMIT
        page, limit, skip = normalize_pagination(
            page,
            default_limit if limit is None else limit,
            default_limit,
            self.settings.MAX_PAGE_LIMIT,
        )

        # Only the default first page is cached
        cacheable = page == 1 and limit == default_limit
        docs = self.cache.get(ASSESSMENTS_LIST_KEY) if cacheable else None
        if docs is None:
            # A write landing during the store read bumps the generation
            generation = self.cache.generation(ASSESSMENTS_LIST_KEY)
            docs = await self.assessments.list_page(skip, limit)
            if cacheable:
                self.cache.set_if_generation(
                    ASSESSMENTS_LIST_KEY, docs, generation, self.settings.ASSESSMENTS_CACHE_TTL_SECONDS
                )

        return [self._view_for(user, doc) for doc in docs]

    async def list_my_assessments(self, user: User) -> List[Dict[str, Any]]:
        return await self.assessments.list_by_owner(user.user_id)

    # ============ TAKING A PHASE ============

    async def get_phase_view(self, user: User, assessment_id: str) -> Dict[str, Any]:
        """
        Open a phase.

        Candidates pass the access gate and get the shuffled, redacted view
        plus any answers saved on their in-progress attempt. Other roles get
        the assessment as their role allows and no saved answers.
        """
        self._require_id(assessment_id)
        assessment = await self._load(assessment_id)

        if user.is_candidate:
            await self._enforce_gate(user, assessment)
            return await self.randomizer.present(assessment, user.user_id)

        return {"assessment": self._view_for(user, assessment.model_dump()), "saved_answers": {}}

    async def save_progress(self, user: User, assessment_id: str, answers: List[AnswerInput]) -> Dict[str, Any]:
        """Overwrite the answers on the caller's in-progress attempt."""
        self._require_candidate(user)
        self._require_id(assessment_id)
        self._require_unique_answers(answers)
        assessment = await self._load(assessment_id)
        await self._enforce_gate(user, assessment)

        docs = [Answer(question_id=a.question_id, value=a.value).model_dump() for a in answers]
        attempt = await self.submissions.upsert_progress(assessment_id, user.user_id, docs, utcnow())

        return {
            "message": "Progress saved",
            "submission_id": attempt["submission_id"],
            "saved": len(docs),
        }

    async def submit(self, user: User, assessment_id: str, answers: List[AnswerInput]) -> GradeResult:
        """Grade final answers and store them as a new submitted record."""
        self._require_candidate(user)
        self._require_id(assessment_id)
        self._require_unique_answers(answers)
        assessment = await self._load(assessment_id)
        await self._enforce_gate(user, assessment)

        attempt = await self.submissions.find_in_progress(assessment_id, user.user_id)
        started_at = attempt.get("started_at") if attempt else None

        doc, result = self.grader.grade(assessment, user.user_id, answers, started_at=started_at)
        await self.submissions.insert_submitted(doc)

        logger.info(
            f"Submission {doc['submission_id']} on {assessment_id} by {user.user_id}: "
            f"score={result.score}/{result.total_marks} passed={result.passed} "
            f"unlocked={result.next_phase_unlocked}"
        )
        return result

    # ============ RESULTS ============

    async def list_submissions_for_assessment(self, user: User, assessment_id: str) -> List[Dict[str, Any]]:
        """All attempts on an owned assessment, with candidate display info."""
        self._require_id(assessment_id)
        if await self.assessments.get_owned(assessment_id, user.user_id) is None:
            raise NotFound(NOT_FOUND_OR_DENIED)

        submissions = await self.submissions.list_for_assessment(assessment_id)
        users = await self.users.find_many(s["candidate_id"] for s in submissions)

        for sub in submissions:
            candidate = users.get(sub["candidate_id"])
            if candidate:
                sub["candidate_name"] = candidate.get("name", "")
                sub["candidate_email"] = candidate.get("email", "")
                sub["candidate_phone"] = candidate.get("phone") or ""
            else:
                sub["candidate_name"] = "Deleted User" if sub.get("candidate_id") else "Unknown"
                sub["candidate_email"] = "Unknown"
                sub["candidate_phone"] = ""
        return submissions

    async def get_my_result(self, user: User, assessment_id: str) -> Dict[str, Any]:
        """Most recent submitted attempt by the caller on this assessment."""
        self._require_id(assessment_id)
        submission = await self.submissions.latest_submitted(assessment_id, user.user_id)
        if submission is None:
            raise NotFound("Result not found")

        assessment = await self.assessments.get(assessment_id)
        submission.pop("shuffled_options", None)
        submission["total_marks"] = assessment.get("total_marks", 0) if assessment else 0
        submission["next_phase_id"] = (
            assessment.get("next_phase_id")
            if assessment and submission.get("next_phase_unlocked")
            else None
        )
        return submission

    async def list_my_submissions(self, user: User) -> List[Dict[str, Any]]:
        submissions = await self.submissions.list_for_candidate(user.user_id)
        for sub in submissions:
            sub.pop("shuffled_options", None)
        return submissions
