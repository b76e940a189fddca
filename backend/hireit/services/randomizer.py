"""
Per-candidate MCQ option ordering.

The first time a candidate opens a phase, each MCQ question's options are
shuffled and the order is stored on the in-progress submission. Every
later view of the same attempt replays the stored order.
"""

import logging
import random
from typing import Any, Dict, List, Optional

from ..models import Assessment, QuestionType
from ..utils import utcnow
from .store import SubmissionStore

logger = logging.getLogger(__name__)


def fisher_yates(options: List[str], rng: random.Random) -> List[str]:
    """Uniform shuffle of a copy of options."""
    shuffled = list(options)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def strip_answer_key(assessment: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of an assessment document with every correct_answer removed."""
    redacted = dict(assessment)
    redacted["questions"] = [
        {k: v for k, v in q.items() if k != "correct_answer"}
        for q in assessment.get("questions", [])
    ]
    return redacted


def _is_permutation(order: Optional[List[str]], options: List[str]) -> bool:
    return order is not None and sorted(order) == sorted(options)


class PresentationRandomizer:
    def __init__(self, submissions: SubmissionStore, rng: Optional[random.Random] = None):
        self.submissions = submissions
        # OS entropy; a seeded Random can be injected for tests
        self.rng = rng or random.SystemRandom()

    async def present(self, assessment: Assessment, candidate_id: str) -> Dict[str, Any]:
        """
        Build the candidate view of a phase.

        Returns {"assessment": <redacted doc>, "saved_answers": {qid: value}}.
        """
        attempt = await self.submissions.find_in_progress(assessment.assessment_id, candidate_id)
        stored = (attempt or {}).get("shuffled_options") or {}

        new_orders: Dict[str, List[str]] = {}
        for question in assessment.questions:
            if not question.is_multiple_choice or not question.options:
                continue
            if not _is_permutation(stored.get(question.id), question.options):
                new_orders[question.id] = fisher_yates(question.options, self.rng)

        if new_orders:
            attempt = await self.submissions.persist_shuffle(
                assessment.assessment_id, candidate_id, new_orders, utcnow()
            )
            stored = attempt.get("shuffled_options") or {}
            logger.debug(
                f"Persisted option order for {len(new_orders)} question(s) "
                f"on {assessment.assessment_id} / {candidate_id}"
            )

        doc = strip_answer_key(assessment.model_dump())
        for question in doc["questions"]:
            order = stored.get(question["id"])
            if question["type"] == QuestionType.MULTIPLE_CHOICE and _is_permutation(order, question["options"]):
                question["options"] = list(order)

        saved_answers = {
            a["question_id"]: a.get("value", "")
            for a in (attempt or {}).get("answers", [])
        }
        return {"assessment": doc, "saved_answers": saved_answers}
