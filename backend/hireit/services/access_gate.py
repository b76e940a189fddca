"""Phase access gate: later phases open only after the previous one is passed."""

import logging
from typing import Any, Dict, NamedTuple, Optional

from .phase_chain import PhaseChainResolver
from .store import SubmissionStore

logger = logging.getLogger(__name__)

MUST_PASS_PREVIOUS = "Must pass previous phase"


class AccessDecision(NamedTuple):
    allowed: bool
    reason: Optional[str] = None


class AccessGate:
    def __init__(self, chain: PhaseChainResolver, submissions: SubmissionStore):
        self.chain = chain
        self.submissions = submissions

    async def check(self, candidate_id: str, assessment: Dict[str, Any]) -> AccessDecision:
        """
        Decide whether a candidate may open or answer this phase.

        Phase 1 is always open. A later phase with no predecessor on record
        is treated as standalone and left open.
        """
        if assessment.get("phase", 1) <= 1:
            return AccessDecision(True)

        previous = await self.chain.previous(assessment["assessment_id"])
        if previous is None:
            return AccessDecision(True)

        if await self.submissions.has_passed(previous["assessment_id"], candidate_id):
            return AccessDecision(True)

        logger.info(
            f"Gate denied candidate {candidate_id} on {assessment['assessment_id']} "
            f"(previous phase {previous['assessment_id']} not passed)"
        )
        return AccessDecision(False, MUST_PASS_PREVIOUS)
