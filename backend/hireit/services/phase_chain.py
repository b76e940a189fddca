"""
Phase chain resolution.

Assessments form a singly linked chain through next_phase_id. There is no
stored back-reference; the predecessor is found by a reverse lookup on
next_phase_id (indexed, see main._create_indexes).
"""

import logging
from typing import Any, Dict, List, Optional

from .errors import ValidationError
from .store import AssessmentStore

logger = logging.getLogger(__name__)


class PhaseChainResolver:
    """Forward and backward traversal of phase chains."""

    def __init__(self, assessments: AssessmentStore, max_chain_length: int = 100):
        self.assessments = assessments
        self.max_chain_length = max_chain_length

    @staticmethod
    def next_phase_id(assessment: Dict[str, Any]) -> Optional[str]:
        return assessment.get("next_phase_id") or None

    async def previous(self, assessment_id: str) -> Optional[Dict[str, Any]]:
        """Assessment pointing at this one, or None for a chain head."""
        return await self.assessments.find_by_next_phase(assessment_id)

    async def chain_from(self, start_id: str) -> List[str]:
        """
        Ids reachable from start_id, start included, following next_phase_id.

        Stops at a missing record, a repeated id, or max_chain_length.
        """
        chain: List[str] = []
        current_id = start_id
        while current_id and len(chain) < self.max_chain_length:
            if current_id in chain:
                break
            doc = await self.assessments.get(current_id)
            if doc is None:
                break
            chain.append(current_id)
            current_id = self.next_phase_id(doc)
        return chain

    async def validate_link(self, assessment_id: str, next_phase_id: Optional[str]) -> None:
        """
        Reject a next_phase_id that would break the chain invariants.

        The target must exist, must not be this assessment, must not
        already have a different predecessor, and must not lead back here.
        """
        if not next_phase_id:
            return

        if next_phase_id == assessment_id:
            raise ValidationError("An assessment cannot be its own next phase")

        target = await self.assessments.get(next_phase_id)
        if target is None:
            raise ValidationError("Next phase assessment not found")

        existing = await self.previous(next_phase_id)
        if existing and existing["assessment_id"] != assessment_id:
            raise ValidationError("Next phase is already linked from another assessment")

        # Walk forward from the target; reaching ourselves means a cycle
        chain = await self.chain_from(next_phase_id)
        if assessment_id in chain:
            logger.info(f"Rejected cyclic link {assessment_id} -> {next_phase_id}")
            raise ValidationError("Linking this phase would create a cycle")
        if len(chain) >= self.max_chain_length:
            raise ValidationError(
                f"Phase chain exceeds {self.max_chain_length} assessments"
            )
