"""
Cascade delete along a phase chain.

The walk is not transactional. If a step fails after at least one phase
has been removed, the walk stops and the partial count is reported as a
success; the rest of the chain is left in place.
"""

import logging

from .errors import NotFound, StoreUnavailable
from .store import AssessmentStore

logger = logging.getLogger(__name__)


class CascadeDeleter:
    def __init__(self, assessments: AssessmentStore, max_chain_length: int = 100):
        self.assessments = assessments
        self.max_chain_length = max_chain_length

    async def delete_chain(self, start_id: str, owner_id: str) -> int:
        """
        Delete start_id and every following phase owned by owner_id.

        Raises NotFound if the first assessment is absent or not owned.
        """
        current_id = start_id
        deleted_count = 0
        visited = set()

        while current_id:
            if current_id in visited or deleted_count >= self.max_chain_length:
                logger.warning(f"Stopping cascade from {start_id} at {current_id}: chain loops or is too long")
                break
            visited.add(current_id)

            try:
                doc = await self.assessments.get_owned(current_id, owner_id)
            except StoreUnavailable:
                if deleted_count == 0:
                    raise
                logger.warning(f"Cascade from {start_id} halted after {deleted_count} deletions (lookup failed)")
                break

            if doc is None:
                if deleted_count == 0:
                    raise NotFound("Assessment not found or permission denied")
                break

            next_id = doc.get("next_phase_id")

            try:
                await self.assessments.delete(current_id)
            except StoreUnavailable:
                if deleted_count == 0:
                    raise
                logger.warning(f"Cascade from {start_id} halted after {deleted_count} deletions (delete failed)")
                break

            deleted_count += 1
            logger.info(f"Deleted assessment {current_id} (cascade from {start_id})")
            current_id = next_id

        return deleted_count
