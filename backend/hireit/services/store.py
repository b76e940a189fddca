"""
MongoDB-backed stores for assessments, submissions and user display data.

Every call is bounded by a deadline: reads by STORE_READ_TIMEOUT, writes
by STORE_WRITE_TIMEOUT. Timeouts and driver errors surface as
StoreUnavailable and are never retried here.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config.settings import Settings
from ..models import SubmissionStatus
from ..utils import new_submission_id
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}
IN_PROGRESS = SubmissionStatus.IN_PROGRESS.value
SUBMITTED = SubmissionStatus.SUBMITTED.value


class _DeadlineStore:
    """Shared deadline handling for the collection wrappers."""

    def __init__(self, settings: Settings):
        self.read_timeout = settings.STORE_READ_TIMEOUT
        self.write_timeout = settings.STORE_WRITE_TIMEOUT

    async def _read(self, awaitable, op: str):
        return await self._bounded(awaitable, self.read_timeout, op)

    async def _write(self, awaitable, op: str, passthrough=()):
        return await self._bounded(awaitable, self.write_timeout, op, passthrough)

    @staticmethod
    async def _bounded(awaitable, timeout: float, op: str, passthrough=()):
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except passthrough:
            raise
        except asyncio.TimeoutError:
            logger.error(f"Store operation '{op}' exceeded {timeout}s deadline")
            raise StoreUnavailable()
        except PyMongoError as e:
            logger.error(f"Store operation '{op}' failed: {e}")
            raise StoreUnavailable()


class AssessmentStore(_DeadlineStore):
    """Catalog of authored assessments."""

    def __init__(self, db: AsyncIOMotorDatabase, settings: Settings):
        super().__init__(settings)
        self.col = db.assessments

    async def insert(self, doc: Dict[str, Any]) -> None:
        await self._write(self.col.insert_one(doc), "assessments.insert")
        # insert_one adds _id to the passed dict
        doc.pop("_id", None)

    async def get(self, assessment_id: str) -> Optional[Dict[str, Any]]:
        return await self._read(
            self.col.find_one({"assessment_id": assessment_id}, NO_ID),
            "assessments.get",
        )

    async def get_owned(self, assessment_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        return await self._read(
            self.col.find_one({"assessment_id": assessment_id, "created_by": owner_id}, NO_ID),
            "assessments.get_owned",
        )

    async def replace_fields(self, assessment_id: str, owner_id: str, fields: Dict[str, Any]) -> int:
        """Overwrite gradeable fields on an owned assessment. Returns matched count."""
        result = await self._write(
            self.col.update_one(
                {"assessment_id": assessment_id, "created_by": owner_id},
                {"$set": fields},
            ),
            "assessments.replace_fields",
        )
        return result.matched_count

    async def delete(self, assessment_id: str) -> int:
        result = await self._write(
            self.col.delete_one({"assessment_id": assessment_id}),
            "assessments.delete",
        )
        return result.deleted_count

    async def list_page(self, skip: int, limit: int) -> List[Dict[str, Any]]:
        cursor = self.col.find({}, NO_ID).sort("created_at", -1).skip(skip).limit(limit)
        return await self._read(cursor.to_list(length=limit), "assessments.list_page")

    async def list_by_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        cursor = self.col.find({"created_by": owner_id}, NO_ID).sort("created_at", -1)
        return await self._read(cursor.to_list(length=None), "assessments.list_by_owner")

    async def find_by_next_phase(self, assessment_id: str) -> Optional[Dict[str, Any]]:
        """Reverse lookup: the assessment whose next_phase_id is this id."""
        return await self._read(
            self.col.find_one({"next_phase_id": assessment_id}, NO_ID),
            "assessments.find_by_next_phase",
        )


class SubmissionStore(_DeadlineStore):
    """Candidate attempts, keyed by (assessment, candidate) and status."""

    def __init__(self, db: AsyncIOMotorDatabase, settings: Settings):
        super().__init__(settings)
        self.col = db.submissions

    @staticmethod
    def _in_progress_filter(assessment_id: str, candidate_id: str) -> Dict[str, Any]:
        return {
            "assessment_id": assessment_id,
            "candidate_id": candidate_id,
            "status": IN_PROGRESS,
        }

    @staticmethod
    def _fresh_fields(now: datetime) -> Dict[str, Any]:
        return {
            "submission_id": new_submission_id(),
            "score": 0,
            "passed": False,
            "next_phase_unlocked": False,
            "started_at": now,
        }

    async def _upsert_in_progress(
        self,
        assessment_id: str,
        candidate_id: str,
        update: Dict[str, Any],
        op: str,
    ) -> Dict[str, Any]:
        """
        Apply update to the in-progress attempt, inserting it if absent.

        Two concurrent upserts can both miss the filter; the partial unique
        index lets only one insert win. The loser retries once, which then
        matches the winner's record.
        """
        query = self._in_progress_filter(assessment_id, candidate_id)

        def attempt():
            return self.col.find_one_and_update(
                query,
                update,
                projection=NO_ID,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )

        try:
            return await self._write(attempt(), op, passthrough=(DuplicateKeyError,))
        except DuplicateKeyError:
            logger.info(f"Concurrent attempt creation on {assessment_id} / {candidate_id}, retrying {op}")
        return await self._write(attempt(), op)

    async def find_in_progress(self, assessment_id: str, candidate_id: str) -> Optional[Dict[str, Any]]:
        return await self._read(
            self.col.find_one(self._in_progress_filter(assessment_id, candidate_id), NO_ID),
            "submissions.find_in_progress",
        )

    async def upsert_progress(
        self,
        assessment_id: str,
        candidate_id: str,
        answers: List[Dict[str, Any]],
        now: datetime,
    ) -> Dict[str, Any]:
        """Replace answers on the in-progress attempt, creating it if needed."""
        on_insert = self._fresh_fields(now)
        on_insert["shuffled_options"] = {}
        return await self._upsert_in_progress(
            assessment_id,
            candidate_id,
            {"$set": {"answers": answers, "updated_at": now}, "$setOnInsert": on_insert},
            "submissions.upsert_progress",
        )

    async def persist_shuffle(
        self,
        assessment_id: str,
        candidate_id: str,
        orders: Dict[str, List[str]],
        now: datetime,
    ) -> Dict[str, Any]:
        """Store option orders on the in-progress attempt, creating it if needed."""
        on_insert = self._fresh_fields(now)
        on_insert["answers"] = []
        update = {f"shuffled_options.{qid}": order for qid, order in orders.items()}
        update["updated_at"] = now
        return await self._upsert_in_progress(
            assessment_id,
            candidate_id,
            {"$set": update, "$setOnInsert": on_insert},
            "submissions.persist_shuffle",
        )

    async def insert_submitted(self, doc: Dict[str, Any]) -> None:
        await self._write(self.col.insert_one(doc), "submissions.insert_submitted")
        doc.pop("_id", None)

    async def has_passed(self, assessment_id: str, candidate_id: str) -> bool:
        count = await self._read(
            self.col.count_documents(
                {"assessment_id": assessment_id, "candidate_id": candidate_id, "passed": True},
                limit=1,
            ),
            "submissions.has_passed",
        )
        return count > 0

    async def latest_submitted(self, assessment_id: str, candidate_id: str) -> Optional[Dict[str, Any]]:
        return await self._read(
            self.col.find_one(
                {"assessment_id": assessment_id, "candidate_id": candidate_id, "status": SUBMITTED},
                NO_ID,
                sort=[("submitted_at", -1)],
            ),
            "submissions.latest_submitted",
        )

    async def list_for_assessment(self, assessment_id: str) -> List[Dict[str, Any]]:
        cursor = self.col.find({"assessment_id": assessment_id}, NO_ID).sort("submitted_at", -1)
        return await self._read(cursor.to_list(length=None), "submissions.list_for_assessment")

    async def list_for_candidate(self, candidate_id: str) -> List[Dict[str, Any]]:
        cursor = self.col.find({"candidate_id": candidate_id}, NO_ID).sort("started_at", -1)
        return await self._read(cursor.to_list(length=None), "submissions.list_for_candidate")


class UserStore(_DeadlineStore):
    """Read-only access to user display data."""

    def __init__(self, db: AsyncIOMotorDatabase, settings: Settings):
        super().__init__(settings)
        self.col = db.users

    async def find_many(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        cursor = self.col.find(
            {"user_id": {"$in": ids}},
            {"_id": 0, "user_id": 1, "name": 1, "email": 1, "phone": 1},
        )
        users = await self._read(cursor.to_list(length=None), "users.find_many")
        return {u["user_id"]: u for u in users}
