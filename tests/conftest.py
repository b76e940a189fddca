import asyncio
import copy
import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from pymongo import ReturnDocument

from hireit.cache import ResponseCache
from hireit.config.settings import Settings
from hireit.main import create_app
from hireit.models import AssessmentDraft, User
from hireit.services import AssessmentService


_object_ids = itertools.count(1)


def _get_path(doc, key):
    for part in key.split("."):
        if not isinstance(doc, dict) or part not in doc:
            return None
        doc = doc[part]
    return doc


def _set_path(doc, key, value):
    parts = key.split(".")
    for part in parts[:-1]:
        doc = doc.setdefault(part, {})
    doc[parts[-1]] = value


def _matches(doc, query):
    for key, expected in query.items():
        actual = _get_path(doc, key)
        if isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


def _project(doc, projection):
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    includes = [k for k, v in projection.items() if v and k != "_id"]
    if includes:
        doc = {k: doc[k] for k in includes if k in doc}
    elif projection.get("_id") == 0:
        doc.pop("_id", None)
    return doc


def _sorted(docs, key, direction):
    present = [d for d in docs if d.get(key) is not None]
    missing = [d for d in docs if d.get(key) is None]
    present.sort(key=lambda d: d[key], reverse=direction < 0)
    return present + missing if direction < 0 else missing + present


class FakeCursor:
    def __init__(self, docs, projection):
        self._docs = docs
        self._projection = projection
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction=1):
        self._docs = _sorted(self._docs, key, direction)
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs[self._skip:]
        if self._limit:
            docs = docs[:self._limit]
        if length:
            docs = docs[:length]
        return [_project(d, self._projection) for d in docs]


class FakeCollection:
    """Just enough of motor's AsyncIOMotorCollection for the stores."""

    def __init__(self):
        self.docs = []
        self.indexes = []

    def _find(self, query):
        return [d for d in self.docs if _matches(d, query)]

    def find(self, query=None, projection=None):
        return FakeCursor(self._find(query or {}), projection)

    async def find_one(self, query=None, projection=None, sort=None):
        docs = self._find(query or {})
        for key, direction in sort or []:
            docs = _sorted(docs, key, direction)
        return _project(docs[0], projection) if docs else None

    async def insert_one(self, doc):
        doc["_id"] = next(_object_ids)
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    def _apply(self, doc, update, inserting):
        for key, value in update.get("$set", {}).items():
            _set_path(doc, key, copy.deepcopy(value))
        if inserting:
            for key, value in update.get("$setOnInsert", {}).items():
                _set_path(doc, key, copy.deepcopy(value))

    def _upsert(self, query, update):
        doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
        doc["_id"] = next(_object_ids)
        self._apply(doc, update, inserting=True)
        self.docs.append(doc)
        return doc

    async def update_one(self, query, update, upsert=False):
        matches = self._find(query)
        if matches:
            self._apply(matches[0], update, inserting=False)
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            doc = self._upsert(query, update)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=doc["_id"])
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def find_one_and_update(self, query, update, projection=None, upsert=False,
                                  return_document=ReturnDocument.BEFORE):
        matches = self._find(query)
        if matches:
            before = copy.deepcopy(matches[0])
            self._apply(matches[0], update, inserting=False)
            after = matches[0]
        elif upsert:
            before = None
            after = self._upsert(query, update)
        else:
            return None
        if return_document == ReturnDocument.AFTER:
            return _project(after, projection)
        return _project(before, projection) if before else None

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, query, limit=None):
        count = len(self._find(query))
        return min(count, limit) if limit else count

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return kwargs.get("name", "index")


class FakeDB:
    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        return self._collections.setdefault(name, FakeCollection())

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


def run(coro):
    return asyncio.run(coro)


def mcq(qid, answer="B", points=10, options=("A", "B", "C", "D")):
    return {
        "id": qid,
        "text": f"Question {qid}",
        "type": "MCQ",
        "options": list(options),
        "correct_answer": answer,
        "points": points,
    }


def make_draft(**overrides):
    data = {
        "title": "Phase 1",
        "description": "Screening",
        "duration": 30,
        "questions": [mcq("q1")],
        "phase": 1,
        "passing_score": 10,
        "total_marks": 10,
    }
    data.update(overrides)
    return AssessmentDraft(**data)


@pytest.fixture
def db():
    return FakeDB()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def cache():
    return ResponseCache(default_ttl_seconds=300)


@pytest.fixture
def service(db, cache, settings):
    return AssessmentService(db, cache, settings)


@pytest.fixture
def interviewer():
    return User(user_id="user_int1", email="int1@example.com", name="Ivy Interviewer", role="interviewer")


@pytest.fixture
def other_interviewer():
    return User(user_id="user_int2", email="int2@example.com", name="Omar Interviewer", role="interviewer")


@pytest.fixture
def candidate():
    return User(user_id="user_cand1", email="cand1@example.com", name="Cara Candidate",
                phone="555-0100", role="candidate")


@pytest.fixture
def admin():
    return User(user_id="user_admin", email="admin@example.com", name="Ada Admin", role="admin")


@pytest.fixture
def chain(service, interviewer):
    """Phases A -> B -> C owned by the interviewer. Returns (a, b, c)."""
    c = run(service.create_assessment(interviewer, make_draft(title="Phase 3", phase=3)))
    b = run(service.create_assessment(interviewer, make_draft(title="Phase 2", phase=2, next_phase_id=c)))
    a = run(service.create_assessment(interviewer, make_draft(title="Phase 1", phase=1, next_phase_id=b)))
    return a, b, c


@pytest.fixture
def client(db, cache, settings, interviewer, other_interviewer, candidate, admin):
    """API client with a session token per user, keyed by role name."""
    expires = datetime.now(timezone.utc) + timedelta(days=1)
    tokens = {}
    for key, user in (("interviewer", interviewer), ("other", other_interviewer),
                      ("candidate", candidate), ("admin", admin)):
        run(db.users.insert_one(user.model_dump()))
        token = f"session_{user.user_id}"
        run(db.user_sessions.insert_one({
            "user_id": user.user_id,
            "session_token": token,
            "expires_at": expires.isoformat(),
        }))
        tokens[key] = {"Authorization": f"Bearer {token}"}

    app = create_app(db=db, cache=cache, app_settings=settings)
    test_client = TestClient(app)
    test_client.session_headers = tokens
    return test_client
