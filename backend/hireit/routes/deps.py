"""Request dependencies: database, caller identity, service."""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ..models import User
from ..services import AssessmentService

logger = logging.getLogger(__name__)


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Get database instance for route handlers."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise RuntimeError("Database not initialized")
    return db


async def get_current_user(request: Request, db: AsyncIOMotorDatabase = Depends(get_db)) -> User:
    """Get current user from session token"""
    session_token = request.cookies.get("session_token")

    if not session_token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            session_token = auth_header.split(" ", 1)[1].strip()

    if not session_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    timeout = request.app.state.settings.STORE_READ_TIMEOUT
    try:
        session = await asyncio.wait_for(
            db.user_sessions.find_one({"session_token": session_token}, {"_id": 0}),
            timeout=timeout,
        )
        if not session:
            raise HTTPException(status_code=401, detail="Invalid session")

        expires_at = session.get("expires_at")
        if isinstance(expires_at, str):
            expires_at = datetime.fromisoformat(expires_at)
        if expires_at is None:
            raise HTTPException(status_code=401, detail="Invalid session")
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at < datetime.now(timezone.utc):
            raise HTTPException(status_code=401, detail="Session expired")

        user = await asyncio.wait_for(
            db.users.find_one({"user_id": session["user_id"]}, {"_id": 0}),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, PyMongoError) as e:
        logger.error(f"Session lookup failed: {e!r}")
        raise HTTPException(status_code=503, detail="Database temporarily unavailable")

    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return User(**user)


def get_assessment_service(request: Request, db: AsyncIOMotorDatabase = Depends(get_db)) -> AssessmentService:
    return AssessmentService(db, request.app.state.cache, request.app.state.settings)
