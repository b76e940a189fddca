"""
HireIt Backend - Main FastAPI Application

Phased candidate assessments: authoring, gated access, resumable
attempts, grading and cascading phase deletion.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from . import __version__
from .cache import ResponseCache
from .config.settings import Settings, settings as default_settings
from .routes import create_assessment_routes, create_submission_routes
from .services.errors import AssessmentError

# Setup logging
logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def _create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes for the lookups the services rely on."""
    try:
        # Assessments
        await db.assessments.create_index("assessment_id", unique=True)
        await db.assessments.create_index("created_by")
        await db.assessments.create_index("next_phase_id")  # predecessor lookup
        await db.assessments.create_index([("created_at", -1)])

        # Submissions (not unique: retakes accumulate submitted records)
        await db.submissions.create_index("submission_id", unique=True)
        await db.submissions.create_index([("assessment_id", 1), ("candidate_id", 1), ("status", 1)])
        await db.submissions.create_index([("candidate_id", 1), ("started_at", -1)])
        # At most one open attempt per candidate and assessment
        await db.submissions.create_index(
            [("assessment_id", 1), ("candidate_id", 1)],
            name="one_in_progress_attempt",
            unique=True,
            partialFilterExpression={"status": "in_progress"},
        )

        # Sessions
        await db.user_sessions.create_index("session_token", unique=True)
        await db.users.create_index("user_id", unique=True)

    except Exception as e:
        logger.warning(f"Index creation warning: {e}")
        # Don't fail startup if indexes already exist


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup/shutdown."""
    client = None
    app_settings: Settings = app.state.settings

    # STARTUP
    logger.info("🚀 HireIt Backend Starting Up...")

    if app.state.db is None:
        try:
            app_settings.validate()
            logger.info("✅ Settings validated")

            client = AsyncIOMotorClient(
                app_settings.MONGODB_URL,
                maxPoolSize=app_settings.MAX_POOL_SIZE,
                serverSelectionTimeoutMS=app_settings.SERVER_SELECTION_TIMEOUT_MS,
            )

            # Test connection
            await client.server_info()
            app.state.db = client[app_settings.DATABASE_NAME]
            logger.info(f"✅ Connected to MongoDB: {app_settings.DATABASE_NAME}")

            await _create_indexes(app.state.db)
            logger.info("✅ Database indexes created")

        except Exception as e:
            logger.error(f"❌ Startup failed: {e}")
            raise

    logger.info("✅ Application startup complete")

    yield

    # SHUTDOWN
    logger.info("🛑 Shutting down...")
    app.state.cache.cleanup_expired()
    if client is not None:
        client.close()
        logger.info("✅ Database connection closed")


async def assessment_error_handler(request: Request, exc: AssessmentError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(
    db: Optional[AsyncIOMotorDatabase] = None,
    cache: Optional[ResponseCache] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application.

    When db is given (tests, embedding) the lifespan does not open its own
    MongoDB connection.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="HireIt API",
        description="Phased candidate assessments",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.db = db
    if cache is None:
        cache = ResponseCache(app_settings.ASSESSMENTS_CACHE_TTL_SECONDS)
    app.state.cache = cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AssessmentError, assessment_error_handler)

    app.include_router(create_assessment_routes())
    app.include_router(create_submission_routes())

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "database": "connected" if app.state.db is not None else "disconnected",
        }

    @app.get("/")
    async def root():
        return {"app": "HireIt", "version": __version__, "docs": "/docs", "health": "/api/health"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hireit.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower()
    )
