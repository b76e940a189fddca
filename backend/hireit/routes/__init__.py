"""HTTP routes."""

from .assessment_routes import create_assessment_routes
from .submission_routes import create_submission_routes

__all__ = ["create_assessment_routes", "create_submission_routes"]
