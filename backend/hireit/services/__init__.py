"""Services for the phased assessment lifecycle."""

from .access_gate import AccessDecision, AccessGate
from .assessment_service import AssessmentService
from .cascade import CascadeDeleter
from .grading import GradingService, grade_answers
from .phase_chain import PhaseChainResolver
from .randomizer import PresentationRandomizer
from .store import AssessmentStore, SubmissionStore, UserStore

__all__ = [
    "AccessDecision",
    "AccessGate",
    "AssessmentService",
    "CascadeDeleter",
    "GradingService",
    "grade_answers",
    "PhaseChainResolver",
    "PresentationRandomizer",
    "AssessmentStore",
    "SubmissionStore",
    "UserStore",
]
