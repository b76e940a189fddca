"""Service-level exceptions, mapped to HTTP responses in main."""


class AssessmentError(Exception):
    """Base class for errors raised by the assessment services."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AssessmentError):
    status_code = 400


class PermissionDenied(AssessmentError):
    status_code = 403


class PhaseLocked(PermissionDenied):
    def __init__(self, message: str = "Must pass previous phase"):
        super().__init__(message)


class NotFound(AssessmentError):
    """Absent, or not visible to this caller. The two are not distinguished."""
    status_code = 404


class StoreUnavailable(AssessmentError):
    status_code = 503

    def __init__(self, message: str = "Database temporarily unavailable"):
        super().__init__(message)
