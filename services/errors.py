from typing import Optional


class ServiceError(Exception):
    """Base error for detection and dashboard operations.

    Carries a stable, user-facing message and the HTTP status the API layer
    renders it with.
    """

    status_code = 500
    message = "Internal error."

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthorized(ServiceError):
    status_code = 401
    message = "Unauthorized"


class Unauthenticated(ServiceError):
    status_code = 401
    message = "User not authenticated"


class NotFound(ServiceError):
    status_code = 404
    message = "Not found."


class CaseNotFound(NotFound):
    # Drafts, foreign cases and missing cases all look the same to the caller
    message = "Case not found or unauthorized."


class ImageNotFound(NotFound):
    message = "Image not found."


class PersistenceFailure(ServiceError):
    status_code = 500


class SaveFailed(PersistenceFailure):
    message = "Failed to save detections."


class AnalyticsUnavailable(PersistenceFailure):
    message = "Failed to load dashboard data."
