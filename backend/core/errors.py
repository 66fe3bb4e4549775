"""
ScriptSentries Errors
=====================
Domain error taxonomy. Every error carries the HTTP status and the
machine-readable name used in API error bodies.
"""

from typing import Any


class ScriptSentriesError(Exception):
    """Base class for all domain errors."""
    status_code = 500
    error = "InternalError"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "message": self.message,
            "details": self.details or None
        }


class NotFound(ScriptSentriesError):
    status_code = 404
    error = "NotFound"

    def __init__(self, entity_kind: str, entity_id: str):
        super().__init__(
            f"{entity_kind} not found: {entity_id}",
            {"entity": entity_kind, "id": entity_id}
        )
        self.entity_kind = entity_kind
        self.entity_id = entity_id


class NotAMember(ScriptSentriesError):
    status_code = 403
    error = "NotAMember"

    def __init__(self, project_id: str, user_id: str):
        super().__init__(
            f"User {user_id} is not a member of project {project_id}",
            {"project_id": project_id, "user_id": user_id}
        )
        self.project_id = project_id
        self.user_id = user_id


class Forbidden(ScriptSentriesError):
    status_code = 403
    error = "Forbidden"

    def __init__(self, action: Any, role: Any):
        action_name = getattr(action, "value", action)
        role_name = getattr(role, "value", role)
        super().__init__(
            f"Role {role_name} is not allowed to {action_name}",
            {"action": action_name, "role": role_name}
        )
        self.action = action
        self.role = role


class AlreadyMember(ScriptSentriesError):
    status_code = 409
    error = "AlreadyMember"

    def __init__(self, project_id: str, user_id: str):
        super().__init__(
            f"User {user_id} is already a member of project {project_id}",
            {"project_id": project_id, "user_id": user_id}
        )


class CannotRemoveCreator(ScriptSentriesError):
    status_code = 400
    error = "CannotRemoveCreator"

    def __init__(self, project_id: str):
        super().__init__(
            "Cannot remove the project creator",
            {"project_id": project_id}
        )


class ValidationFailed(ScriptSentriesError):
    status_code = 422
    error = "ValidationFailed"

    def __init__(self, field: str, reason: str = "invalid value"):
        super().__init__(f"{field}: {reason}", {"field": field})
        self.field = field


class ClassificationFailed(ScriptSentriesError):
    """Raised for a single page; recovered by the pipeline."""
    error = "ClassificationFailed"

    def __init__(self, page_number: int, reason: str):
        super().__init__(
            f"Classification of page {page_number} failed: {reason}",
            {"page": page_number}
        )
        self.page_number = page_number


class PipelineFailed(ScriptSentriesError):
    status_code = 500
    error = "PipelineFailed"

    def __init__(self, filename: str, reason: str):
        super().__init__(
            f"Analysis of '{filename}' failed: {reason}",
            {"filename": filename}
        )


class RetentionCleanupFailed(ScriptSentriesError):
    """Reported through logs and the retention alert hook; never raised."""
    error = "RetentionCleanupFailed"

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Scratch copy '{path}' could not be erased: {reason}",
            {"path": path}
        )
        self.path = path
