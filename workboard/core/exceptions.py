"""
Board-wide exception hierarchy.

Services raise these; the app-level error handlers registered in
``workboard.utils.errors`` map each one to a single HTTP status, so
blueprints never build error responses for business failures themselves.

Usage:
    from workboard.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Incident", resource_id=42)
    raise ValidationError("Stage name is required", details={"name": "blank"})
"""


class UnauthorizedError(Exception):
    """Raised when a request carries no resolvable session identity.

    Maps to HTTP 401.
    """

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(Exception):
    """Raised when the session user is known but lacks ownership or role.

    Maps to HTTP 403.

    Args:
        message: Human-readable reason (kept generic in HTTP responses).
        action: Capability that was denied, e.g. ``"comment.delete"``.
    """

    def __init__(self, message: str = "Access denied", action: str | None = None) -> None:
        self.action = action
        super().__init__(message)


class NotFoundError(Exception):
    """Raised when a requested entity does not exist within the given project.

    Used for BOTH genuinely missing rows AND ids that belong to another
    project. A 403 would confirm the row exists elsewhere; a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "Incident", "Stage").
        resource_id: The PK that was looked up. Included in logs.
        project_id: Optional. The scope that was enforced, for debug logging.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        project_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.project_id = project_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if project_id is not None:
            msg += f" (project={project_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is missing, malformed or breaks a board rule.

    Covers blank names/content, unknown enum values, and a stage whose
    type or project does not match the item being placed on it.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class UnavailableError(Exception):
    """Raised when the store times out or drops the connection mid unit of work.

    The transaction has been rolled back; the caller may retry.
    Maps to HTTP 503.
    """

    def __init__(self, message: str = "Service temporarily unavailable, please retry") -> None:
        super().__init__(message)
