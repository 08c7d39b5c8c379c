"""
Engine-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from launch_engine.core.exceptions import NotFoundError, PhaseBlockedError

    raise NotFoundError(resource="LaunchProject", resource_id=project_id)
    raise PhaseBlockedError("SETUP", ["Register domain"])
"""


class NotFoundError(Exception):
    """Raised when a requested document, project or checklist item does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "LaunchDocument").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidDocumentError(ValidationError):
    """Raised when checklist markup yields no phases.

    No project may be created from such a document.
    """

    def __init__(self, message: str = "No phases found. Use '# PHASE 1: NAME' headings.") -> None:
        super().__init__(message, details={"phases": 0})


class StateError(Exception):
    """Raised when a project is not in a state that allows the operation.

    Maps to HTTP 409.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class PhaseBlockedError(StateError):
    """Raised when incomplete CRITICAL items hold a project in its current phase.

    Args:
        phase: The phase the project is stuck in.
        blocking_items: Texts of the incomplete CRITICAL items, in sort order.
    """

    def __init__(self, phase: str, blocking_items: list[str]) -> None:
        self.phase = phase
        self.blocking_items = list(blocking_items)
        super().__init__(
            f"Cannot advance past '{phase}': {len(self.blocking_items)} CRITICAL item(s) incomplete",
            details={"phase": phase, "blocking_items": self.blocking_items},
        )


class AlreadyFinalError(StateError):
    """Raised when advancing a project that already sits on its last phase."""

    def __init__(self, phase: str) -> None:
        self.phase = phase
        super().__init__(
            f"Already on final phase '{phase}'. Complete the launch instead.",
            details={"phase": phase},
        )


class StoreError(Exception):
    """Raised when the persistence layer fails; the session has been rolled back.

    The only error class callers should treat as transient and retry.
    Maps to HTTP 503.
    """

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        msg = f"Store failure during {operation}"
        if cause is not None:
            msg += f": {cause.__class__.__name__}"
        super().__init__(msg)


class TaskCreationError(Exception):
    """Raised by a TaskCreator when the external task tracker rejects a request."""
