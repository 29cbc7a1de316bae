"""
Platform-wide exception hierarchy.

Services and the sync layer raise these types; blueprints map them to HTTP
status codes and the sync client lets them propagate to the caller.

Usage:
    from pulse.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("Please select a valid team before submitting.")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "Task").
        resource_id: The id that was looked up.
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
    """Raised when input fails a business rule before anything is persisted.

    On the backend this maps to HTTP 400/422. In the sync client it is raised
    before any network call, so a form can show it inline.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class RemoteCallError(Exception):
    """Raised by the REST gateway for any failed backend call.

    Covers network errors, non-2xx responses and unparseable JSON bodies.
    There is no retry: every failure is terminal for the attempted operation.

    Args:
        message: Human-readable message (includes up to 200 chars of body).
        status_code: HTTP status, or None for network-level failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RollupError(RemoteCallError):
    """The parent status roll-up failed after the child update was accepted.

    The child is already committed locally; ``project`` holds that copy.
    """

    def __init__(self, message: str, status_code: int | None, project) -> None:
        self.project = project
        super().__init__(message, status_code)
