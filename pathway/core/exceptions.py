"""
Engine-wide exception hierarchy.

Every service raises these types; blueprints register handlers against them
once and get consistent HTTP status codes everywhere.

Usage:
    from pathway.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Participant", resource_id="abc123")
    raise ValidationError("contact_notes is required", details={"contact_notes": "required"})
"""


class NotFoundError(Exception):
    """Raised when a participant or guidance task id does not resolve.

    Args:
        resource: Human-readable record type (e.g. "Participant", "GuidanceTask").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when form input is missing or violates a business rule.

    Maps to HTTP 422 in blueprint error handlers. Never defaulted away:
    the caller is expected to correct the input and resubmit.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown, keyed by field name.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a document key is already taken in its collection."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class InvalidTransitionError(Exception):
    """Raised when a lifecycle event is not legal from the participant's status.

    This signals a data-integrity or programming problem, so it is always
    logged with the participant id, event and current status before it is
    surfaced (HTTP 409).
    """

    def __init__(
        self,
        event: str,
        current_status: str,
        participant_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        msg = f"Cannot apply '{event}' from status '{current_status}'"
        if participant_id:
            msg += f" (participant={participant_id})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.event = event
        self.current_status = current_status
        self.participant_id = participant_id
        self.reason = reason


class ConcurrentModificationError(Exception):
    """Raised when a compare-and-swap write finds a newer version in the store."""

    def __init__(self, collection: str, key: str, expected_version: int) -> None:
        self.collection = collection
        self.key = key
        self.expected_version = expected_version
        super().__init__(
            f"{collection}/{key} was modified concurrently (expected version {expected_version})"
        )


class PersistenceUnavailableError(Exception):
    """Raised when the store cannot be reached or an operation timed out.

    Nothing was committed; the caller may retry the whole operation.
    """

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        msg = f"Persistence store unavailable during {operation}"
        if cause is not None:
            msg += f": {cause.__class__.__name__}"
        super().__init__(msg)
