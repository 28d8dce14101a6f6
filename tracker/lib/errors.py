"""
Exception types for the feature tracker.

Every error the core raises derives from TrackerError, except StorageError
(an OSError, so callers that already handle filesystem failures keep working)
and InvalidUpdateError (a ValueError).
"""

from pathlib import Path


class TrackerError(Exception):
    """Base class for tracker errors."""
    pass


class NotInitializedError(TrackerError):
    """The tracker was used before initialize()/load_all()."""

    def __init__(self, operation: str = ""):
        self.operation = operation
        super().__init__(
            "Feature tracker is not initialized"
            + (f" (while {operation})" if operation else "")
            + ". Run initialize() first."
        )


class NotFoundError(TrackerError):
    """A feature id did not resolve."""

    def __init__(self, feature_id: str):
        self.feature_id = feature_id
        super().__init__(f"Feature not found: {feature_id}")


class ParseError(TrackerError):
    """The feature list file could not be parsed or failed validation."""

    def __init__(self, path: Path | str | None, message: str):
        self.path = str(path) if path else None
        self.message = message
        super().__init__(message + (f" ({self.path})" if self.path else ""))


class CycleDetectedError(TrackerError):
    """Feature dependencies form a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__("Dependency cycle detected: " + " -> ".join(self.cycle))


class InvalidUpdateError(TrackerError, ValueError):
    """An update named an unknown/immutable field or carried a bad value."""
    pass


class InvalidTransition(TrackerError):
    """Raised when a status change is not allowed by the feature FSM."""

    def __init__(self, from_state: str, to_state: str, feature_id: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        self.feature_id = feature_id
        super().__init__(
            f"Invalid transition: {from_state} -> {to_state}"
            + (f" (feature: {feature_id})" if feature_id else "")
        )


class StorageError(OSError):
    """A filesystem operation failed.

    Carries the operation ("read", "write", "mkdir", ...) and the path so the
    caller can report something useful without digging into __cause__.
    """

    def __init__(self, operation: str, path: Path | str, cause: BaseException | None = None):
        self.operation = operation
        self.path = str(path)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to {operation} {self.path}{detail}")


class LockTimeout(TrackerError):
    """Lock acquisition timed out."""
    pass
