"""Error taxonomy shared by the workspace services."""


class WorkspaceError(Exception):
    """Base class for failures scoped to a single workspace operation."""


class ValidationError(WorkspaceError):
    """A request was rejected before any side effect took place."""

    def __init__(self, message: str, reason: str = "invalid"):
        super().__init__(message)
        self.reason = reason  # "empty_prompt" | "unauthenticated" | "busy"


class TransportError(WorkspaceError):
    """The inference endpoint or the database failed, or answered with an error."""
