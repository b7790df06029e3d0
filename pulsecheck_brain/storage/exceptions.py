"""
Custom exceptions for storage layer.

Provides explicit error types instead of silent failures.
"""

from typing import Optional


class StorageError(Exception):
    """Base exception for all storage errors."""

    pass


class DatabaseUnavailableError(StorageError):
    """Raised when database connection is not available."""

    def __init__(self, operation: str = "database operation"):
        self.operation = operation
        super().__init__(
            f"Database not available for {operation}. "
            "Check database connection and initialization."
        )


class RepositoryError(StorageError):
    """Raised when a read (conditions, incident history) fails."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Repository read '{operation}' failed: {cause}")


class PersistenceError(StorageError):
    """Raised when an incident or conversation write fails."""

    def __init__(self, operation: str, cause: Exception, record_id: Optional[str] = None):
        self.operation = operation
        self.cause = cause
        self.record_id = record_id
        super().__init__(f"Persistence write '{operation}' failed: {cause}")


class ProjectionUpdateError(PersistenceError):
    """
    Incident was recorded but the conversation projection was not updated.

    The escalation record is the source of truth; the projection can be
    rebuilt from it (see IncidentRecorder.reconcile).
    """

    def __init__(self, record_id: str, conversation_id: str, cause: Exception):
        self.conversation_id = conversation_id
        super().__init__("update_conversation_safety_state", cause, record_id=record_id)
