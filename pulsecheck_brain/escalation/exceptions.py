"""
Exceptions raised inside the escalation pipeline.

None of these escape EscalationOrchestrator: classify() turns them into
a None result and process() reports them on the outcome.
"""


class EscalationError(Exception):
    """Base exception for the escalation pipeline."""

    pass


class ClassifierError(EscalationError):
    """The classifier could not produce a response (network, status, timeout, config)."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class MalformedResponseError(EscalationError):
    """The classifier responded, but not with a JSON object."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)
