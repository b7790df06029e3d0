"""
Safety escalation for chat messages.

Classifies athlete messages into four tiers and records tier 2/3
incidents against the conversation.

Usage:
    from pulsecheck_brain.escalation import classify_message, get_escalation_queue

    result = await classify_message(user_id, message, conversation_id, recent_messages)

    queue = get_escalation_queue()
    queue.submit(ClassificationJob(...))
"""

from typing import Optional, Sequence

from ..config import settings
from .classifier import EscalationClassifier
from .exceptions import ClassifierError, EscalationError, MalformedResponseError
from .normalizer import normalize_classification, parse_classification
from .orchestrator import (
    ClassificationJob,
    EscalationOrchestrator,
    EscalationOutcome,
    OutcomeState,
)
from .prompts import ClassificationPrompt, build_classification_prompt, count_recent_incidents
from .queue import EscalationQueue
from .recorder import IncidentRecorder
from .types import (
    ClassificationResult,
    ConditionSet,
    ConsentStatus,
    ConversationMessage,
    EscalationCategory,
    EscalationRecordStatus,
    EscalationTier,
    HandoffStatus,
    MentalNote,
    category_label,
    coach_status_label,
    tier_label,
)

_orchestrator: Optional[EscalationOrchestrator] = None
_queue: Optional[EscalationQueue] = None


def get_escalation_orchestrator() -> EscalationOrchestrator:
    """Get or create the singleton EscalationOrchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = EscalationOrchestrator()
    return _orchestrator


def get_escalation_queue() -> EscalationQueue:
    """Get or create the singleton EscalationQueue (not started)."""
    global _queue
    if _queue is None:
        _queue = EscalationQueue(
            get_escalation_orchestrator().process,
            max_size=settings.escalation.queue_max_size,
            worker_count=settings.escalation.worker_count,
        )
    return _queue


async def classify_message(
    user_id: str,
    message: str,
    conversation_id: Optional[str],
    recent_messages: Sequence[ConversationMessage],
    mental_notes: Optional[Sequence[MentalNote]] = None,
) -> Optional[ClassificationResult]:
    """Classify one message. Returns None if classification is unavailable."""
    return await get_escalation_orchestrator().classify(
        user_id,
        message,
        recent_messages,
        conversation_id=conversation_id,
        mental_notes=mental_notes,
    )


__all__ = [
    "ClassificationJob",
    "ClassificationPrompt",
    "ClassificationResult",
    "ClassifierError",
    "ConditionSet",
    "ConsentStatus",
    "ConversationMessage",
    "EscalationCategory",
    "EscalationClassifier",
    "EscalationError",
    "EscalationOrchestrator",
    "EscalationOutcome",
    "EscalationQueue",
    "EscalationRecordStatus",
    "EscalationTier",
    "HandoffStatus",
    "IncidentRecorder",
    "MalformedResponseError",
    "MentalNote",
    "OutcomeState",
    "build_classification_prompt",
    "category_label",
    "classify_message",
    "coach_status_label",
    "count_recent_incidents",
    "get_escalation_orchestrator",
    "get_escalation_queue",
    "normalize_classification",
    "parse_classification",
    "tier_label",
]
