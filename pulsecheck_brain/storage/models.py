"""
Data models for PulseCheck Brain storage.

These are plain dataclasses, not ORM models.
We use raw SQL with asyncpg for maximum performance.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class EscalationCondition:
    """An admin-authored escalation rule (read-only to the classifier)."""

    id: str
    tier: int
    category: str
    title: str
    description: str = ""
    example_phrases: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    priority: int = 0
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    created_by: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tier": self.tier,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "example_phrases": list(self.example_phrases),
            "keywords": list(self.keywords),
            "priority": self.priority,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "created_by": self.created_by,
        }


@dataclass
class RecentIncident:
    """Slim history row used for recurrence detection."""

    tier: int
    category: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "category": self.category,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class EscalationRecord:
    """A persisted escalation incident (append-only audit trail)."""

    id: str
    user_id: str
    conversation_id: str
    tier: int
    category: str
    trigger_message_id: str
    trigger_content: str
    classification_reason: str
    classification_confidence: float
    consent_status: str = "pending"
    handoff_status: str = "pending"
    coach_notified: bool = False
    status: str = "active"
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "conversation_id": self.conversation_id,
            "tier": self.tier,
            "category": self.category,
            "trigger_message_id": self.trigger_message_id,
            "trigger_content": self.trigger_content,
            "classification_reason": self.classification_reason,
            "classification_confidence": self.classification_confidence,
            "consent_status": self.consent_status,
            "handoff_status": self.handoff_status,
            "coach_notified": self.coach_notified,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ConversationSafetyState:
    """Safety projection merged onto a conversation row."""

    conversation_id: str
    escalation_tier: int
    escalation_status: str
    escalation_record_id: str
    is_in_safety_mode: bool
    last_escalation_at: datetime = field(default_factory=utc_now)
    user_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "user_id": self.user_id,
            "escalation_tier": self.escalation_tier,
            "escalation_status": self.escalation_status,
            "escalation_record_id": self.escalation_record_id,
            "is_in_safety_mode": self.is_in_safety_mode,
            "last_escalation_at": self.last_escalation_at.isoformat(),
        }
