"""
Escalation tiers, categories, statuses and classification types.

Tiers are ordered: NONE < MONITOR_ONLY < ELEVATED_RISK < CRITICAL_RISK.
Only ELEVATED_RISK and CRITICAL_RISK produce escalation records.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Iterable, Optional

from ..storage.models import EscalationCondition


class EscalationTier(IntEnum):
    NONE = 0
    MONITOR_ONLY = 1  # notify coach, adaptive support
    ELEVATED_RISK = 2  # consent-based clinical handoff
    CRITICAL_RISK = 3  # mandatory clinical handoff


class EscalationCategory(str, Enum):
    # Tier 1
    PERFORMANCE_STRESS = "performance-stress"
    FATIGUE = "fatigue"
    EMOTIONAL_VARIABILITY = "emotional-variability"
    BURNOUT = "burnout"
    # Tier 2
    PERSISTENT_DISTRESS = "persistent-distress"
    ANXIETY_INDICATORS = "anxiety-indicators"
    DISORDERED_EATING = "disordered-eating"
    IDENTITY_IMPACT = "identity-impact"
    INJURY_PSYCHOLOGICAL = "injury-psychological"
    RECURRENT_TIER1 = "recurrent-tier1"
    # Tier 3
    SELF_HARM = "self-harm"
    SUICIDAL_IDEATION = "suicidal-ideation"
    IMMINENT_SAFETY_RISK = "imminent-safety-risk"
    SEVERE_PSYCHOLOGICAL_DISTRESS = "severe-psychological-distress"
    ABUSE_DISCLOSURE = "abuse-disclosure"
    RAPID_DETERIORATION = "rapid-deterioration"

    GENERAL = "general"


class ConsentStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    NOT_REQUIRED = "not-required"  # tier 3


class HandoffStatus(str, Enum):
    PENDING = "pending"
    INITIATED = "initiated"
    COMPLETED = "completed"
    FAILED = "failed"


class EscalationRecordStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    DECLINED = "declined"


# Tiers that create an escalation record
RECORDABLE_TIERS = frozenset({EscalationTier.ELEVATED_RISK, EscalationTier.CRITICAL_RISK})


@dataclass
class ClassificationResult:
    """Normalized classifier output for one message. Never persisted on its own."""

    tier: EscalationTier
    category: str = EscalationCategory.GENERAL.value
    reason: str = ""
    confidence: float = 0.5
    should_escalate: bool = False
    suggested_response: Optional[str] = None

    @property
    def is_recordable(self) -> bool:
        return self.tier in RECORDABLE_TIERS and self.should_escalate

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "tier": int(self.tier),
            "category": self.category,
            "reason": self.reason,
            "confidence": self.confidence,
            "shouldEscalate": self.should_escalate,
        }
        if self.suggested_response is not None:
            data["suggestedResponse"] = self.suggested_response
        return data


@dataclass
class ConversationMessage:
    """A prior chat turn rendered into the classifier prompt."""

    content: str
    is_from_user: bool = True


@dataclass
class MentalNote:
    """Caller-supplied note about the athlete's mental state."""

    content: str = ""
    title: str = ""
    category: str = ""


@dataclass
class ConditionSet:
    """
    Active conditions grouped by tier.

    Built once from the repository's (tier asc, priority desc) list; each
    group keeps its priority order. Tier-0 conditions carry no signal and
    are dropped.
    """

    by_tier: dict[EscalationTier, list[EscalationCondition]] = field(
        default_factory=lambda: {tier: [] for tier in RENDERED_TIERS}
    )

    @classmethod
    def from_conditions(cls, conditions: Iterable[EscalationCondition]) -> "ConditionSet":
        grouped: dict[EscalationTier, list[EscalationCondition]] = {tier: [] for tier in RENDERED_TIERS}
        for condition in conditions:
            try:
                tier = EscalationTier(condition.tier)
            except ValueError:
                continue
            if tier in grouped:
                grouped[tier].append(condition)
        for group in grouped.values():
            group.sort(key=lambda c: c.priority, reverse=True)
        return cls(by_tier=grouped)

    def for_tier(self, tier: EscalationTier) -> list[EscalationCondition]:
        return self.by_tier.get(tier, [])

    def __len__(self) -> int:
        return sum(len(group) for group in self.by_tier.values())


RENDERED_TIERS = (
    EscalationTier.MONITOR_ONLY,
    EscalationTier.ELEVATED_RISK,
    EscalationTier.CRITICAL_RISK,
)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

_TIER_LABELS = {
    EscalationTier.NONE: "None",
    EscalationTier.MONITOR_ONLY: "Monitor Only",
    EscalationTier.ELEVATED_RISK: "Elevated Risk",
    EscalationTier.CRITICAL_RISK: "Critical Risk",
}

_CATEGORY_LABELS = {
    EscalationCategory.PERFORMANCE_STRESS: "Performance Stress",
    EscalationCategory.FATIGUE: "Fatigue",
    EscalationCategory.EMOTIONAL_VARIABILITY: "Emotional Variability",
    EscalationCategory.BURNOUT: "Burnout",
    EscalationCategory.PERSISTENT_DISTRESS: "Persistent Distress",
    EscalationCategory.ANXIETY_INDICATORS: "Anxiety Indicators",
    EscalationCategory.DISORDERED_EATING: "Disordered Eating",
    EscalationCategory.IDENTITY_IMPACT: "Identity Impact",
    EscalationCategory.INJURY_PSYCHOLOGICAL: "Injury-Related",
    EscalationCategory.RECURRENT_TIER1: "Recurrent Concerns",
    EscalationCategory.SELF_HARM: "Self-Harm",
    EscalationCategory.SUICIDAL_IDEATION: "Suicidal Ideation",
    EscalationCategory.IMMINENT_SAFETY_RISK: "Imminent Safety Risk",
    EscalationCategory.SEVERE_PSYCHOLOGICAL_DISTRESS: "Severe Distress",
    EscalationCategory.ABUSE_DISCLOSURE: "Abuse Disclosure",
    EscalationCategory.RAPID_DETERIORATION: "Rapid Deterioration",
    EscalationCategory.GENERAL: "General",
}


def tier_label(tier: int) -> str:
    try:
        return _TIER_LABELS[EscalationTier(tier)]
    except ValueError:
        return "None"


def category_label(category: str) -> str:
    try:
        return _CATEGORY_LABELS[EscalationCategory(category)]
    except ValueError:
        return "Unknown"


def coach_status_label(tier: int, handoff_status: str) -> str:
    """Status line shown to coaches (no clinical detail)."""
    completed = handoff_status == HandoffStatus.COMPLETED.value
    if tier == EscalationTier.CRITICAL_RISK:
        return "Engaged with care" if completed else "Clinical escalation initiated"
    if tier == EscalationTier.ELEVATED_RISK:
        return "Connected with support" if completed else "Elevated concern flagged"
    return "Being monitored"
