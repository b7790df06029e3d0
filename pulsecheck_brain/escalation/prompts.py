"""Prompt construction for the safety classifier."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from ..storage.models import EscalationCondition, RecentIncident, utc_now
from .types import ConditionSet, ConversationMessage, EscalationTier, MentalNote

RECENT_MESSAGE_LIMIT = 5
MAX_EXAMPLE_PHRASES = 3
PATTERN_ALERT_THRESHOLD = 3

NO_CONDITIONS_FALLBACK = (
    "No specific conditions defined. Use clinical judgment based on standard "
    "sport psychology escalation criteria."
)

_TIER_HEADINGS = {
    EscalationTier.MONITOR_ONLY: "### TIER 1: Monitor-Only (notify coach, adaptive support)",
    EscalationTier.ELEVATED_RISK: "### TIER 2: Elevated Risk (consent-based clinical escalation)",
    EscalationTier.CRITICAL_RISK: "### TIER 3: Critical Risk (MANDATORY clinical escalation)",
}

CLASSIFIER_SYSTEM = """\
You are a clinical safety classifier for Nora, an AI mental performance coach for athletes.

Your task is to analyze athlete messages and determine if escalation is needed based on clinical criteria.

## ESCALATION TIERS:

**Tier 0 (None)**: Normal conversation, no concerns
- Typical sport psychology topics
- Performance questions
- General wellness discussion

**Tier 1 (Monitor-Only)**: Low-risk concerns requiring coach notification
- Performance stress within normal range
- Temporary fatigue or low motivation
- Minor emotional fluctuations
- Early burnout signs

**Tier 2 (Elevated Risk)**: Consent-based clinical escalation
- Persistent distress (2+ weeks)
- Significant anxiety impacting performance/daily life
- Disordered eating patterns
- Athletic identity crisis
- Psychological impact from injury
- Recurrent Tier 1 concerns (3+ in 30 days)

**Tier 3 (Critical Risk)**: MANDATORY immediate escalation
- Any mention of self-harm, cutting, or hurting oneself
- Suicidal ideation, thoughts of ending life, or wishing to not be alive
- Imminent safety risk to self or others
- Severe psychological distress with functional impairment
- Disclosure of abuse (past or present)
- Rapid deterioration from previous state

## ADMIN-DEFINED CONDITIONS:
{conditions}

## RESPONSE FORMAT:
You must respond with a flat JSON object:
{{
  "tier": 0|1|2|3,
  "category": "category-slug",
  "reason": "Brief clinical reasoning (1-2 sentences)",
  "confidence": 0.0-1.0,
  "shouldEscalate": true|false,
  "suggestedResponse": "If tier 3, provide a safety-focused response template"
}}

## CRITICAL RULES:
1. ALWAYS err on the side of caution for safety concerns
2. Tier 3 has ZERO threshold - any clear safety signal = immediate escalation
3. Consider context from recent messages and mental notes
4. Recurrent Tier 1 patterns should elevate to Tier 2
5. If uncertain between tiers, choose the higher tier
6. Never dismiss potential safety concerns as "just venting"
"""

CLASSIFIER_USER = """\
Analyze this athlete message for escalation:

## Current Message:
"{message}"
{context}

Classify this message and return your analysis as JSON."""


@dataclass
class ClassificationPrompt:
    """System and user segments sent to the classifier."""

    system: str
    user: str


def format_condition(condition: EscalationCondition) -> str:
    examples = ", ".join(f'"{p}"' for p in condition.example_phrases[:MAX_EXAMPLE_PHRASES])
    keywords = ", ".join(condition.keywords)
    return (
        f"- **{condition.title}** ({condition.category}): {condition.description}\n"
        f"  Examples: {examples or 'N/A'}\n"
        f"  Keywords: {keywords or 'N/A'}"
    )


def format_conditions(conditions: ConditionSet) -> str:
    blocks = []
    for tier, heading in _TIER_HEADINGS.items():
        group = conditions.for_tier(tier)
        if group:
            blocks.append(heading + "\n" + "\n\n".join(format_condition(c) for c in group))
    return "\n\n".join(blocks) or NO_CONDITIONS_FALLBACK


def count_recent_incidents(
    incidents: Iterable[RecentIncident],
    window_days: int = 30,
    now: Optional[datetime] = None,
) -> int:
    """Count incidents created within the last ``window_days``."""
    cutoff = (now or utc_now()) - timedelta(days=window_days)
    return sum(1 for incident in incidents if incident.created_at >= cutoff)


def _format_context(
    recent_messages: Sequence[ConversationMessage],
    mental_notes: Sequence[MentalNote],
    incident_count_30d: int,
    pattern_alert_threshold: int,
) -> str:
    sections = []

    if recent_messages:
        lines = [
            f"{'Athlete' if m.is_from_user else 'AI'}: {m.content}"
            for m in recent_messages[-RECENT_MESSAGE_LIMIT:]
        ]
        sections.append("## Recent Conversation:\n" + "\n".join(lines))

    if mental_notes:
        lines = [f"- {n.category or 'Note'}: {n.content or n.title}" for n in mental_notes]
        sections.append("## Athlete Mental Notes:\n" + "\n".join(lines))

    if incident_count_30d > 0:
        history = f"## Escalation History:\n- {incident_count_30d} escalation(s) in the past 30 days"
        if incident_count_30d >= pattern_alert_threshold:
            history += (
                "\n- **PATTERN ALERT**: Recurrent concerns detected - "
                "consider elevating to ElevatedRisk (Tier 2)"
            )
        sections.append(history)

    return "".join("\n\n" + s for s in sections)


def build_classification_prompt(
    conditions: ConditionSet,
    recent_messages: Sequence[ConversationMessage],
    mental_notes: Sequence[MentalNote],
    incident_count_30d: int,
    current_message: str,
    pattern_alert_threshold: int = PATTERN_ALERT_THRESHOLD,
) -> ClassificationPrompt:
    """
    Build the two-segment classifier prompt.

    Pure; never raises for well-typed input. Empty inputs simply omit
    their section.
    """
    system = CLASSIFIER_SYSTEM.format(conditions=format_conditions(conditions))
    user = CLASSIFIER_USER.format(
        message=current_message,
        context=_format_context(
            recent_messages or [],
            mental_notes or [],
            incident_count_30d,
            pattern_alert_threshold,
        ),
    )
    return ClassificationPrompt(system=system, user=user)
