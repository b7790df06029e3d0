"""
Classifier output parsing and normalization.

The classifier is untrusted: any field may be missing, mistyped or out
of range. normalize_classification() coerces a parsed object into a
ClassificationResult where tier 0 never escalates and tier 2+ always does.
"""

import json
import logging
import math
import re
from typing import Any, Optional

from .exceptions import MalformedResponseError
from .types import ClassificationResult, EscalationCategory, EscalationTier

logger = logging.getLogger("pulsecheck.escalation.normalizer")

DEFAULT_REASON = "Classification complete"
DEFAULT_CONFIDENCE = 0.5

_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def parse_classification(text: str) -> dict[str, Any]:
    """
    Parse raw classifier content into a JSON object.

    Raises:
        MalformedResponseError: if the text is not JSON or not an object
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedResponseError(f"Classifier returned non-JSON content: {e}", raw=text or "") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Classifier returned {type(data).__name__}, expected object",
            raw=text,
        )
    return data


def _coerce_tier(value: Any) -> EscalationTier:
    if isinstance(value, bool):
        return EscalationTier.NONE

    # Leading integer wins: "2.7" -> 2, "3 (critical)" -> 3
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match is None:
            return EscalationTier.NONE
        value = int(match.group(1))

    if isinstance(value, float):
        if not math.isfinite(value):
            return EscalationTier.NONE
        value = math.trunc(value)

    if isinstance(value, int) and 0 <= value <= 3:
        return EscalationTier(value)
    return EscalationTier.NONE


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
        return DEFAULT_CONFIDENCE
    return confidence


def _resolve_should_escalate(tier: EscalationTier, value: Any) -> bool:
    if tier >= EscalationTier.ELEVATED_RISK:
        return True
    if tier == EscalationTier.NONE:
        return False
    # Tier 1: keep the classifier's boolean; anything else counts as omitted
    if isinstance(value, bool):
        return value
    return False


def normalize_classification(raw: dict[str, Any]) -> ClassificationResult:
    """
    Coerce a parsed classifier object into a ClassificationResult.

    Rules, applied in order:
        1. tier truncated to its leading integer; non-numeric or outside
           0..3 -> 0
        2. missing or non-string category -> "general"
        3. confidence outside [0, 1] -> 0.5
        4. shouldEscalate forced True for tier >= 2, False for tier 0,
           defaulted to (tier >= 2) when omitted
        5. suggestedResponse kept only for tier 3
    """
    tier = _coerce_tier(raw.get("tier"))

    category = raw.get("category")
    if not isinstance(category, str) or not category.strip():
        category = EscalationCategory.GENERAL.value

    confidence = _coerce_confidence(raw.get("confidence"))
    should_escalate = _resolve_should_escalate(tier, raw.get("shouldEscalate"))

    reason = raw.get("reason")
    if not isinstance(reason, str) or not reason.strip():
        reason = DEFAULT_REASON

    suggested_response: Optional[str] = None
    if tier == EscalationTier.CRITICAL_RISK:
        suggestion = raw.get("suggestedResponse")
        if isinstance(suggestion, str) and suggestion.strip():
            suggested_response = suggestion

    if tier != raw.get("tier"):
        logger.debug("Normalized classifier tier %r -> %d", raw.get("tier"), tier)

    return ClassificationResult(
        tier=tier,
        category=category,
        reason=reason,
        confidence=confidence,
        should_escalate=should_escalate,
        suggested_response=suggested_response,
    )
