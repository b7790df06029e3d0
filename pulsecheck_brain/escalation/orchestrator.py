"""
Escalation orchestrator.

Runs the per-message pipeline:

    conditions + history -> prompt -> classifier -> normalizer
        -> call-site rules -> (tier 2/3) incident recorder

Nothing here raises into the chat handler. Repository reads degrade to
empty context, classifier failures yield None, and recorder failures are
reported on the EscalationOutcome.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence

from ..config import EscalationConfig, settings
from ..storage.exceptions import PersistenceError, ProjectionUpdateError, RepositoryError
from ..storage.models import EscalationCondition, RecentIncident, utc_now
from ..storage.repositories.escalation_condition import (
    EscalationConditionRepository,
    get_escalation_condition_repo,
)
from ..storage.repositories.escalation_record import (
    EscalationRecordRepository,
    get_escalation_record_repo,
)
from .classifier import EscalationClassifier
from .exceptions import ClassifierError, MalformedResponseError
from .normalizer import normalize_classification, parse_classification
from .prompts import build_classification_prompt, count_recent_incidents
from .recorder import IncidentRecorder
from .types import (
    ClassificationResult,
    ConditionSet,
    ConversationMessage,
    EscalationCategory,
    EscalationTier,
    MentalNote,
)

logger = logging.getLogger("pulsecheck.escalation.orchestrator")


class OutcomeState(str, Enum):
    NO_ACTION = "no_action"
    INCIDENT_RECORDED = "incident_recorded"
    RECORD_FAILED = "record_failed"


@dataclass
class ClassificationJob:
    """One persisted chat turn waiting for background classification."""

    user_id: str
    conversation_id: str
    message: str
    trigger_message_id: str
    recent_messages: list[ConversationMessage] = field(default_factory=list)
    mental_notes: list[MentalNote] = field(default_factory=list)
    skip_escalation: bool = False
    submitted_at: datetime = field(default_factory=utc_now)


@dataclass
class EscalationOutcome:
    """What process() did with a job."""

    state: OutcomeState
    result: Optional[ClassificationResult] = None
    record_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "result": self.result.to_dict() if self.result else None,
            "record_id": self.record_id,
            "error": self.error,
        }


class EscalationOrchestrator:
    """Classifies chat messages and records tier 2/3 incidents."""

    def __init__(
        self,
        classifier: Optional[EscalationClassifier] = None,
        recorder: Optional[IncidentRecorder] = None,
        condition_repo: Optional[EscalationConditionRepository] = None,
        record_repo: Optional[EscalationRecordRepository] = None,
        config: Optional[EscalationConfig] = None,
    ) -> None:
        self._config = config or settings.escalation
        self._classifier = classifier or EscalationClassifier()
        self._conditions = condition_repo or get_escalation_condition_repo()
        self._records = record_repo or get_escalation_record_repo()
        self._recorder = recorder or IncidentRecorder(record_repo=self._records)

    @property
    def classifier(self) -> EscalationClassifier:
        return self._classifier

    # -- Context loading --------------------------------------------------

    async def _load_conditions(self) -> list[EscalationCondition]:
        try:
            return await asyncio.wait_for(
                self._conditions.load_active_conditions(),
                timeout=self._config.repository_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Condition load timed out, using fallback context")
        except RepositoryError as e:
            logger.warning("Condition load failed, using fallback context: %s", e)
        return []

    async def _load_history(self, user_id: str) -> list[RecentIncident]:
        try:
            return await asyncio.wait_for(
                self._records.load_recent_incidents(
                    user_id,
                    window_days=self._config.history_window_days,
                    limit=self._config.history_limit,
                ),
                timeout=self._config.repository_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("History load timed out for %s..., assuming none", user_id[:8])
        except RepositoryError as e:
            logger.warning("History load failed for %s..., assuming none: %s", user_id[:8], e)
        return []

    # -- Call-site rules --------------------------------------------------

    def _apply_call_site_rules(
        self,
        result: ClassificationResult,
        incident_count: int,
    ) -> ClassificationResult:
        if result.tier != EscalationTier.MONITOR_ONLY:
            return result

        if (
            self._config.recurrence_floor_enabled
            and incident_count >= self._config.recurrence_threshold
        ):
            logger.info(
                "Recurrence floor: %d incidents in %d days, raising tier 1 to tier 2",
                incident_count, self._config.history_window_days,
            )
            result.tier = EscalationTier.ELEVATED_RISK
            result.category = EscalationCategory.RECURRENT_TIER1.value
            result.should_escalate = True
            return result

        # High-confidence tier 1 notifies the coach; it is still not recorded
        if result.confidence > self._config.monitor_confidence_threshold:
            result.should_escalate = True
        return result

    # -- Public API -------------------------------------------------------

    async def classify(
        self,
        user_id: str,
        message: str,
        recent_messages: Sequence[ConversationMessage],
        conversation_id: Optional[str] = None,
        mental_notes: Optional[Sequence[MentalNote]] = None,
    ) -> Optional[ClassificationResult]:
        """
        Classify one athlete message.

        Returns:
            The normalized result, or None if classification was
            unavailable (classifier error, malformed output, unexpected error)
        """
        try:
            # Reads run one after the other, then the classifier call
            conditions = await self._load_conditions()
            incidents = await self._load_history(user_id)
            incident_count = count_recent_incidents(
                incidents, window_days=self._config.history_window_days
            )

            limit = self._config.recent_message_limit
            recent = list(recent_messages or [])[-limit:] if limit else []
            prompt = build_classification_prompt(
                ConditionSet.from_conditions(conditions),
                recent,
                list(mental_notes or []),
                incident_count,
                message,
                pattern_alert_threshold=self._config.recurrence_threshold,
            )

            raw = await self._classifier.classify(prompt)
            result = normalize_classification(parse_classification(raw))
            result = self._apply_call_site_rules(result, incident_count)
        except (ClassifierError, MalformedResponseError) as e:
            logger.warning(
                "Escalation classification unavailable for %s... (conversation=%s): %s",
                user_id[:8], conversation_id, e,
            )
            return None
        except Exception as e:
            logger.exception(
                "Escalation classification unavailable for %s... (unexpected error): %s",
                user_id[:8], e,
            )
            return None

        logger.info(
            "Classified message for %s...: tier=%d category=%s confidence=%.2f escalate=%s",
            user_id[:8], result.tier, result.category, result.confidence, result.should_escalate,
        )
        return result

    async def process(self, job: ClassificationJob) -> EscalationOutcome:
        """Classify a job and record an incident for tier 2/3 escalations."""
        if job.skip_escalation or not self._config.enabled:
            return EscalationOutcome(state=OutcomeState.NO_ACTION)

        result = await self.classify(
            job.user_id,
            job.message,
            job.recent_messages,
            conversation_id=job.conversation_id,
            mental_notes=job.mental_notes,
        )
        if result is None or not result.is_recordable:
            return EscalationOutcome(state=OutcomeState.NO_ACTION, result=result)

        try:
            record_id = await self._recorder.record(
                job.user_id,
                job.conversation_id,
                job.trigger_message_id,
                job.message,
                result,
            )
        except ProjectionUpdateError as e:
            return EscalationOutcome(
                state=OutcomeState.RECORD_FAILED,
                result=result,
                record_id=e.record_id,
                error=str(e),
            )
        except PersistenceError as e:
            logger.error("Failed to record tier %d escalation for %s...: %s", result.tier, job.user_id[:8], e)
            return EscalationOutcome(state=OutcomeState.RECORD_FAILED, result=result, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error recording escalation for %s...", job.user_id[:8])
            return EscalationOutcome(state=OutcomeState.RECORD_FAILED, result=result, error=str(e))

        return EscalationOutcome(
            state=OutcomeState.INCIDENT_RECORDED,
            result=result,
            record_id=record_id,
        )
