"""
Incident recording for tier 2 and tier 3 classifications.

Recording is a two-step saga:
    1. insert the EscalationRecord (the source of truth)
    2. merge the safety projection onto the conversation

Step 2 failing leaves a valid record and a stale projection; the caller
receives ProjectionUpdateError carrying the record id, and reconcile()
can re-derive the projection later.
"""

import logging
import uuid
from typing import Optional

from ..storage.exceptions import PersistenceError, ProjectionUpdateError
from ..storage.models import ConversationSafetyState, EscalationRecord, utc_now
from ..storage.repositories.conversation import ConversationRepository, get_conversation_repo
from ..storage.repositories.escalation_record import (
    EscalationRecordRepository,
    get_escalation_record_repo,
)
from .types import (
    ClassificationResult,
    ConsentStatus,
    EscalationRecordStatus,
    EscalationTier,
    HandoffStatus,
)

logger = logging.getLogger("pulsecheck.escalation.recorder")


def build_safety_state(record: EscalationRecord) -> ConversationSafetyState:
    """Derive the conversation projection from a record."""
    return ConversationSafetyState(
        conversation_id=record.conversation_id,
        user_id=record.user_id,
        escalation_tier=record.tier,
        escalation_status=EscalationRecordStatus.ACTIVE.value,
        escalation_record_id=record.id,
        is_in_safety_mode=record.tier == EscalationTier.CRITICAL_RISK,
        last_escalation_at=record.created_at,
    )


class IncidentRecorder:
    """Persists escalation incidents and flips conversation safety flags."""

    def __init__(
        self,
        record_repo: Optional[EscalationRecordRepository] = None,
        conversation_repo: Optional[ConversationRepository] = None,
    ) -> None:
        self._records = record_repo or get_escalation_record_repo()
        self._conversations = conversation_repo or get_conversation_repo()

    async def record(
        self,
        user_id: str,
        conversation_id: str,
        trigger_message_id: str,
        trigger_content: str,
        result: ClassificationResult,
    ) -> str:
        """
        Record an incident and update the conversation projection.

        Returns:
            The new record id

        Raises:
            ValueError: if the result is not a recordable tier 2/3 escalation
            PersistenceError: if the record insert fails (nothing written)
            ProjectionUpdateError: if the record was written but the
                projection merge failed
        """
        if not result.is_recordable:
            raise ValueError(
                f"Refusing to record tier {int(result.tier)} "
                f"(should_escalate={result.should_escalate})"
            )

        tier = EscalationTier(result.tier)
        record = EscalationRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            conversation_id=conversation_id,
            tier=int(tier),
            category=result.category,
            trigger_message_id=trigger_message_id,
            trigger_content=trigger_content,
            classification_reason=result.reason,
            classification_confidence=result.confidence,
            consent_status=(
                ConsentStatus.NOT_REQUIRED.value
                if tier == EscalationTier.CRITICAL_RISK
                else ConsentStatus.PENDING.value
            ),
            handoff_status=HandoffStatus.PENDING.value,
            coach_notified=False,
            status=EscalationRecordStatus.ACTIVE.value,
            created_at=utc_now(),
        )

        record_id = await self._records.insert(record)

        try:
            await self._conversations.merge_safety_state(build_safety_state(record))
        except PersistenceError as e:
            logger.error(
                "Escalation record %s written but conversation %s projection failed: %s",
                record_id, conversation_id, e,
            )
            raise ProjectionUpdateError(record_id, conversation_id, e.cause) from e

        logger.info(
            "Escalation recorded: record=%s tier=%d category=%s user=%s...",
            record_id, record.tier, record.category, user_id[:8],
        )
        return record_id

    async def reconcile(self, conversation_id: str) -> Optional[str]:
        """
        Re-apply the newest record for a conversation onto its projection.

        Returns:
            The record id applied, or None if the conversation has no records
        """
        record = await self._records.get_latest_for_conversation(conversation_id)
        if record is None:
            return None

        await self._conversations.merge_safety_state(build_safety_state(record))
        logger.info("Reconciled conversation %s to record %s", conversation_id, record.id)
        return record.id
