"""
Escalation record repository.

Append-only storage for escalation incidents plus the per-user history
reads used for recurrence detection.
"""

import logging
from datetime import timedelta
from typing import Optional

from ..database import get_db_pool
from ..exceptions import DatabaseUnavailableError, PersistenceError, RepositoryError
from ..models import EscalationRecord, RecentIncident, utc_now

logger = logging.getLogger("pulsecheck.storage.escalation_record")

_RECORD_COLUMNS = """
    id, user_id, conversation_id, tier, category, trigger_message_id,
    trigger_content, classification_reason, classification_confidence,
    consent_status, handoff_status, coach_notified, status, created_at
"""


def _row_to_record(row) -> EscalationRecord:
    return EscalationRecord(
        id=row["id"],
        user_id=row["user_id"],
        conversation_id=row["conversation_id"],
        tier=row["tier"],
        category=row["category"],
        trigger_message_id=row["trigger_message_id"],
        trigger_content=row["trigger_content"],
        classification_reason=row["classification_reason"],
        classification_confidence=row["classification_confidence"],
        consent_status=row["consent_status"],
        handoff_status=row["handoff_status"],
        coach_notified=row["coach_notified"],
        status=row["status"],
        created_at=row["created_at"],
    )


class EscalationRecordRepository:
    """Repository for escalation incidents."""

    async def load_recent_incidents(
        self,
        user_id: str,
        window_days: int = 30,
        limit: int = 5,
    ) -> list[RecentIncident]:
        """
        Load a user's most recent incidents inside the rolling window.

        Returns:
            Incidents newest first, at most ``limit``

        Raises:
            RepositoryError: on any storage or query failure
        """
        pool = get_db_pool()
        if not pool.is_initialized:
            raise RepositoryError(
                "load_recent_incidents",
                DatabaseUnavailableError("load_recent_incidents"),
            )

        since = utc_now() - timedelta(days=window_days)
        try:
            rows = await pool.fetch(
                """
                SELECT tier, category, created_at
                FROM escalation_records
                WHERE user_id = $1 AND created_at >= $2
                ORDER BY created_at DESC
                LIMIT $3
                """,
                user_id,
                since,
                limit,
            )
        except Exception as e:
            logger.error("Failed to load escalation history for %s...: %s", user_id[:8], e)
            raise RepositoryError("load_recent_incidents", e) from e

        return [
            RecentIncident(tier=row["tier"], category=row["category"], created_at=row["created_at"])
            for row in rows
        ]

    async def insert(self, record: EscalationRecord) -> str:
        """
        Insert a new escalation record.

        Raises:
            PersistenceError: if the insert fails
        """
        pool = get_db_pool()
        if not pool.is_initialized:
            raise PersistenceError(
                "insert_escalation_record",
                DatabaseUnavailableError("insert_escalation_record"),
            )

        try:
            await pool.execute(
                """
                INSERT INTO escalation_records
                    (id, user_id, conversation_id, tier, category, trigger_message_id,
                     trigger_content, classification_reason, classification_confidence,
                     consent_status, handoff_status, coach_notified, status, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
                """,
                record.id,
                record.user_id,
                record.conversation_id,
                record.tier,
                record.category,
                record.trigger_message_id,
                record.trigger_content,
                record.classification_reason,
                record.classification_confidence,
                record.consent_status,
                record.handoff_status,
                record.coach_notified,
                record.status,
                record.created_at,
            )
        except Exception as e:
            logger.error("Failed to insert escalation record %s: %s", record.id, e)
            raise PersistenceError("insert_escalation_record", e) from e

        logger.debug("Inserted escalation record %s (tier=%d)", record.id, record.tier)
        return record.id

    async def get_latest_for_conversation(self, conversation_id: str) -> Optional[EscalationRecord]:
        """Get the newest record for a conversation, or None."""
        pool = get_db_pool()
        if not pool.is_initialized:
            raise RepositoryError(
                "get_latest_for_conversation",
                DatabaseUnavailableError("get_latest_for_conversation"),
            )

        try:
            row = await pool.fetchrow(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM escalation_records
                WHERE conversation_id = $1
                ORDER BY created_at DESC
                LIMIT 1
                """,
                conversation_id,
            )
        except Exception as e:
            raise RepositoryError("get_latest_for_conversation", e) from e

        return _row_to_record(row) if row else None


# Global repository instance
_record_repo: Optional[EscalationRecordRepository] = None


def get_escalation_record_repo() -> EscalationRecordRepository:
    """Get the global escalation record repository."""
    global _record_repo
    if _record_repo is None:
        _record_repo = EscalationRecordRepository()
    return _record_repo
