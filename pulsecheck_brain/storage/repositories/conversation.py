"""
Conversation repository for the safety projection.

Conversations are owned by the chat service. This repository only merges
the escalation columns onto a conversation row, creating the row if the
chat service has not written it yet.
"""

import logging
from typing import Optional

from ..database import get_db_pool
from ..exceptions import DatabaseUnavailableError, PersistenceError, RepositoryError
from ..models import ConversationSafetyState

logger = logging.getLogger("pulsecheck.storage.conversation")


class ConversationRepository:
    """Merge-only access to conversation safety fields."""

    async def merge_safety_state(self, state: ConversationSafetyState) -> None:
        """
        Upsert the safety columns of a conversation.

        Other conversation columns are left untouched.

        Raises:
            PersistenceError: if the write fails
        """
        pool = get_db_pool()
        if not pool.is_initialized:
            raise PersistenceError(
                "merge_safety_state",
                DatabaseUnavailableError("merge_safety_state"),
            )

        try:
            await pool.execute(
                """
                INSERT INTO conversations
                    (id, user_id, escalation_tier, escalation_status, escalation_record_id,
                     is_in_safety_mode, last_escalation_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, NOW())
                ON CONFLICT (id) DO UPDATE
                SET escalation_tier = EXCLUDED.escalation_tier,
                    escalation_status = EXCLUDED.escalation_status,
                    escalation_record_id = EXCLUDED.escalation_record_id,
                    is_in_safety_mode = EXCLUDED.is_in_safety_mode,
                    last_escalation_at = EXCLUDED.last_escalation_at,
                    user_id = COALESCE(conversations.user_id, EXCLUDED.user_id),
                    updated_at = NOW()
                """,
                state.conversation_id,
                state.user_id,
                state.escalation_tier,
                state.escalation_status,
                state.escalation_record_id,
                state.is_in_safety_mode,
                state.last_escalation_at,
            )
        except Exception as e:
            logger.error("Failed to merge safety state for conversation %s: %s", state.conversation_id, e)
            raise PersistenceError("merge_safety_state", e) from e

        logger.debug(
            "Merged safety state for conversation %s (tier=%d, safety_mode=%s)",
            state.conversation_id,
            state.escalation_tier,
            state.is_in_safety_mode,
        )

    async def get_safety_state(self, conversation_id: str) -> Optional[ConversationSafetyState]:
        """Get the current safety projection, or None if never escalated."""
        pool = get_db_pool()
        if not pool.is_initialized:
            raise RepositoryError(
                "get_safety_state",
                DatabaseUnavailableError("get_safety_state"),
            )

        try:
            row = await pool.fetchrow(
                """
                SELECT id, user_id, escalation_tier, escalation_status,
                       escalation_record_id, is_in_safety_mode, last_escalation_at
                FROM conversations
                WHERE id = $1
                """,
                conversation_id,
            )
        except Exception as e:
            raise RepositoryError("get_safety_state", e) from e

        if not row or row["escalation_record_id"] is None:
            return None

        return ConversationSafetyState(
            conversation_id=row["id"],
            user_id=row["user_id"],
            escalation_tier=row["escalation_tier"],
            escalation_status=row["escalation_status"],
            escalation_record_id=row["escalation_record_id"],
            is_in_safety_mode=row["is_in_safety_mode"],
            last_escalation_at=row["last_escalation_at"],
        )


# Global repository instance
_conversation_repo: Optional[ConversationRepository] = None


def get_conversation_repo() -> ConversationRepository:
    """Get the global conversation repository."""
    global _conversation_repo
    if _conversation_repo is None:
        _conversation_repo = ConversationRepository()
    return _conversation_repo
