"""
Escalation condition repository.

Loads admin-authored escalation conditions for the safety classifier.
Conditions are created and edited by admin tooling; this repository only reads.
"""

import json
import logging
from typing import Optional

from ..database import get_db_pool
from ..exceptions import DatabaseUnavailableError, RepositoryError
from ..models import EscalationCondition

logger = logging.getLogger("pulsecheck.storage.escalation_condition")


def _json_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = json.loads(value)
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def _row_to_condition(row) -> EscalationCondition:
    return EscalationCondition(
        id=row["id"],
        tier=row["tier"],
        category=row["category"] or "general",
        title=row["title"] or "",
        description=row["description"] or "",
        example_phrases=_json_list(row["example_phrases"]),
        keywords=_json_list(row["keywords"]),
        priority=row["priority"] or 0,
        is_active=row["is_active"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        created_by=row["created_by"] or "",
    )


class EscalationConditionRepository:
    """Read access to escalation conditions."""

    async def load_active_conditions(self) -> list[EscalationCondition]:
        """
        Load active conditions ordered by tier ascending, priority descending.

        Raises:
            RepositoryError: on any storage or query failure
        """
        pool = get_db_pool()
        if not pool.is_initialized:
            raise RepositoryError(
                "load_active_conditions",
                DatabaseUnavailableError("load_active_conditions"),
            )

        try:
            rows = await pool.fetch(
                """
                SELECT id, tier, category, title, description, example_phrases,
                       keywords, priority, is_active, created_at, updated_at, created_by
                FROM escalation_conditions
                WHERE is_active = true
                ORDER BY tier ASC, priority DESC
                """
            )
            conditions = [_row_to_condition(row) for row in rows]
        except Exception as e:
            logger.error("Failed to load escalation conditions: %s", e)
            raise RepositoryError("load_active_conditions", e) from e

        logger.debug("Loaded %d active escalation conditions", len(conditions))
        return conditions


# Global repository instance
_condition_repo: Optional[EscalationConditionRepository] = None


def get_escalation_condition_repo() -> EscalationConditionRepository:
    """Get the global escalation condition repository."""
    global _condition_repo
    if _condition_repo is None:
        _condition_repo = EscalationConditionRepository()
    return _condition_repo
