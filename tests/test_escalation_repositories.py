"""
Tests for the escalation storage repositories.

The asyncpg pool is replaced with a MagicMock; assertions cover SQL
filters/ordering, row mapping, and error wrapping.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pulsecheck_brain.storage.exceptions import (
    DatabaseUnavailableError,
    PersistenceError,
    RepositoryError,
)
from pulsecheck_brain.storage.models import ConversationSafetyState, EscalationRecord
from pulsecheck_brain.storage.repositories.conversation import ConversationRepository
from pulsecheck_brain.storage.repositories.escalation_condition import EscalationConditionRepository
from pulsecheck_brain.storage.repositories.escalation_record import EscalationRecordRepository

_PATCH_CONDITION_POOL = "pulsecheck_brain.storage.repositories.escalation_condition.get_db_pool"
_PATCH_RECORD_POOL = "pulsecheck_brain.storage.repositories.escalation_record.get_db_pool"
_PATCH_CONVERSATION_POOL = "pulsecheck_brain.storage.repositories.conversation.get_db_pool"

_TS = datetime(2026, 2, 16, 9, 30, tzinfo=timezone.utc)


def _make_pool(*, is_initialized: bool = True, rows: list | None = None, row: dict | None = None):
    """Return a mock pool with async fetch/fetchrow/execute and is_initialized."""
    pool = MagicMock()
    pool.is_initialized = is_initialized
    pool.fetch = AsyncMock(return_value=rows if rows is not None else [])
    pool.fetchrow = AsyncMock(return_value=row)
    pool.execute = AsyncMock(return_value="INSERT 0 1")
    return pool


def _condition_row(**overrides) -> dict:
    row = {
        "id": "cond-1",
        "tier": 3,
        "category": "self-harm",
        "title": "Self-harm mention",
        "description": "Any mention of hurting oneself",
        "example_phrases": json.dumps(["I want to hurt myself"]),
        "keywords": ["cut", "hurt"],
        "priority": 10,
        "is_active": True,
        "created_at": _TS,
        "updated_at": _TS,
        "created_by": "admin-1",
    }
    row.update(overrides)
    return row


def _record(**overrides) -> EscalationRecord:
    fields = dict(
        id="rec-1",
        user_id="user-1234567890",
        conversation_id="conv-1",
        tier=3,
        category="suicidal-ideation",
        trigger_message_id="msg-1",
        trigger_content="I don't want to be here",
        classification_reason="Explicit ideation",
        classification_confidence=0.97,
        consent_status="not-required",
        created_at=_TS,
    )
    fields.update(overrides)
    return EscalationRecord(**fields)


# ---------------------------------------------------------------------------
# EscalationConditionRepository
# ---------------------------------------------------------------------------


class TestConditionRepository:

    @pytest.mark.asyncio
    async def test_loads_active_conditions_in_order(self):
        pool = _make_pool(rows=[_condition_row(), _condition_row(id="cond-2", tier=1, example_phrases=None)])
        with patch(_PATCH_CONDITION_POOL, return_value=pool):
            conditions = await EscalationConditionRepository().load_active_conditions()

        sql = pool.fetch.call_args.args[0]
        assert "is_active = true" in sql
        assert "ORDER BY tier ASC, priority DESC" in sql
        assert [c.id for c in conditions] == ["cond-1", "cond-2"]
        assert conditions[0].example_phrases == ["I want to hurt myself"]
        assert conditions[0].keywords == ["cut", "hurt"]
        assert conditions[1].example_phrases == []

    @pytest.mark.asyncio
    async def test_pool_not_initialized(self):
        with patch(_PATCH_CONDITION_POOL, return_value=_make_pool(is_initialized=False)):
            with pytest.raises(RepositoryError) as exc_info:
                await EscalationConditionRepository().load_active_conditions()
        assert isinstance(exc_info.value.cause, DatabaseUnavailableError)

    @pytest.mark.asyncio
    async def test_query_failure_wrapped(self):
        pool = _make_pool()
        pool.fetch = AsyncMock(side_effect=ConnectionError("reset"))
        with patch(_PATCH_CONDITION_POOL, return_value=pool):
            with pytest.raises(RepositoryError):
                await EscalationConditionRepository().load_active_conditions()


# ---------------------------------------------------------------------------
# EscalationRecordRepository
# ---------------------------------------------------------------------------


class TestRecordRepository:

    @pytest.mark.asyncio
    async def test_recent_incidents_query(self):
        rows = [{"tier": 2, "category": "burnout", "created_at": _TS}]
        pool = _make_pool(rows=rows)
        with patch(_PATCH_RECORD_POOL, return_value=pool):
            incidents = await EscalationRecordRepository().load_recent_incidents(
                "user-1234567890", window_days=30, limit=5
            )

        sql, user_id, since, limit = pool.fetch.call_args.args
        assert "WHERE user_id = $1 AND created_at >= $2" in sql
        assert "ORDER BY created_at DESC" in sql
        assert user_id == "user-1234567890"
        assert limit == 5
        assert since.tzinfo is not None
        assert incidents[0].tier == 2
        assert incidents[0].category == "burnout"

    @pytest.mark.asyncio
    async def test_recent_incidents_failure_wrapped(self):
        pool = _make_pool()
        pool.fetch = AsyncMock(side_effect=TimeoutError())
        with patch(_PATCH_RECORD_POOL, return_value=pool):
            with pytest.raises(RepositoryError):
                await EscalationRecordRepository().load_recent_incidents("user-1234567890")

    @pytest.mark.asyncio
    async def test_insert(self):
        pool = _make_pool()
        record = _record()
        with patch(_PATCH_RECORD_POOL, return_value=pool):
            record_id = await EscalationRecordRepository().insert(record)

        assert record_id == "rec-1"
        args = pool.execute.call_args.args
        assert "INSERT INTO escalation_records" in args[0]
        assert args[1:] == (
            "rec-1", "user-1234567890", "conv-1", 3, "suicidal-ideation", "msg-1",
            "I don't want to be here", "Explicit ideation", 0.97,
            "not-required", "pending", False, "active", _TS,
        )

    @pytest.mark.asyncio
    async def test_insert_failure_raises_persistence_error(self):
        pool = _make_pool()
        pool.execute = AsyncMock(side_effect=RuntimeError("unique violation"))
        with patch(_PATCH_RECORD_POOL, return_value=pool):
            with pytest.raises(PersistenceError):
                await EscalationRecordRepository().insert(_record())

    @pytest.mark.asyncio
    async def test_insert_without_pool(self):
        with patch(_PATCH_RECORD_POOL, return_value=_make_pool(is_initialized=False)):
            with pytest.raises(PersistenceError):
                await EscalationRecordRepository().insert(_record())

    @pytest.mark.asyncio
    async def test_latest_for_conversation(self):
        row = _record().to_dict()
        row["created_at"] = _TS
        pool = _make_pool(row=row)
        with patch(_PATCH_RECORD_POOL, return_value=pool):
            record = await EscalationRecordRepository().get_latest_for_conversation("conv-1")

        assert record.id == "rec-1"
        assert record.tier == 3
        assert "ORDER BY created_at DESC" in pool.fetchrow.call_args.args[0]

    @pytest.mark.asyncio
    async def test_latest_for_conversation_none(self):
        with patch(_PATCH_RECORD_POOL, return_value=_make_pool(row=None)):
            assert await EscalationRecordRepository().get_latest_for_conversation("conv-x") is None


# ---------------------------------------------------------------------------
# ConversationRepository
# ---------------------------------------------------------------------------


class TestConversationRepository:

    @pytest.mark.asyncio
    async def test_merge_upserts_safety_columns_only(self):
        pool = _make_pool()
        state = ConversationSafetyState(
            conversation_id="conv-1",
            user_id="user-1234567890",
            escalation_tier=3,
            escalation_status="active",
            escalation_record_id="rec-1",
            is_in_safety_mode=True,
            last_escalation_at=_TS,
        )
        with patch(_PATCH_CONVERSATION_POOL, return_value=pool):
            await ConversationRepository().merge_safety_state(state)

        sql, *params = pool.execute.call_args.args
        assert "ON CONFLICT (id) DO UPDATE" in sql
        assert "title" not in sql
        assert params == ["conv-1", "user-1234567890", 3, "active", "rec-1", True, _TS]

    @pytest.mark.asyncio
    async def test_merge_failure_raises_persistence_error(self):
        pool = _make_pool()
        pool.execute = AsyncMock(side_effect=RuntimeError("deadlock"))
        state = ConversationSafetyState("conv-1", 2, "active", "rec-1", False)
        with patch(_PATCH_CONVERSATION_POOL, return_value=pool):
            with pytest.raises(PersistenceError):
                await ConversationRepository().merge_safety_state(state)

    @pytest.mark.asyncio
    async def test_get_safety_state_unescalated(self):
        row = {
            "id": "conv-1", "user_id": None, "escalation_tier": 0, "escalation_status": None,
            "escalation_record_id": None, "is_in_safety_mode": False, "last_escalation_at": None,
        }
        with patch(_PATCH_CONVERSATION_POOL, return_value=_make_pool(row=row)):
            assert await ConversationRepository().get_safety_state("conv-1") is None

    @pytest.mark.asyncio
    async def test_get_safety_state(self):
        row = {
            "id": "conv-1", "user_id": "user-1", "escalation_tier": 2, "escalation_status": "active",
            "escalation_record_id": "rec-1", "is_in_safety_mode": False, "last_escalation_at": _TS,
        }
        with patch(_PATCH_CONVERSATION_POOL, return_value=_make_pool(row=row)):
            state = await ConversationRepository().get_safety_state("conv-1")
        assert state.escalation_tier == 2
        assert state.escalation_record_id == "rec-1"
