"""
Escalation API endpoints.

Provides REST API for:
- Synchronous classification of a single message
- Background classification of persisted chat turns
- Conversation safety state and projection repair
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ..escalation import (
    ClassificationJob,
    ConversationMessage,
    IncidentRecorder,
    MentalNote,
    category_label,
    classify_message,
    coach_status_label,
    get_escalation_queue,
    tier_label,
)
from ..storage.exceptions import StorageError
from ..storage.repositories import get_conversation_repo, get_escalation_record_repo

logger = logging.getLogger("pulsecheck.api.escalation")

router = APIRouter(prefix="/escalation", tags=["escalation"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RecentMessageIn(_CamelModel):
    content: str = ""
    is_from_user: bool = Field(default=True, alias="isFromUser")


class MentalNoteIn(_CamelModel):
    content: str = ""
    title: str = ""
    category: str = ""


class ClassifyRequest(_CamelModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    message: Optional[str] = None
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    recent_messages: list[RecentMessageIn] = Field(default_factory=list, alias="recentMessages")
    mental_notes: list[MentalNoteIn] = Field(default_factory=list, alias="mentalNotes")


class TurnRequest(ClassifyRequest):
    trigger_message_id: Optional[str] = Field(default=None, alias="triggerMessageId")
    skip_escalation: bool = Field(default=False, alias="skipEscalation")


def _recent(request: ClassifyRequest) -> list[ConversationMessage]:
    return [
        ConversationMessage(content=m.content, is_from_user=m.is_from_user)
        for m in request.recent_messages
    ]


def _notes(request: ClassifyRequest) -> list[MentalNote]:
    return [
        MentalNote(content=n.content, title=n.title, category=n.category)
        for n in request.mental_notes
    ]


@router.post("/classify")
async def classify(request: ClassifyRequest):
    """
    Classify one message and return the normalized result.

    Returns null when classification is unavailable. No incident is recorded.
    """
    if not request.user_id or not request.message:
        raise HTTPException(status_code=400, detail="Missing userId or message")

    result = await classify_message(
        request.user_id,
        request.message,
        request.conversation_id,
        _recent(request),
        _notes(request),
    )
    return result.to_dict() if result else None


@router.post("/turns", status_code=status.HTTP_202_ACCEPTED)
async def submit_turn(request: TurnRequest):
    """
    Queue a persisted chat turn for background classification.

    Returns immediately; tier 2/3 results are recorded by the worker.
    """
    if not request.user_id or not request.message:
        raise HTTPException(status_code=400, detail="Missing userId or message")
    if not request.conversation_id or not request.trigger_message_id:
        raise HTTPException(status_code=400, detail="Missing conversationId or triggerMessageId")

    job = ClassificationJob(
        user_id=request.user_id,
        conversation_id=request.conversation_id,
        message=request.message,
        trigger_message_id=request.trigger_message_id,
        recent_messages=_recent(request),
        mental_notes=_notes(request),
        skip_escalation=request.skip_escalation,
    )
    return {"queued": get_escalation_queue().submit(job)}


@router.get("/queue")
async def queue_stats():
    """Get background queue statistics."""
    return get_escalation_queue().stats


@router.get("/conversations/{conversation_id}")
async def get_conversation_safety(conversation_id: str):
    """Get the safety projection and coach-facing labels for a conversation."""
    try:
        state = await get_conversation_repo().get_safety_state(conversation_id)
        record = await get_escalation_record_repo().get_latest_for_conversation(conversation_id)
    except StorageError as e:
        logger.error("Failed to load safety state for %s: %s", conversation_id, e)
        raise HTTPException(503, "Database not available")

    if state is None:
        return {
            "conversation_id": conversation_id,
            "escalation_tier": 0,
            "tier_label": tier_label(0),
            "is_in_safety_mode": False,
        }

    response = state.to_dict()
    response["tier_label"] = tier_label(state.escalation_tier)
    if record is not None:
        response["category_label"] = category_label(record.category)
        response["coach_status"] = coach_status_label(record.tier, record.handoff_status)
    return response


@router.post("/conversations/{conversation_id}/reconcile")
async def reconcile_conversation(conversation_id: str):
    """Re-apply the newest escalation record onto the conversation projection."""
    try:
        record_id = await IncidentRecorder().reconcile(conversation_id)
    except StorageError as e:
        logger.error("Failed to reconcile conversation %s: %s", conversation_id, e)
        raise HTTPException(503, "Database not available")

    if record_id is None:
        raise HTTPException(404, "No escalation records for conversation")
    return {"conversation_id": conversation_id, "escalation_record_id": record_id}
