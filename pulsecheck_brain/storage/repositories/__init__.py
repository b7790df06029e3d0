"""
Repository classes for database access.

Repositories provide a clean interface for data access,
hiding the SQL implementation details.
"""

from .conversation import ConversationRepository, get_conversation_repo
from .escalation_condition import EscalationConditionRepository, get_escalation_condition_repo
from .escalation_record import EscalationRecordRepository, get_escalation_record_repo

__all__ = [
    "ConversationRepository",
    "EscalationConditionRepository",
    "EscalationRecordRepository",
    "get_conversation_repo",
    "get_escalation_condition_repo",
    "get_escalation_record_repo",
]
