"""Call orchestration core.

This module provides the turn-based conversation engine for live calls:
- ConversationContext: Ordered turn history for one call
- TurnProcessor: Caller input to reply text plus next action
- ActionDispatcher: Transfer, scheduling and hangup side effects
- CallSession / CallOrchestrator: Per-call loop and the session surface

Only the dependency-free pieces are re-exported here; import the session
and orchestrator modules directly.
"""

from voxdesk.core.classification import classify_action
from voxdesk.core.context import ConversationContext
from voxdesk.core.exceptions import (
    CallCapacityError,
    ContextClosedError,
    InvalidConversationConfigError,
)
from voxdesk.core.models import (
    ActionDecision,
    CallOutcome,
    ConversationConfig,
    DecisionSource,
    NextAction,
    SchedulePayload,
    Speaker,
    TransferPayload,
    Turn,
    Urgency,
)

__all__ = [
    # Context
    "ConversationContext",
    "classify_action",
    # Types
    "ActionDecision",
    "CallOutcome",
    "ConversationConfig",
    "DecisionSource",
    "NextAction",
    "SchedulePayload",
    "Speaker",
    "TransferPayload",
    "Turn",
    "Urgency",
    # Exceptions
    "CallCapacityError",
    "ContextClosedError",
    "InvalidConversationConfigError",
]
