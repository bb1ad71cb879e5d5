"""
Orchestration — машина состояний операций mint / redeem и классификация ошибок.
"""

from btc1_client.orchestration.error_classifier import classify
from btc1_client.orchestration.orchestrator import STATUS_MESSAGES, TransactionOrchestrator
from btc1_client.orchestration.states import (
    ALLOWED_TRANSITIONS,
    IllegalTransition,
    OperationIntent,
    OperationKind,
    OrchestratorState,
    PendingOperation,
    TransitionRecord,
    check_transition,
)

__all__ = [
    # Classifier
    "classify",
    # Orchestrator
    "STATUS_MESSAGES",
    "TransactionOrchestrator",
    # States
    "ALLOWED_TRANSITIONS",
    "IllegalTransition",
    "OperationIntent",
    "OperationKind",
    "OrchestratorState",
    "PendingOperation",
    "TransitionRecord",
    "check_transition",
]
