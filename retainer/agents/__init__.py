"""Event orchestration: agent capabilities, limits and the per-event core."""

from retainer.agents.capabilities import (
    CAPABILITIES,
    AgentCapability,
    agent_type_for_trigger,
    cancel_pending_event,
    capability_for,
    downgrade_event,
    inactive_subscriber_event,
    payment_failed_event,
    trial_ending_event,
)
from retainer.agents.core import AgentCore, tenure_months
from retainer.agents.executors import ActionExecutor, LoggingActionExecutor
from retainer.agents.limits import LimitCheck, LimitChecker
from retainer.agents.mutex import SubscriberMutex, build_subscriber_key
from retainer.agents.orchestrator import AgentOrchestrator, OrchestratorResult

__all__ = [
    "CAPABILITIES",
    "ActionExecutor",
    "AgentCapability",
    "AgentCore",
    "AgentOrchestrator",
    "LimitCheck",
    "LimitChecker",
    "LoggingActionExecutor",
    "OrchestratorResult",
    "SubscriberMutex",
    "agent_type_for_trigger",
    "build_subscriber_key",
    "cancel_pending_event",
    "capability_for",
    "downgrade_event",
    "inactive_subscriber_event",
    "payment_failed_event",
    "tenure_months",
    "trial_ending_event",
]
