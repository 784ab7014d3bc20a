"""Action executors: the outward side of an approved action.

Concrete transports (email, SMS, billing) live outside this package and
plug in through ActionExecutor.
"""

from typing import Any, Protocol

from retainer.domain.actions import AgentAction
from retainer.domain.agent_config import BrandSettings
from retainer.observability.logging import get_logger

logger = get_logger(__name__)

# Action types that send a message, mapped to their channel
MESSAGE_CHANNELS = {
    "email": "email",
    "email_reminder": "email",
    "sms": "sms",
}


class ActionExecutor(Protocol):
    """Performs an action.

    Returns fields to merge into the action's stored result (e.g. a
    message id), or None. Raising marks the action failed.
    """

    async def execute(
        self, action: AgentAction, brand: BrandSettings
    ) -> dict[str, Any] | None: ...


class LoggingActionExecutor:
    """Executor that only records the delegation. Used when no transport is wired."""

    async def execute(self, action: AgentAction, brand: BrandSettings) -> dict[str, Any] | None:
        logger.info(
            "action_delegated",
            action_id=str(action.id),
            action_type=action.action_type,
            agent_type=action.agent_type,
            subscriber_id=action.subscriber_id,
            company=brand.company_name,
        )
        return {"delegated": True}
