"""ActionStore abstract interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import UUID

from retainer.domain.actions import AgentAction, Communication, Feedback, ReasoningLog
from retainer.domain.enums import ActionStatus


class ActionStore(ABC):
    """Abstract interface for action records, reasoning logs,
    sent communications and feedback."""

    # Action operations
    @abstractmethod
    async def create_action(self, action: AgentAction) -> UUID:
        """Persist a new action record."""
        pass

    @abstractmethod
    async def get_action(self, action_id: UUID) -> AgentAction | None:
        """Get an action by ID."""
        pass

    @abstractmethod
    async def transition_action(
        self,
        action_id: UUID,
        *,
        from_statuses: set[ActionStatus],
        to_status: ActionStatus,
        result_updates: dict[str, Any] | None = None,
        executed_at: datetime | None = None,
    ) -> AgentAction | None:
        """Atomically move an action to to_status if its status is in from_statuses.

        Returns the updated action, or None if the action is missing or in
        another status.
        """
        pass

    @abstractmethod
    async def set_episode(self, action_id: UUID, episode_id: UUID) -> bool:
        """Link the episode opened for an action."""
        pass

    @abstractmethod
    async def count_actions(self, user_id: str, agent_type: str, *, since: datetime) -> int:
        """Count actions created for (user, agent type) since a time."""
        pass

    # Reasoning logs
    @abstractmethod
    async def save_reasoning_logs(self, logs: list[ReasoningLog]) -> None:
        """Persist reasoning steps for an action."""
        pass

    @abstractmethod
    async def get_reasoning_logs(self, action_id: UUID) -> list[ReasoningLog]:
        """Get reasoning steps for an action, ordered by step number."""
        pass

    # Communications
    @abstractmethod
    async def record_communication(self, communication: Communication) -> UUID:
        """Record a message sent to a subscriber."""
        pass

    @abstractmethod
    async def count_communications(
        self,
        user_id: str,
        subscriber_id: str,
        *,
        channel: str | None = None,
        since: datetime | None = None,
    ) -> int:
        """Count messages an account sent to one of its subscribers."""
        pass

    # Feedback
    @abstractmethod
    async def add_feedback(self, feedback: Feedback) -> UUID:
        """Persist a feedback row."""
        pass

    @abstractmethod
    async def list_feedback(
        self, user_id: str, *, action_id: UUID | None = None
    ) -> list[Feedback]:
        """List feedback rows, oldest first."""
        pass
