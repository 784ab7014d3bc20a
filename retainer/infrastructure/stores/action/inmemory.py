"""In-memory implementation of ActionStore."""

import asyncio
from datetime import datetime
from typing import Any
from uuid import UUID

from retainer.domain.actions import AgentAction, Communication, Feedback, ReasoningLog
from retainer.domain.enums import ActionStatus
from retainer.infrastructure.stores.action.interface import ActionStore


class InMemoryActionStore(ActionStore):
    """Dict-backed ActionStore; status transitions are applied under one lock."""

    def __init__(self) -> None:
        self._actions: dict[UUID, AgentAction] = {}
        self._reasoning_logs: dict[UUID, list[ReasoningLog]] = {}
        self._communications: dict[UUID, Communication] = {}
        self._feedback: dict[UUID, Feedback] = {}
        self._lock = asyncio.Lock()

    async def create_action(self, action: AgentAction) -> UUID:
        """Persist a new action record."""
        self._actions[action.id] = action
        return action.id

    async def get_action(self, action_id: UUID) -> AgentAction | None:
        """Get an action by ID."""
        return self._actions.get(action_id)

    async def transition_action(
        self,
        action_id: UUID,
        *,
        from_statuses: set[ActionStatus],
        to_status: ActionStatus,
        result_updates: dict[str, Any] | None = None,
        executed_at: datetime | None = None,
    ) -> AgentAction | None:
        """Atomically move an action between statuses."""
        async with self._lock:
            action = self._actions.get(action_id)
            if action is None or action.status not in from_statuses:
                return None
            action.status = to_status
            if result_updates:
                action.result = {**action.result, **result_updates}
            if executed_at is not None:
                action.executed_at = executed_at
            return action

    async def set_episode(self, action_id: UUID, episode_id: UUID) -> bool:
        """Link the episode opened for an action."""
        action = self._actions.get(action_id)
        if action is None:
            return False
        action.episode_id = episode_id
        return True

    async def count_actions(self, user_id: str, agent_type: str, *, since: datetime) -> int:
        """Count actions created for (user, agent type) since a time."""
        return sum(
            1
            for action in self._actions.values()
            if action.user_id == user_id
            and action.agent_type == agent_type
            and action.created_at >= since
        )

    async def save_reasoning_logs(self, logs: list[ReasoningLog]) -> None:
        """Persist reasoning steps for an action."""
        for log in logs:
            self._reasoning_logs.setdefault(log.action_id, []).append(log)

    async def get_reasoning_logs(self, action_id: UUID) -> list[ReasoningLog]:
        """Get reasoning steps for an action, ordered by step number."""
        logs = list(self._reasoning_logs.get(action_id, []))
        logs.sort(key=lambda x: x.step_number)
        return logs

    async def record_communication(self, communication: Communication) -> UUID:
        """Record a message sent to a subscriber."""
        self._communications[communication.id] = communication
        return communication.id

    async def count_communications(
        self,
        user_id: str,
        subscriber_id: str,
        *,
        channel: str | None = None,
        since: datetime | None = None,
    ) -> int:
        """Count messages an account sent to one of its subscribers."""
        return sum(
            1
            for comm in self._communications.values()
            if comm.user_id == user_id
            and comm.subscriber_id == subscriber_id
            and (channel is None or comm.channel == channel)
            and (since is None or comm.created_at >= since)
        )

    async def add_feedback(self, feedback: Feedback) -> UUID:
        """Persist a feedback row."""
        self._feedback[feedback.id] = feedback
        return feedback.id

    async def list_feedback(
        self, user_id: str, *, action_id: UUID | None = None
    ) -> list[Feedback]:
        """List feedback rows, oldest first."""
        results = [
            fb
            for fb in self._feedback.values()
            if fb.user_id == user_id and (action_id is None or fb.action_id == action_id)
        ]
        results.sort(key=lambda x: x.created_at)
        return results
