"""Domain errors.

Policy rejections (inactive agent, unsupported trigger, exceeded limit)
are not errors: they return None. These exceptions signal a caller
contract violation or a failed execution.
"""

from uuid import UUID


class RetainerError(Exception):
    """Base exception for agent-loop errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(RetainerError):
    """A referenced record does not exist."""

    pass


class SubscriberNotFoundError(NotFoundError):
    """Subscriber referenced by an event does not exist."""

    def __init__(self, subscriber_id: str) -> None:
        super().__init__(f"Subscriber not found: {subscriber_id}")
        self.subscriber_id = subscriber_id


class EpisodeNotFoundError(NotFoundError):
    """Episode referenced by id does not exist."""

    def __init__(self, episode_id: UUID) -> None:
        super().__init__(f"Episode not found: {episode_id}")
        self.episode_id = episode_id


class ActionNotFoundError(NotFoundError):
    """Action referenced by id does not exist."""

    def __init__(self, action_id: UUID) -> None:
        super().__init__(f"Action not found: {action_id}")
        self.action_id = action_id


class InvalidActionStateError(RetainerError):
    """Action is not in a status that allows the requested transition."""

    def __init__(self, action_id: UUID, status: str, operation: str) -> None:
        super().__init__(f"Action {action_id} cannot be {operation} (status: {status})")
        self.action_id = action_id
        self.status = status


class ActionExecutionError(RetainerError):
    """The action executor failed. The action has been marked failed."""

    def __init__(self, action_id: UUID, cause: Exception) -> None:
        super().__init__(f"Action {action_id} failed: {cause}")
        self.action_id = action_id
        self.cause = cause
