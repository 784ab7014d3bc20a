"""Limit checks run before reasoning.

Counts are read without reservation, so under bursts the caps are
best-effort rather than hard guarantees.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from retainer.domain.agent_config import LimitsConfig
from retainer.infrastructure.stores.action.interface import ActionStore
from retainer.observability.logging import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


@dataclass
class LimitCheck:
    """Result of a limit check."""

    allowed: bool
    reason: str | None = None


ALLOWED = LimitCheck(allowed=True)


class LimitChecker:
    """Checks daily, weekly and time-window limits for one agent."""

    def __init__(
        self,
        user_id: str,
        agent_type: str,
        actions: ActionStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._user_id = user_id
        self._agent_type = agent_type
        self._actions = actions
        self._clock = clock

    async def check(self, subscriber_id: str, limits: LimitsConfig) -> LimitCheck:
        """Check every configured limit. Unset (None or 0) limits are skipped."""
        now = self._clock()
        local_now = now.astimezone(_zone(limits.timezone))

        if limits.max_actions_day:
            midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
            count = await self._actions.count_actions(
                self._user_id, self._agent_type, since=midnight.astimezone(UTC)
            )
            if count >= limits.max_actions_day:
                return LimitCheck(False, f"Max {limits.max_actions_day} actions per day reached")

        if limits.max_emails_client_week:
            count = await self._actions.count_communications(
                self._user_id, subscriber_id, channel="email", since=now - timedelta(days=7)
            )
            if count >= limits.max_emails_client_week:
                return LimitCheck(
                    False,
                    f"Max {limits.max_emails_client_week} emails per week for this subscriber",
                )

        if limits.send_hours_start is not None and limits.send_hours_end is not None:
            if not limits.send_hours_start <= local_now.hour < limits.send_hours_end:
                return LimitCheck(
                    False,
                    f"Outside sending hours ({limits.send_hours_start}h-{limits.send_hours_end}h)",
                )

        if limits.no_weekend and local_now.weekday() >= 5:
            return LimitCheck(False, "No actions on weekends")

        return ALLOWED


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown_timezone", timezone=name)
        return ZoneInfo("UTC")
