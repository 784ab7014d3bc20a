"""Offline pattern mining over resolved episodes."""

from collections import Counter
from dataclasses import dataclass, field
from statistics import mean

from retainer.domain.enums import Outcome
from retainer.domain.episode import Episode
from retainer.domain.memory import PatternContent
from retainer.learning.models import BatchAnalysis

MIN_CASES = 3
WORKS_WELL_RATE = 0.7
AVOID_RATE = 0.3
AVOID_MIN_CASES = 5


@dataclass
class _Group:
    trigger: str
    action: str
    successes: int = 0
    failures: int = 0
    plans: list[str] = field(default_factory=list)
    tenures: list[int] = field(default_factory=list)


def batch_analyze_episodes(episodes: list[Episode]) -> BatchAnalysis:
    """Group resolved episodes by trigger and action, and score each group.

    Only success and failure count towards a group's rate. Groups with
    fewer than three decided cases are dropped. Patterns come back
    sorted by success rate, best first.
    """
    groups: dict[str, _Group] = {}

    for episode in episodes:
        if not episode.is_resolved:
            continue
        trigger = episode.situation.trigger
        action = episode.action_taken.key
        group = groups.setdefault(f"{trigger}::{action}", _Group(trigger=trigger, action=action))

        if episode.outcome == Outcome.SUCCESS:
            group.successes += 1
        elif episode.outcome == Outcome.FAILURE:
            group.failures += 1

        if episode.situation.subscriber.plan:
            group.plans.append(episode.situation.subscriber.plan)
        group.tenures.append(episode.situation.subscriber.tenure_months)

    patterns: list[PatternContent] = []
    insights: list[str] = []

    for group in groups.values():
        total = group.successes + group.failures
        if total < MIN_CASES:
            continue

        rate = group.successes / total
        common_plan = Counter(group.plans).most_common(1)
        patterns.append(
            PatternContent(
                trigger=group.trigger,
                best_action=group.action,
                success_rate=rate,
                sample_size=total,
                applicable_to={
                    "avg_tenure": mean(group.tenures),
                    "most_common_plan": common_plan[0][0] if common_plan else None,
                },
            )
        )

        if rate >= WORKS_WELL_RATE:
            insights.append(
                f'Strategy "{group.action}" works well for "{group.trigger}" '
                f"({rate:.0%} success over {total} cases)"
            )
        elif rate <= AVOID_RATE and total >= AVOID_MIN_CASES:
            insights.append(
                f'Strategy "{group.action}" rarely works for "{group.trigger}" '
                f"({rate:.0%} success over {total} cases), avoid it"
            )

    patterns.sort(key=lambda p: p.success_rate, reverse=True)
    return BatchAnalysis(patterns=patterns, insights=insights)
