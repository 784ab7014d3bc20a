"""Prompt text for the reasoning pipeline."""

import json
from collections import Counter
from typing import Any

from retainer.domain.agent_config import AgentConfig, BrandSettings
from retainer.domain.enums import MemoryType, Outcome
from retainer.domain.episode import Episode
from retainer.domain.memory import Memory
from retainer.domain.reasoning import ActionOption
from retainer.domain.situation import Situation, SubscriberSnapshot
from retainer.memory.agent_memory import summarize_memories

TRIGGER_DESCRIPTIONS = {
    "payment_failed": "The payment failed.",
    "cancel_pending": "The customer asked to cancel their subscription.",
    "downgrade": "The customer downgraded to a lower plan.",
    "trial_ending": "The trial period ends soon.",
    "freemium_inactive": "Freemium user has been inactive for a while.",
    "subscription_expiring": "The subscription expires soon.",
}


def money(cents: int | float) -> str:
    return f"{cents / 100:.2f}€"


def describe_subscriber(subscriber: SubscriberSnapshot) -> str:
    parts = [f"Customer: {subscriber.name or subscriber.email}."]
    if subscriber.plan:
        parts.append(f"Plan: {subscriber.plan}.")
    if subscriber.mrr > 0:
        parts.append(f"MRR: {money(subscriber.mrr)}.")
    if subscriber.tenure_months > 0:
        parts.append(f"Customer for {subscriber.tenure_months} months.")
    if subscriber.previous_interactions > 0:
        parts.append(f"{subscriber.previous_interactions} previous interactions.")
    return " ".join(parts)


def describe_trigger(trigger: str, context: dict[str, Any]) -> str:
    description = TRIGGER_DESCRIPTIONS.get(trigger, f"Event: {trigger}.")

    amount = context.get("amount")
    if isinstance(amount, int | float) and not isinstance(amount, bool) and amount:
        description += f" Amount: {money(amount)}."
    if context.get("days_until_expiry") is not None:
        description += f" Expires in {context['days_until_expiry']} days."
    return description


def strategy_stats(episodes: list[tuple[Episode, float]]) -> dict[str, tuple[int, int]]:
    """Per-strategy (successes, total) over matched episodes, in first-seen order."""
    stats: dict[str, tuple[int, int]] = {}
    for episode, _ in episodes:
        success, total = stats.get(episode.action_taken.strategy, (0, 0))
        stats[episode.action_taken.strategy] = (
            success + (episode.outcome == Outcome.SUCCESS),
            total + 1,
        )
    return stats


def winning_strategy(episodes: list[tuple[Episode, float]]) -> tuple[str, int] | None:
    """Most frequent strategy among successful episodes."""
    counts = Counter(
        ep.action_taken.strategy for ep, _ in episodes if ep.outcome == Outcome.SUCCESS
    )
    if not counts:
        return None
    return counts.most_common(1)[0]


# =============================================================================
# Option generation
# =============================================================================


def options_system_prompt(brand: BrandSettings) -> str:
    return f"""You are an AI agent that manages subscriptions.
Generate action options for the given situation.

Company: {brand.company_name or 'Not specified'}
Tone: {brand.tone}
Product type: {brand.product_type or 'SaaS'}

For each option, specify:
- action: the action type (email, sms, discount, pause, call, ...)
- strategy: the approach (friendly, urgent, value_focused, empathetic, ...)
- details: specific details (discount_percent, message_tone, ...)

Reply ONLY with JSON in this format:
{{
  "options": [
    {{
      "action": "email",
      "strategy": "friendly",
      "details": {{"tone": "warm", "include_help_offer": true}},
      "reasoning": "Why this option fits"
    }}
  ]
}}"""


def options_prompt(
    situation: Situation,
    memories: list[Memory],
    episodes: list[tuple[Episode, float]],
    config: AgentConfig,
    brand: BrandSettings,
) -> str:
    subscriber = situation.subscriber
    parts = [
        "=== SITUATION ===",
        f"Trigger: {situation.trigger}",
        f"Customer: {subscriber.name or subscriber.email}",
        f"Plan: {subscriber.plan or 'Not specified'}",
        f"MRR: {money(subscriber.mrr)}",
        f"Tenure: {subscriber.tenure_months} months",
        f"Previous interactions: {subscriber.previous_interactions}",
    ]
    if situation.context:
        parts.append(f"Context: {json.dumps(situation.context, default=str)}")

    if memories:
        parts.append("\n=== RELEVANT MEMORIES ===")
        parts.append(summarize_memories(memories))

    if episodes:
        parts.append("\n=== SIMILAR EPISODES ===")
        successes = sum(1 for ep, _ in episodes if ep.outcome == Outcome.SUCCESS)
        parts.append(f"Historical success rate: {successes / len(episodes):.0%}")
        for episode, similarity in episodes[:3]:
            parts.append(
                f"- {episode.action_taken.strategy}: {episode.outcome.value} "
                f"(similarity: {similarity:.0%})"
            )

    parts.append("\n=== CONSTRAINTS ===")
    parts.append(f"Strategy template: {config.strategy_template.value}")
    if config.limits.max_emails_client_week:
        parts.append(f"Max emails per week: {config.limits.max_emails_client_week}")

    parts.append("\n=== BRAND VOICE ===")
    parts.append(f"Company: {brand.company_name or 'Not specified'}")
    parts.append(f"Tone: {brand.tone}")
    if brand.values:
        parts.append(f"Values: {', '.join(brand.values)}")
    if brand.never_say:
        parts.append(f"Never say: {', '.join(brand.never_say)}")

    parts.append("\n=== REQUEST ===")
    parts.append("Generate 2 to 4 relevant action options for this situation.")
    parts.append("Vary the approaches (conservative, moderate, proactive).")
    return "\n".join(parts)


# =============================================================================
# Evaluation
# =============================================================================

EVALUATION_SYSTEM_PROMPT = """You evaluate action options.
For each option, give:
- A score between 0 and 1 (1 = best option)
- The reasons for this score

Evaluation criteria:
- Relevance to the situation
- Likelihood of success based on past episodes
- Respect for known customer preferences
- Alignment with the configured strategy

Reply ONLY with JSON:
{
  "evaluations": [
    {
      "option_index": 0,
      "score": 0.85,
      "reasons": ["Reason 1", "Reason 2"]
    }
  ]
}"""


def evaluation_prompt(
    options: list[ActionOption],
    situation: Situation,
    memories: list[Memory],
    episodes: list[tuple[Episode, float]],
    config: AgentConfig,
) -> str:
    parts = ["=== OPTIONS TO EVALUATE ==="]
    for i, option in enumerate(options):
        parts.append(f"Option {i}: {option.action} / {option.strategy}")
        parts.append(f"  Details: {json.dumps(option.details, default=str)}")
        if option.reasoning:
            parts.append(f"  Reasoning: {option.reasoning}")

    parts.append("\n=== CUSTOMER CONTEXT ===")
    parts.append(f"MRR: {money(situation.subscriber.mrr)}")
    parts.append(f"Tenure: {situation.subscriber.tenure_months} months")

    preferences = [m for m in memories if m.memory_type == MemoryType.PREFERENCE]
    if preferences:
        parts.append("\nKnown preferences:")
        for memory in preferences:
            parts.append(f"- {json.dumps(memory.content, default=str)}")

    if episodes:
        parts.append("\n=== HISTORICAL DATA ===")
        for strategy, (success, total) in strategy_stats(episodes).items():
            parts.append(f'Strategy "{strategy}": {success / total:.0%} success ({total} cases)')

    parts.append("\n=== CONFIGURATION ===")
    parts.append(f"Template: {config.strategy_template.value}")
    parts.append("\nScore each option from 0 to 1.")
    return "\n".join(parts)
