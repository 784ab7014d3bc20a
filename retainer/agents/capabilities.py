"""Agent capabilities: what each agent type handles and how it describes actions.

AgentCore is composed with one capability instead of being subclassed
per agent type.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from retainer.domain.enums import AgentType
from retainer.domain.reasoning import ActionOption
from retainer.domain.situation import AgentEvent, Situation
from retainer.reasoning.prompts import money

DescribeAction = Callable[[ActionOption, Situation], str]


@dataclass(frozen=True)
class AgentCapability:
    """Trigger set and action wording for one agent type."""

    agent_type: AgentType
    triggers: frozenset[str]
    describe_action: DescribeAction

    def supports(self, trigger: str) -> bool:
        return trigger in self.triggers


def _name(situation: Situation) -> str:
    return situation.subscriber.name or situation.subscriber.email


def describe_recovery(decision: ActionOption, situation: Situation) -> str:
    amount = situation.context.get("amount")
    amount_text = money(amount) if isinstance(amount, int | float) else "unknown amount"
    if decision.action == "email":
        return f"Payment reminder email ({decision.strategy}) to {_name(situation)} for {amount_text}"
    if decision.action == "discount":
        return f"{decision.details.get('discount_percent')}% discount offer to {_name(situation)}"
    return f"Action {decision.action} for {_name(situation)}"


def describe_retention(decision: ActionOption, situation: Situation) -> str:
    if decision.action == "email":
        mrr = f" ({money(situation.subscriber.mrr)}/month)" if situation.subscriber.mrr else ""
        return f"Retention email ({decision.strategy}) to {_name(situation)}{mrr}"
    if decision.action == "discount":
        percent = decision.details.get("discount_percent", "?")
        months = decision.details.get("duration_months", "?")
        return f"-{percent}% for {months} months offered to {_name(situation)}"
    if decision.action == "pause":
        return f"Pause offered to {_name(situation)}"
    return f"Retention action {decision.action} for {_name(situation)}"


def describe_conversion(decision: ActionOption, situation: Situation) -> str:
    if decision.action == "email":
        return f"Conversion email ({decision.strategy}) to {_name(situation)}"
    if decision.action == "trial_extension":
        days = decision.details.get("extension_days", "?")
        return f"{days}-day trial extension for {_name(situation)}"
    if decision.action == "special_offer":
        percent = decision.details.get("discount_percent", "?")
        return f"Special offer -{percent}% for {_name(situation)}"
    if decision.action == "feature_unlock":
        return f"Temporary feature unlock for {_name(situation)}"
    return f"Conversion action {decision.action} for {_name(situation)}"


def describe_onboarding(decision: ActionOption, situation: Situation) -> str:
    if decision.action == "email":
        step = situation.context.get("step", 1)
        total = situation.context.get("total_steps", 3)
        if step == 1:
            return f"Welcome email ({decision.strategy}) to {_name(situation)}"
        return f"Onboarding email {step}/{total} ({decision.strategy}) to {_name(situation)}"
    return f"Action {decision.action} for {_name(situation)}"


RECOVERY = AgentCapability(
    agent_type=AgentType.RECOVERY,
    triggers=frozenset({"payment_failed", "payment_requires_action", "invoice_payment_failed"}),
    describe_action=describe_recovery,
)

RETENTION = AgentCapability(
    agent_type=AgentType.RETENTION,
    triggers=frozenset(
        {
            "cancel_pending",
            "subscription_canceled",
            "downgrade",
            "subscription_expiring",
            "inactive_subscriber",
        }
    ),
    describe_action=describe_retention,
)

CONVERSION = AgentCapability(
    agent_type=AgentType.CONVERSION,
    triggers=frozenset(
        {
            "trial_ending",
            "trial_expired",
            "freemium_inactive",
            "freemium_active",
            "signup_no_subscription",
        }
    ),
    describe_action=describe_conversion,
)

ONBOARDING = AgentCapability(
    agent_type=AgentType.ONBOARDING,
    triggers=frozenset({"new_subscriber", "onboarding_step", "subscription_created"}),
    describe_action=describe_onboarding,
)

CAPABILITIES: dict[AgentType, AgentCapability] = {
    cap.agent_type: cap for cap in (RECOVERY, RETENTION, CONVERSION, ONBOARDING)
}


def capability_for(agent_type: AgentType | str) -> AgentCapability:
    """Capability of an agent type. Raises ValueError for unknown types."""
    return CAPABILITIES[AgentType(agent_type)]


def agent_type_for_trigger(trigger: str) -> AgentType | None:
    """The agent type that declares a trigger, if any."""
    for capability in CAPABILITIES.values():
        if capability.supports(trigger):
            return capability.agent_type
    return None


# =============================================================================
# Event constructors
# =============================================================================


def payment_failed_event(
    subscriber_id: str,
    invoice_id: str,
    amount: int,
    failure_reason: str | None = None,
    step: int = 1,
) -> AgentEvent:
    data: dict[str, Any] = {"invoice_id": invoice_id, "amount": amount, "step": step}
    if failure_reason:
        data["failure_reason"] = failure_reason
    if step > 1:
        data["is_followup"] = True
    return AgentEvent(type="payment_failed", subscriber_id=subscriber_id, data=data)


def cancel_pending_event(
    subscriber_id: str, cancel_at: datetime, reason: str | None = None
) -> AgentEvent:
    data: dict[str, Any] = {"cancel_at": cancel_at.isoformat()}
    if reason:
        data["cancellation_reason"] = reason
    return AgentEvent(type="cancel_pending", subscriber_id=subscriber_id, data=data)


def downgrade_event(subscriber_id: str, from_plan: str, to_plan: str) -> AgentEvent:
    return AgentEvent(
        type="downgrade",
        subscriber_id=subscriber_id,
        data={"from_plan": from_plan, "to_plan": to_plan},
    )


def inactive_subscriber_event(subscriber_id: str, days_since_last_activity: int) -> AgentEvent:
    return AgentEvent(
        type="inactive_subscriber",
        subscriber_id=subscriber_id,
        data={"days_since_last_activity": days_since_last_activity},
    )


def trial_ending_event(
    subscriber_id: str, trial_end_date: datetime, days_remaining: int
) -> AgentEvent:
    return AgentEvent(
        type="trial_ending",
        subscriber_id=subscriber_id,
        data={"trial_end_date": trial_end_date.isoformat(), "days_remaining": days_remaining},
    )
