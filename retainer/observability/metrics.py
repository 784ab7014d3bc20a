"""Prometheus metrics for the agent loop."""

from prometheus_client import Counter, Histogram

EVENTS_HANDLED = Counter(
    "retainer_events_total",
    "Lifecycle events received by an agent, by result",
    labelnames=["agent_type", "result"],
)

REASONING_STEP_LATENCY = Histogram(
    "retainer_reasoning_step_latency_seconds",
    "Latency of individual reasoning steps",
    labelnames=["agent_type", "step"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

REASONING_FALLBACKS = Counter(
    "retainer_reasoning_fallbacks_total",
    "Reasoning steps that took their fallback path",
    labelnames=["agent_type", "step"],
)

APPROVALS_REQUIRED = Counter(
    "retainer_approvals_total",
    "Approval gate decisions",
    labelnames=["agent_type", "confidence_level", "required"],
)

ACTION_EXECUTIONS = Counter(
    "retainer_action_executions_total",
    "Action executions by final status",
    labelnames=["agent_type", "status"],
)

EPISODES_RESOLVED = Counter(
    "retainer_episodes_resolved_total",
    "Episodes resolved by outcome",
    labelnames=["agent_type", "outcome"],
)

LLM_FAILURES = Counter(
    "retainer_llm_failures_total",
    "Generative backend calls that failed or timed out",
    labelnames=["call_site", "error_type"],
)
