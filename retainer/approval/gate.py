"""Approval gate: decides whether a human must approve a decision.

Pure function of the agent's confidence level, the chosen option and the
reasoning confidence. Unknown levels fail safe and require approval.
"""

import math
from typing import Any

from retainer.domain.enums import ConfidenceLevel
from retainer.domain.reasoning import ActionOption

AUTO_WITH_COPY_MIN_CONFIDENCE = 0.6
MAX_AUTO_DISCOUNT_PERCENT = 30

# Actions a human must always see under auto_with_copy
SENSITIVE_ACTIONS = frozenset({"refund", "discount", "pause"})


def _discount_percent(details: dict[str, Any]) -> float | None:
    """Discount as a number; None when absent.

    Numeric strings ("40", "40%") are read as numbers. Any other present
    value reads as infinity so the gate fails safe.
    """
    value = details.get("discount_percent")
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return math.inf
    if isinstance(value, bool) or not isinstance(value, int | float) or math.isnan(value):
        return math.inf
    return value


def requires_approval(
    confidence_level: ConfidenceLevel | str,
    decision: ActionOption,
    confidence: float,
) -> bool:
    """Return True if the decision must wait for human approval."""
    try:
        level = ConfidenceLevel(confidence_level)
    except ValueError:
        return True

    if level == ConfidenceLevel.REVIEW_ALL:
        return True

    if level == ConfidenceLevel.FULL_AUTO:
        if decision.action == "refund":
            return True
        discount = _discount_percent(decision.details)
        return discount is not None and discount > MAX_AUTO_DISCOUNT_PERCENT

    if level == ConfidenceLevel.AUTO_WITH_COPY:
        return confidence < AUTO_WITH_COPY_MIN_CONFIDENCE or decision.action in SENSITIVE_ACTIONS

    return True
