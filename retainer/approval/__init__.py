"""Human-in-the-loop approval policy."""

from retainer.approval.gate import requires_approval

__all__ = ["requires_approval"]
