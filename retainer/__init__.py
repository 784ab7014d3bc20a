"""Retainer: autonomous agents for the subscription lifecycle.

Each agent turns a lifecycle event (failed payment, pending cancellation,
ending trial...) into a scored decision, gates it behind human approval
when needed, and learns from the outcome.
"""

__version__ = "0.1.0"
