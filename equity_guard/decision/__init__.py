"""
Decision Engine for Equity Guard.

Converts equity ratios into explicit hysteresis states and transition events.
"""

from .engine import DecisionEngine, classify, decide

__all__ = ["DecisionEngine", "classify", "decide"]
