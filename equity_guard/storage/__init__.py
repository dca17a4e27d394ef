"""
Persistence for Equity Guard unit state.
"""

from .state_store import StateStore

__all__ = ["StateStore"]
