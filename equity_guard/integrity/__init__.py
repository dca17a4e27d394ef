"""
Parameter integrity checks for Equity Guard.

Optional validation pass, kept apart from the decision engine.
"""

from .param_check import (
    IntegrityReport,
    cross_check_document,
    run_integrity_checks,
    verify_param_lock,
)

__all__ = [
    "IntegrityReport",
    "cross_check_document",
    "run_integrity_checks",
    "verify_param_lock",
]
