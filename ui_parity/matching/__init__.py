"""Expectation matching and override filtering."""

from .matcher import is_satisfied, match, match_property_set
from .override_filter import OverrideOutcome, apply_overrides

__all__ = [
    "is_satisfied",
    "match",
    "match_property_set",
    "OverrideOutcome",
    "apply_overrides",
]
