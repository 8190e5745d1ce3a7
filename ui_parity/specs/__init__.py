"""Declarative tables for parity checking.

- selectors: role -> selector resolution per implementation
- expectations: role -> property -> expected value
- overrides: intentional, scoped deviations on the candidate
- structure: required element counts and DOM relationships
- loader: JSON loading and validation of the tables
"""

from .expectations import (
    Expectation,
    ExpectationTable,
    LiteralExpectation,
    OneOfExpectation,
    PatternExpectation,
)
from .loader import SpecTables, load_spec_tables
from .overrides import Override, OverrideRegistry
from .selectors import (
    NOT_APPLICABLE,
    LiteralSelector,
    PerTargetSelector,
    RoleSpec,
    SelectorTable,
)
from .structure import CountRequirement, Relationship, RelationshipKind, StructureTable

__all__ = [
    # Selectors
    "NOT_APPLICABLE",
    "LiteralSelector",
    "PerTargetSelector",
    "RoleSpec",
    "SelectorTable",
    # Structure
    "CountRequirement",
    "Relationship",
    "RelationshipKind",
    "StructureTable",
    # Expectations
    "Expectation",
    "ExpectationTable",
    "LiteralExpectation",
    "OneOfExpectation",
    "PatternExpectation",
    # Overrides
    "Override",
    "OverrideRegistry",
    # Loading
    "SpecTables",
    "load_spec_tables",
]
