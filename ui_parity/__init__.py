"""Cross-implementation UI parity verification.

Renders a baseline page and a candidate reimplementation of it, checks both
element by element against declared expectations, drives their interactive
widgets, and quantifies how far the candidate is from the baseline.

Main components:
- specs: selector, expectation and override tables
- collectors: browser control, style extraction, interaction and responsive runs
- matching: expectation matching and override filtering
- report: aggregation into run reports and parity gaps
- orchestrator: per-implementation pipeline and comparison
"""

__version__ = "1.0.0"

from .config import ParityConfig, ParityConfigLoader, load_parity_config
from .errors import (
    BrowserError,
    ConfigurationError,
    FailureKind,
    NavigationFailure,
    ParityError,
    UnknownRoleError,
)
from .models import (
    Implementation,
    ParityAssessment,
    ParityGap,
    RunReport,
    SectionResult,
    ValidationResult,
)
from .orchestrator import ComparisonResult, ParityOrchestrator, ParityPipeline
from .specs import SpecTables, load_spec_tables

__all__ = [
    "__version__",
    # Configuration
    "ParityConfig",
    "ParityConfigLoader",
    "load_parity_config",
    # Errors
    "ParityError",
    "ConfigurationError",
    "UnknownRoleError",
    "NavigationFailure",
    "BrowserError",
    "FailureKind",
    # Models
    "Implementation",
    "ValidationResult",
    "SectionResult",
    "RunReport",
    "ParityGap",
    "ParityAssessment",
    # Orchestration
    "ComparisonResult",
    "ParityPipeline",
    "ParityOrchestrator",
    # Tables
    "SpecTables",
    "load_spec_tables",
]
