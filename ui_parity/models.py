"""Data models for UI parity verification.

Defines the implementation identifiers, per-check validation results, the
per-section and per-run result containers, and the parity gap between two
runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import FailureKind


class Implementation(Enum):
    """The two renderings being compared."""

    BASELINE = "baseline"  # Ground truth
    CANDIDATE = "candidate"  # Reimplementation under test

    @classmethod
    def parse(cls, value: "str | Implementation") -> "Implementation":
        """Parse an implementation id, accepting enum members unchanged."""
        if isinstance(value, cls):
            return value
        return cls(value.strip().lower())


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single check against one role.

    `check` is the CSS property name for style checks, or a named check such
    as ``present`` or ``opens`` for structural and interactive checks.
    """

    role: str
    check: str
    passed: bool
    message: str
    kind: FailureKind | None = None
    selector: str | None = None
    viewport: str | None = None
    actual: str | None = None
    expected: str | None = None

    @classmethod
    def success(
        cls,
        role: str,
        check: str,
        message: str = "ok",
        **kwargs: Any,
    ) -> "ValidationResult":
        """Create a passing result."""
        return cls(role=role, check=check, passed=True, message=message, **kwargs)

    @classmethod
    def failure(
        cls,
        role: str,
        check: str,
        message: str,
        kind: FailureKind,
        **kwargs: Any,
    ) -> "ValidationResult":
        """Create a failing result."""
        return cls(
            role=role, check=check, passed=False, message=message, kind=kind, **kwargs
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "role": self.role,
            "check": self.check,
            "passed": self.passed,
            "message": self.message,
            "kind": self.kind.value if self.kind else None,
            "selector": self.selector,
            "viewport": self.viewport,
            "actual": self.actual,
            "expected": self.expected,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidationResult":
        """Create from dictionary."""
        return cls(
            role=data["role"],
            check=data["check"],
            passed=data["passed"],
            message=data["message"],
            kind=FailureKind(data["kind"]) if data.get("kind") else None,
            selector=data.get("selector"),
            viewport=data.get("viewport"),
            actual=data.get("actual"),
            expected=data.get("expected"),
        )


@dataclass(frozen=True)
class SuppressedResult:
    """A failing result removed by an override, kept for auditing."""

    result: ValidationResult
    override_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"override_id": self.override_id, "result": self.result.to_dict()}


@dataclass
class SectionResult:
    """Validation results for one logical area of the page."""

    name: str
    results: list[ValidationResult] = field(default_factory=list)
    suppressed: list[SuppressedResult] = field(default_factory=list)

    @property
    def tested(self) -> int:
        """Number of checks counted (suppressed failures excluded)."""
        return len(self.results)

    @property
    def failures(self) -> list[ValidationResult]:
        """Failing results in invocation order."""
        return [r for r in self.results if not r.passed]

    @property
    def failed(self) -> int:
        """Number of failing checks."""
        return len(self.failures)

    @property
    def passed(self) -> int:
        """Number of passing checks."""
        return self.tested - self.failed

    @property
    def failure_messages(self) -> list[str]:
        """Failure messages, the comparison key between runs."""
        return [r.message for r in self.failures]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "tested": self.tested,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
            "suppressed": [s.to_dict() for s in self.suppressed],
        }


@dataclass(frozen=True)
class RunReport:
    """Final, read-only report of one implementation's run."""

    implementation: Implementation
    url: str
    timestamp: str
    sections: dict[str, SectionResult]
    tested: int
    passed: int
    failed: int
    suppressed: int
    pass_rate: float
    fatal_error: str | None = None
    duration_ms: float = 0.0

    @property
    def is_fatal(self) -> bool:
        """Whether the run aborted before producing per-role results."""
        return self.fatal_error is not None

    def failure_messages(self, section: str) -> list[str]:
        """Failure messages of a section, empty if the section is absent."""
        section_result = self.sections.get(section)
        return section_result.failure_messages if section_result else []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "implementation": self.implementation.value,
            "url": self.url,
            "timestamp": self.timestamp,
            "tested": self.tested,
            "passed": self.passed,
            "failed": self.failed,
            "suppressed": self.suppressed,
            "pass_rate": self.pass_rate,
            "fatal_error": self.fatal_error,
            "duration_ms": self.duration_ms,
            "sections": {name: s.to_dict() for name, s in self.sections.items()},
        }


class ParityAssessment(Enum):
    """Qualitative band for a parity gap."""

    EXCELLENT = "excellent"  # <= 5%
    GOOD = "good"  # <= 15%
    MODERATE = "moderate"  # <= 30%
    POOR = "poor"

    @classmethod
    def from_gap(cls, gap: float) -> "ParityAssessment":
        """Classify a gap expressed as a fraction (0.0 - 1.0)."""
        if gap <= 0.05:
            return cls.EXCELLENT
        if gap <= 0.15:
            return cls.GOOD
        if gap <= 0.30:
            return cls.MODERATE
        return cls.POOR


@dataclass(frozen=True)
class SectionDiff:
    """Failure messages present in only one of two runs for a section."""

    section: str
    only_in_a: tuple[str, ...] = ()
    only_in_b: tuple[str, ...] = ()

    @property
    def is_identical(self) -> bool:
        """True when both runs failed the same checks."""
        return not self.only_in_a and not self.only_in_b

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "section": self.section,
            "only_in_a": list(self.only_in_a),
            "only_in_b": list(self.only_in_b),
        }


@dataclass(frozen=True)
class ParityGap:
    """Quantified difference between two run reports."""

    implementation_a: Implementation
    implementation_b: Implementation
    pass_rate_a: float
    pass_rate_b: float
    gap: float
    sections: tuple[SectionDiff, ...] = ()

    @property
    def assessment(self) -> ParityAssessment:
        """Qualitative band of the gap."""
        return ParityAssessment.from_gap(self.gap)

    @property
    def differing_sections(self) -> list[SectionDiff]:
        """Sections whose failure sets differ."""
        return [s for s in self.sections if not s.is_identical]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "implementation_a": self.implementation_a.value,
            "implementation_b": self.implementation_b.value,
            "pass_rate_a": self.pass_rate_a,
            "pass_rate_b": self.pass_rate_b,
            "gap": self.gap,
            "assessment": self.assessment.value,
            "sections": [s.to_dict() for s in self.sections],
        }


__all__ = [
    "Implementation",
    "ValidationResult",
    "SuppressedResult",
    "SectionResult",
    "RunReport",
    "ParityAssessment",
    "SectionDiff",
    "ParityGap",
]
