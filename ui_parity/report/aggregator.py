"""Aggregation of validation results into reports and parity gaps.

Everything here is pure: reports are built from results, and gaps from
reports, without touching the browser.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from ..models import (
    Implementation,
    ParityGap,
    RunReport,
    SectionDiff,
    SectionResult,
    SuppressedResult,
    ValidationResult,
)


def pass_rate(tested: int, failed: int) -> float:
    """Fraction of passing checks; an empty run passes trivially."""
    if tested == 0:
        return 1.0
    return (tested - failed) / tested


def aggregate(
    implementation: Implementation,
    sections: Iterable[SectionResult],
    url: str = "",
    timestamp: str | None = None,
    fatal_error: str | None = None,
    duration_ms: float = 0.0,
) -> RunReport:
    """Build a RunReport from section results.

    Args:
        implementation: Implementation the results belong to.
        sections: Section results in report order.
        url: URL that was checked.
        timestamp: ISO timestamp; defaults to now (UTC).
        fatal_error: Set when the run aborted; forces a 0.0 pass rate.
        duration_ms: Wall-clock duration of the run.

    Returns:
        The report.
    """
    by_name = {section.name: section for section in sections}
    tested = sum(s.tested for s in by_name.values())
    failed = sum(s.failed for s in by_name.values())
    suppressed = sum(len(s.suppressed) for s in by_name.values())
    return RunReport(
        implementation=implementation,
        url=url,
        timestamp=timestamp or datetime.now(UTC).isoformat(),
        sections=by_name,
        tested=tested,
        passed=tested - failed,
        failed=failed,
        suppressed=suppressed,
        pass_rate=0.0 if fatal_error else pass_rate(tested, failed),
        fatal_error=fatal_error,
        duration_ms=duration_ms,
    )


def compare(a: RunReport, b: RunReport) -> ParityGap:
    """Quantify the difference between two reports.

    compare(a, b) and compare(b, a) have the same gap, with the per-section
    differences mirrored.
    """
    diffs = []
    for name in sorted(set(a.sections) | set(b.sections)):
        messages_a = set(a.failure_messages(name))
        messages_b = set(b.failure_messages(name))
        diffs.append(
            SectionDiff(
                section=name,
                only_in_a=tuple(sorted(messages_a - messages_b)),
                only_in_b=tuple(sorted(messages_b - messages_a)),
            )
        )
    return ParityGap(
        implementation_a=a.implementation,
        implementation_b=b.implementation,
        pass_rate_a=a.pass_rate,
        pass_rate_b=b.pass_rate,
        gap=abs(a.pass_rate - b.pass_rate),
        sections=tuple(diffs),
    )


class RunReportBuilder:
    """Accumulates one run's sections and freezes them into a RunReport.

    Owned by a single pipeline; build() may be called once.
    """

    def __init__(self, implementation: Implementation, url: str = ""):
        self.implementation = implementation
        self.url = url
        self.started_at = datetime.now(UTC)
        self._sections: dict[str, SectionResult] = {}
        self._fatal_error: str | None = None
        self._built = False

    def add(
        self,
        section: str,
        results: Iterable[ValidationResult],
        suppressed: Iterable[SuppressedResult] = (),
    ) -> SectionResult:
        """Append results to a section, creating it on first use."""
        if self._built:
            raise RuntimeError("RunReport already built")
        target = self._sections.setdefault(section, SectionResult(name=section))
        target.results.extend(results)
        target.suppressed.extend(suppressed)
        return target

    def fatal(self, message: str) -> None:
        """Mark the run as aborted."""
        self._fatal_error = message

    def build(self) -> RunReport:
        """Freeze the accumulated sections into a RunReport."""
        if self._built:
            raise RuntimeError("RunReport already built")
        self._built = True
        duration_ms = (datetime.now(UTC) - self.started_at).total_seconds() * 1000
        sections = [
            SectionResult(name=s.name, results=list(s.results), suppressed=list(s.suppressed))
            for s in self._sections.values()
        ]
        return aggregate(
            self.implementation,
            sections,
            url=self.url,
            timestamp=self.started_at.isoformat(),
            fatal_error=self._fatal_error,
            duration_ms=duration_ms,
        )


__all__ = ["pass_rate", "aggregate", "compare", "RunReportBuilder"]
