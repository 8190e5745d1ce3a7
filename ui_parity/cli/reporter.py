"""Console and JSON output for parity results."""

import json
import os
import sys
from typing import TextIO

from ..models import ParityAssessment, ParityGap, RunReport
from ..orchestrator import ComparisonResult


def should_use_color(
    explicit_flag: bool | None = None,
    stream: TextIO | None = None,
) -> bool:
    """Determine if color output should be used.

    Priority order:
    1. Explicit --no-color flag (if passed)
    2. NO_COLOR environment variable (standard convention)
    3. FORCE_COLOR environment variable
    4. TTY detection (only colorize if output is a terminal)

    Args:
        explicit_flag: Explicit color preference from CLI flag.
        stream: Output stream to check for TTY. Defaults to stdout.

    Returns:
        True if colors should be used, False otherwise.
    """
    if explicit_flag is not None:
        return explicit_flag

    if "NO_COLOR" in os.environ:
        return False

    if "FORCE_COLOR" in os.environ:
        return True

    if stream is None:
        stream = sys.stdout
    return hasattr(stream, "isatty") and stream.isatty()


class ParityReporter:
    """Console reporter with color-coded output.

    Example output:
        ============================================================
        UI Parity: candidate
        ============================================================
        hero                 12 tested, 1 failed
          x heroTitle fontSize: "44px" (expected: pattern /^(48|60)px$/)

        Totals: 11/12 passed (91.7%), 2 suppressed by overrides
    """

    GREEN = "\033[0;32m"
    RED = "\033[0;31m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"
    DIM = "\033[2m"
    BOLD = "\033[1m"

    ASSESSMENT_LABELS = {
        ParityAssessment.EXCELLENT: "EXCELLENT",
        ParityAssessment.GOOD: "GOOD",
        ParityAssessment.MODERATE: "MODERATE",
        ParityAssessment.POOR: "POOR",
    }

    def __init__(self, stream: TextIO | None = None, use_color: bool | None = None):
        """Initialize the reporter.

        Args:
            stream: Output stream (default: stdout).
            use_color: Whether to use ANSI colors. Auto-detects if None.
        """
        self.stream = stream or sys.stdout
        self.use_color = should_use_color(use_color, self.stream)

    def _c(self, code: str) -> str:
        return code if self.use_color else ""

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def report(self, result: ComparisonResult) -> None:
        """Print every run report, then the comparison if there is one."""
        for report in result.reports.values():
            self.report_run(report)
        if result.gap is not None:
            self.report_gap(result.gap)

    def report_run(self, report: RunReport) -> None:
        """Print one implementation's report."""
        reset, dim, bold = self._c(self.RESET), self._c(self.DIM), self._c(self.BOLD)

        self._print(f"\n{'='*60}")
        self._print(f"{bold}UI Parity: {report.implementation.value}{reset}")
        self._print(f"{'='*60}")
        self._print(f"{dim}{report.url} at {report.timestamp}{reset}")

        if report.is_fatal:
            red = self._c(self.RED)
            self._print(f"\n{red}FATAL:{reset} {report.fatal_error}")
            return

        for name, section in report.sections.items():
            color = self._c(self.RED if section.failed else self.GREEN)
            self._print(
                f"{color}{name:<20}{reset} {section.tested} tested, {section.failed} failed"
            )
            for message in section.failure_messages:
                self._print(f"  {self._c(self.RED)}x{reset} {message}")
            if section.suppressed:
                self._print(f"  {dim}{len(section.suppressed)} suppressed{reset}")

        self._print(
            f"\nTotals: {report.passed}/{report.tested} passed ({report.pass_rate:.1%}), "
            f"{report.suppressed} suppressed by overrides ({report.duration_ms:.0f}ms)"
        )

    def report_gap(self, gap: ParityGap) -> None:
        """Print the comparison between two runs."""
        reset, dim = self._c(self.RESET), self._c(self.DIM)
        a, b = gap.implementation_a.value, gap.implementation_b.value

        self._print(f"\n{'='*60}")
        self._print("Comparison")
        self._print(f"{'='*60}")
        self._print(f"{a}: {gap.pass_rate_a:.1%}")
        self._print(f"{b}: {gap.pass_rate_b:.1%}")

        color = {
            ParityAssessment.EXCELLENT: self.GREEN,
            ParityAssessment.GOOD: self.GREEN,
            ParityAssessment.MODERATE: self.YELLOW,
            ParityAssessment.POOR: self.RED,
        }[gap.assessment]
        label = self.ASSESSMENT_LABELS[gap.assessment]
        self._print(f"Parity gap: {gap.gap:.1%} {self._c(color)}{label}{reset}")

        for diff in gap.differing_sections:
            self._print(f"\n{diff.section}:")
            for message in diff.only_in_a:
                self._print(f"  {dim}only {a}:{reset} {message}")
            for message in diff.only_in_b:
                self._print(f"  {dim}only {b}:{reset} {message}")


def report_json(result: ComparisonResult, stream: TextIO | None = None) -> None:
    """Print the machine-readable result."""
    print(json.dumps(result.to_dict(), indent=2), file=stream or sys.stdout)


__all__ = ["should_use_color", "ParityReporter", "report_json"]
