"""Error taxonomy for the parity harness.

Fatal errors are exceptions: they abort startup (ConfigurationError) or a
single implementation's run (NavigationFailure). Non-fatal problems are never
raised past a single check; they become failing ValidationResults tagged with
a FailureKind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories of fatal errors."""

    CONFIGURATION = "configuration"  # Bad selector/expectation/override tables
    NAVIGATION = "navigation"  # Initial page load failed
    BROWSER = "browser"  # Browser automation failure
    RUNTIME = "runtime"  # Unexpected errors


class FailureKind(Enum):
    """Kinds of non-fatal, per-check failures."""

    ELEMENT_NOT_FOUND = "element_not_found"
    PROPERTY_MISMATCH = "property_mismatch"
    INTERACTION_FAILURE = "interaction_failure"
    STRUCTURE_VIOLATION = "structure_violation"
    LAYOUT_VIOLATION = "layout_violation"


@dataclass
class ParityError(Exception):
    """Base class for structured harness errors.

    Attributes:
        category: Error category for grouping.
        message: Human-readable error message.
        suggestion: Optional actionable recovery suggestion.
        details: Optional additional details.
        exit_code: Exit code used when this error terminates the CLI.
    """

    category: ErrorCategory
    message: str
    suggestion: str | None = None
    details: dict[str, Any] | None = field(default_factory=dict)
    exit_code: int = 1

    def __post_init__(self) -> None:
        """Initialize the exception with the message."""
        super().__init__(self.message)

    def format(self, use_color: bool = True) -> str:
        """Format the error for display.

        Args:
            use_color: Whether to include ANSI color codes.

        Returns:
            Formatted error string with suggestion if available.
        """
        red = "\033[91m" if use_color else ""
        cyan = "\033[96m" if use_color else ""
        dim = "\033[2m" if use_color else ""
        reset = "\033[0m" if use_color else ""

        lines = [f"{red}Error:{reset} {self.message}"]

        if self.suggestion:
            lines.append(f"{cyan}Suggestion:{reset} {self.suggestion}")

        if self.details:
            for key, value in self.details.items():
                lines.append(f"{dim}  {key}: {value}{reset}")

        return "\n".join(lines)

    def __str__(self) -> str:
        """Return the formatted error message."""
        return self.format(use_color=False)


class ConfigurationError(ParityError):
    """Invalid declarative configuration, detected at startup."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(
            category=ErrorCategory.CONFIGURATION,
            message=message,
            suggestion=suggestion,
            details={"source": source} if source else None,
            exit_code=2,
        )


class UnknownRoleError(ConfigurationError):
    """A role was referenced that has no SelectorSpec."""

    def __init__(self, role: str):
        self.role = role
        super().__init__(
            message=f"Unknown role: {role!r} has no selector spec",
            suggestion="Add the role to the selector table or fix the reference",
        )


class NavigationFailure(ParityError):
    """The initial page load failed, aborting that implementation's run."""

    def __init__(self, url: str, implementation: str, original_error: str | None = None):
        message = f"Navigation to {url} failed for {implementation}"
        if original_error:
            message = f"{message}: {original_error}"
        self.url = url
        self.implementation = implementation
        super().__init__(
            category=ErrorCategory.NAVIGATION,
            message=message,
            suggestion="Check that the target server is running and reachable",
            details={"url": url, "implementation": implementation},
            exit_code=1,
        )


class BrowserError(ParityError):
    """A browser automation call failed (wraps the driver library's error)."""

    def __init__(self, operation: str, original_error: str):
        self.operation = operation
        super().__init__(
            category=ErrorCategory.BROWSER,
            message=f"Browser operation '{operation}' failed: {original_error}",
            details={"operation": operation},
            exit_code=1,
        )


__all__ = [
    "ErrorCategory",
    "FailureKind",
    "ParityError",
    "ConfigurationError",
    "UnknownRoleError",
    "NavigationFailure",
    "BrowserError",
]
