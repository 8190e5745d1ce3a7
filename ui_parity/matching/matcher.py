"""Matching of captured values against expectations.

Pure functions: the same (actual, expectation, role, property) always yields
the same ValidationResult. Messages never include the resolved selector, so
the same failure on two implementations produces the same message.
"""

from typing import TYPE_CHECKING

from ..errors import FailureKind
from ..models import ValidationResult
from ..specs.expectations import (
    Expectation,
    LiteralExpectation,
    OneOfExpectation,
    PatternExpectation,
    RoleExpectations,
)

if TYPE_CHECKING:
    from ..collectors.style_capture import PropertySet


def is_satisfied(actual: str | None, expectation: Expectation) -> bool:
    """Check a captured value against one expectation.

    A missing value never satisfies any expectation.
    """
    if actual is None:
        return False
    if isinstance(expectation, LiteralExpectation):
        return actual == expectation.value
    if isinstance(expectation, PatternExpectation):
        return expectation.pattern.search(actual) is not None
    if isinstance(expectation, OneOfExpectation):
        return actual in expectation.values
    raise TypeError(f"Unsupported expectation: {expectation!r}")


def format_check(role: str, prop: str, viewport: str | None = None) -> str:
    """Message prefix identifying a check."""
    prefix = f"[{viewport}] " if viewport else ""
    return f"{prefix}{role} {prop}"


def match(
    actual: str | None,
    expectation: Expectation,
    *,
    role: str,
    prop: str,
    viewport: str | None = None,
    selector: str | None = None,
) -> ValidationResult:
    """Match one captured value and build the ValidationResult.

    Args:
        actual: Captured value, None when the property was not captured.
        expectation: Expected value for (role, prop).
        role: Role the value belongs to.
        prop: CSS property name.
        viewport: Viewport name, for responsive checks.
        selector: Resolved selector, carried for override scoping.

    Returns:
        A passing result, or a PROPERTY_MISMATCH failure whose message holds
        the role, property, actual value and the expectation.
    """
    check = format_check(role, prop, viewport)
    expected = expectation.describe()
    common = {
        "viewport": viewport,
        "selector": selector,
        "actual": actual,
        "expected": expected,
    }

    if is_satisfied(actual, expectation):
        return ValidationResult.success(role, prop, f'{check}: "{actual}"', **common)

    shown = "not captured" if actual is None else f'"{actual}"'
    return ValidationResult.failure(
        role,
        prop,
        f"{check}: {shown} (expected: {expected})",
        FailureKind.PROPERTY_MISMATCH,
        **common,
    )


def match_property_set(
    captured: "PropertySet",
    expectations: RoleExpectations,
    viewport: str | None = None,
) -> list[ValidationResult]:
    """Match every expected property of a role, in declaration order."""
    return [
        match(
            captured.get(prop),
            expectation,
            role=captured.role,
            prop=prop,
            viewport=viewport,
            selector=captured.selector,
        )
        for prop, expectation in expectations.items()
    ]


__all__ = ["is_satisfied", "format_check", "match", "match_property_set"]
