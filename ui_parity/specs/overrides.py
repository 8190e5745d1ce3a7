"""Registry of intentional deviations on the candidate implementation.

An override declares that a named difference from the baseline is deliberate.
Its scope is exact: a role (optionally narrowed to one property or check) or
a concrete selector. An override never matches by substring, category or
section.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from ..errors import ConfigurationError
from ..models import ValidationResult


@dataclass(frozen=True)
class Override:
    """A declared, scoped exception."""

    id: str
    category: str
    description: str
    role: str | None = None
    check: str | None = None
    selector: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Override without id")
        if not self.role and not self.selector:
            raise ConfigurationError(
                f"Override {self.id!r} has no scope",
                suggestion="Declare a role or a selector for the override",
            )
        if self.check and not self.role:
            raise ConfigurationError(
                f"Override {self.id!r} narrows to check {self.check!r} without a role"
            )

    def matches(self, result: ValidationResult) -> bool:
        """Check whether a result falls inside this override's scope.

        Args:
            result: A validation result.

        Returns:
            True on an exact role (and check, when declared) match, or an
            exact selector match.
        """
        if self.role is not None and result.role == self.role:
            return self.check is None or result.check == self.check
        if self.selector is not None and result.selector is not None:
            return result.selector == self.selector
        return False

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "category": self.category,
            "description": self.description,
            "role": self.role,
            "check": self.check,
            "selector": self.selector,
        }


class OverrideRegistry:
    """Ordered, read-only collection of overrides."""

    def __init__(self, overrides: list[Override] | None = None, enabled: bool = True):
        """Initialize the registry.

        Raises:
            ConfigurationError: If two overrides share an id.
        """
        ids: set[str] = set()
        for override in overrides or []:
            if override.id in ids:
                raise ConfigurationError(f"Duplicate override id {override.id!r}")
            ids.add(override.id)
        self._overrides = tuple(overrides or [])
        self.enabled = enabled

    def __iter__(self) -> Iterator[Override]:
        return iter(self._overrides)

    def __len__(self) -> int:
        return len(self._overrides)

    def find(self, result: ValidationResult) -> Override | None:
        """First override whose scope matches the result, if any."""
        for override in self._overrides:
            if override.matches(result):
                return override
        return None

    def get(self, override_id: str) -> Override | None:
        """Get an override by id."""
        for override in self._overrides:
            if override.id == override_id:
                return override
        return None


__all__ = ["Override", "OverrideRegistry"]
