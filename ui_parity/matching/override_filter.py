"""Suppression of declared, intentional deviations."""

from dataclasses import dataclass, field

from ..models import Implementation, SuppressedResult, ValidationResult
from ..parity_logging import LogCategory, get_category_logger
from ..specs.overrides import OverrideRegistry

logger = get_category_logger(LogCategory.PIPELINE)


@dataclass
class OverrideOutcome:
    """Results after override filtering."""

    results: list[ValidationResult] = field(default_factory=list)
    suppressed: list[SuppressedResult] = field(default_factory=list)


def apply_overrides(
    results: list[ValidationResult],
    registry: OverrideRegistry,
    implementation: Implementation,
) -> OverrideOutcome:
    """Move failing candidate results covered by an override to suppressed.

    Baseline results, passing results and results outside every override's
    exact scope pass through unchanged and in order.

    Args:
        results: Results of one section.
        registry: Declared overrides.
        implementation: Implementation the results belong to.

    Returns:
        OverrideOutcome with kept and suppressed results.
    """
    if implementation != Implementation.CANDIDATE or not registry.enabled:
        return OverrideOutcome(results=list(results))

    outcome = OverrideOutcome()
    for result in results:
        override = None if result.passed else registry.find(result)
        if override is None:
            outcome.results.append(result)
            continue
        logger.info(
            f"Suppressed by override {override.id} ({override.category}): {result.message}",
            extra={"implementation": implementation.value, "role": result.role},
        )
        outcome.suppressed.append(SuppressedResult(result=result, override_id=override.id))
    return outcome


__all__ = ["OverrideOutcome", "apply_overrides"]
