"""Structural integrity checks.

Checks the structure table against the loaded page: how many elements each
required role matches, and whether related roles sit where they should in
the DOM. Counts are snapshots taken after navigation, nothing here waits.
"""

from ..errors import BrowserError, FailureKind
from ..models import ValidationResult
from ..parity_logging import LogCategory, get_category_logger
from ..specs.selectors import NOT_APPLICABLE, SelectorTable
from ..specs.structure import CountRequirement, Relationship, RelationshipKind, StructureTable
from .browser import RunContext

logger = get_category_logger(LogCategory.EXTRACTOR)

STRUCTURE_SECTION = "structure"


class StructureChecker:
    """Checks required element counts and DOM relationships."""

    def __init__(self, selectors: SelectorTable, structure: StructureTable):
        self.selectors = selectors
        self.structure = structure

    async def run(self, context: RunContext) -> list[ValidationResult]:
        """Check every requirement, then every relationship.

        Roles that do not apply to the implementation under test are skipped.
        """
        results: list[ValidationResult] = []
        for requirement in self.structure.requirements:
            result = await self.check_count(context, requirement)
            if result is not None:
                results.append(result)
        for relationship in self.structure.relationships:
            result = await self.check_relationship(context, relationship)
            if result is not None:
                results.append(result)
        return results

    async def check_count(
        self, context: RunContext, requirement: CountRequirement
    ) -> ValidationResult | None:
        """Check that a role matches an allowed number of elements."""
        role = requirement.role
        selector = self._resolve(role, context)
        if selector is None:
            return None
        if not requirement.applies_to(context.implementation):
            logger.debug(
                f"{role}: allowed to be missing on {context.implementation.value}, skipping"
            )
            return None

        try:
            count = await context.page.count(selector)
        except BrowserError as e:
            return self._violation(role, "count", f"{role}: {e.message}", selector)

        if count == 0 and requirement.min_count > 0:
            return ValidationResult.failure(
                role,
                "count",
                f"{role}: required element missing",
                FailureKind.ELEMENT_NOT_FOUND,
                selector=selector,
                actual="0",
            )
        if count < requirement.min_count:
            return self._violation(
                role,
                "count",
                f"{role}: found {count}, expected at least {requirement.min_count}",
                selector,
                actual=str(count),
            )
        if requirement.max_count is not None and count > requirement.max_count:
            return self._violation(
                role,
                "count",
                f"{role}: found {count}, expected at most {requirement.max_count}",
                selector,
                actual=str(count),
            )
        return ValidationResult.success(
            role, "count", f"{role}: {count} found", selector=selector, actual=str(count)
        )

    async def check_relationship(
        self, context: RunContext, relationship: Relationship
    ) -> ValidationResult | None:
        """Check a containment or sibling-order relationship between two roles."""
        role = relationship.role
        selector = self._resolve(role, context)
        other = self._resolve(relationship.other, context)
        if selector is None or other is None:
            return None
        check = relationship.check

        try:
            related = await context.page.count(relationship.selector(selector, other))
        except BrowserError as e:
            return self._violation(role, check, f"{role}: {e.message}", selector)

        if relationship.kind == RelationshipKind.CONTAINS:
            if related < relationship.min_count:
                return self._violation(
                    role,
                    check,
                    f"{role}: contains {related} {relationship.other}, "
                    f"expected at least {relationship.min_count}",
                    selector,
                    actual=str(related),
                )
            return ValidationResult.success(
                role, check, f"{role}: contains {related} {relationship.other}", selector=selector
            )

        if related < relationship.min_count:
            return self._violation(
                role, check, f"{role}: not followed by {relationship.other}", selector
            )
        return ValidationResult.success(
            role, check, f"{role}: followed by {relationship.other}", selector=selector
        )

    def _resolve(self, role: str, context: RunContext) -> str | None:
        selector = self.selectors.resolve(role, context.implementation)
        return None if selector is NOT_APPLICABLE else selector

    def _violation(
        self,
        role: str,
        check: str,
        message: str,
        selector: str,
        actual: str | None = None,
    ) -> ValidationResult:
        logger.debug(message)
        return ValidationResult.failure(
            role,
            check,
            message,
            FailureKind.STRUCTURE_VIOLATION,
            selector=selector,
            actual=actual,
        )


__all__ = ["STRUCTURE_SECTION", "StructureChecker"]
