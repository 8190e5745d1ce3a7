"""Per-viewport re-extraction of responsive roles and mobile layout checks."""

from ..config import MobileLayoutConfig, ViewportConfig
from ..errors import BrowserError, FailureKind
from ..matching.matcher import match_property_set
from ..models import ValidationResult
from ..parity_logging import LogCategory, get_category_logger
from ..specs.expectations import ExpectationTable
from ..specs.selectors import NOT_APPLICABLE, SelectorTable
from .browser import RunContext
from .style_capture import ElementNotFound, PropertyExtractor

logger = get_category_logger(LogCategory.EXTRACTOR)

SECTION_PREFIX = "responsive:"

# Pseudo-role for checks on the whole document
PAGE_ROLE = "page"


def section_name(viewport: ViewportConfig) -> str:
    """Section that holds the results of one viewport."""
    return f"{SECTION_PREFIX}{viewport.name}"


class ResponsiveRunner:
    """Re-checks a set of roles at each configured viewport.

    Expectations are the base table merged with the viewport's overlay. At
    mobile viewports the layout constraints (header height, touch targets,
    header spacing, horizontal overflow) are checked as well. The viewport in
    place before the run is restored afterwards.
    """

    def __init__(
        self,
        selectors: SelectorTable,
        expectations: ExpectationTable,
        extractor: PropertyExtractor,
        roles: list[str],
        viewports: list[ViewportConfig],
        layout: MobileLayoutConfig | None = None,
    ):
        self.selectors = selectors
        self.expectations = expectations
        self.extractor = extractor
        self.roles = roles
        self.viewports = viewports
        self.layout = layout

    async def run(self, context: RunContext) -> dict[str, list[ValidationResult]]:
        """Check every responsive role at every viewport.

        Returns:
            Section name -> results, one section per viewport.
        """
        sections: dict[str, list[ValidationResult]] = {}
        previous = context.viewport
        for viewport in self.viewports:
            name = section_name(viewport)
            try:
                viewport_context = await context.apply_viewport(viewport)
            except BrowserError as e:
                sections[name] = [
                    ValidationResult.failure(
                        "viewport",
                        "resize",
                        f"[{viewport.name}] viewport: {e.message}",
                        FailureKind.INTERACTION_FAILURE,
                        viewport=viewport.name,
                    )
                ]
                continue
            sections[name] = await self.check_viewport(viewport_context)

        try:
            await context.apply_viewport(previous)
        except BrowserError as e:
            logger.warning(f"Could not restore viewport {previous.name}: {e.message}")
        return sections

    async def check_viewport(self, context: RunContext) -> list[ValidationResult]:
        """Extract and match the responsive roles at the context's viewport."""
        viewport = context.viewport.name
        results: list[ValidationResult] = []
        for role in self.roles:
            selector = self.selectors.resolve(role, context.implementation)
            if selector is NOT_APPLICABLE:
                continue
            expectations = self.expectations.for_role(role, viewport)
            if not expectations:
                continue

            captured = await self.extractor.extract(
                context, role, selector, list(expectations)
            )
            if isinstance(captured, ElementNotFound):
                results.append(
                    ValidationResult.failure(
                        role,
                        "present",
                        f"[{viewport}] {captured.message}",
                        FailureKind.ELEMENT_NOT_FOUND,
                        selector=selector,
                        viewport=viewport,
                    )
                )
                continue
            results.extend(match_property_set(captured, expectations, viewport=viewport))

        if self.layout is not None and self.layout.applies_to(context.viewport):
            results.extend(await self.check_layout(context))

        logger.debug(
            f"{viewport}: {len(results)} responsive checks",
            extra={"implementation": context.implementation.value, "viewport": viewport},
        )
        return results

    async def check_layout(self, context: RunContext) -> list[ValidationResult]:
        """Check the mobile layout constraints at the context's viewport.

        Elements that are absent or not rendered at this width are skipped;
        their presence is the structural and static checks' concern.
        """
        layout = self.layout or MobileLayoutConfig()
        results: list[ValidationResult] = []
        if layout.header_role:
            result = await self._check_header_height(context, layout, layout.header_role)
            if result is not None:
                results.append(result)
        for role in layout.touch_target_roles:
            result = await self._check_touch_targets(context, layout, role)
            if result is not None:
                results.append(result)
        results.extend(await self._check_header_gaps(context, layout))
        if layout.check_overflow:
            results.append(await self._check_overflow(context))
        return results

    async def _check_header_height(
        self, context: RunContext, layout: MobileLayoutConfig, role: str
    ) -> ValidationResult | None:
        viewport = context.viewport.name
        selector = self._resolve(role, context)
        if selector is None:
            return None
        try:
            box = await context.page.bounding_box(selector)
        except BrowserError as e:
            return self._layout_failure(
                role, "maxHeight", f"[{viewport}] {role}: {e.message}", viewport, selector
            )
        if box is None:
            return None
        height = box["height"]
        if height > layout.header_max_height:
            return self._layout_failure(
                role,
                "maxHeight",
                f"[{viewport}] {role}: height {height:.0f}px (max: {layout.header_max_height}px)",
                viewport,
                selector,
                actual=f"{height:.0f}px",
            )
        return ValidationResult.success(
            role,
            "maxHeight",
            f"[{viewport}] {role}: height {height:.0f}px",
            selector=selector,
            viewport=viewport,
        )

    async def _check_touch_targets(
        self, context: RunContext, layout: MobileLayoutConfig, role: str
    ) -> ValidationResult | None:
        viewport = context.viewport.name
        selector = self._resolve(role, context)
        if selector is None:
            return None
        page = context.page
        try:
            boxes = [
                await page.bounding_box(selector, i) for i in range(await page.count(selector))
            ]
        except BrowserError as e:
            return self._layout_failure(
                role, "touchTarget", f"[{viewport}] {role}: {e.message}", viewport, selector
            )
        rendered = [b for b in boxes if b is not None]
        if not rendered:
            return None

        minimum = layout.touch_target_min
        small = [b for b in rendered if min(b["width"], b["height"]) < minimum]
        if small:
            smallest = min(small, key=lambda b: b["width"] * b["height"])
            return self._layout_failure(
                role,
                "touchTarget",
                f"[{viewport}] {role}: {len(small)} touch target(s) below {minimum}px "
                f"(smallest {smallest['width']:.0f}x{smallest['height']:.0f}px)",
                viewport,
                selector,
            )
        return ValidationResult.success(
            role,
            "touchTarget",
            f"[{viewport}] {role}: touch targets at least {minimum}px",
            selector=selector,
            viewport=viewport,
        )

    async def _check_header_gaps(
        self, context: RunContext, layout: MobileLayoutConfig
    ) -> list[ValidationResult]:
        viewport = context.viewport.name
        results: list[ValidationResult] = []
        placed: list[tuple[str, str, dict[str, float]]] = []
        for role in layout.header_sequence:
            selector = self._resolve(role, context)
            if selector is None:
                continue
            try:
                box = await context.page.bounding_box(selector)
            except BrowserError as e:
                results.append(
                    self._layout_failure(
                        role, "gap", f"[{viewport}] {role}: {e.message}", viewport, selector
                    )
                )
                continue
            if box is not None:
                placed.append((role, selector, box))

        for (left_role, left_selector, left), (right_role, _, right) in zip(
            placed, placed[1:], strict=False
        ):
            gap = right["x"] - (left["x"] + left["width"])
            check = f"gap:{right_role}"
            message = f"[{viewport}] {left_role}-{right_role} gap: {gap:.0f}px"
            if gap < layout.min_gap:
                results.append(
                    self._layout_failure(
                        left_role,
                        check,
                        f"{message} (min: {layout.min_gap}px)",
                        viewport,
                        left_selector,
                        actual=f"{gap:.0f}px",
                    )
                )
            else:
                results.append(
                    ValidationResult.success(
                        left_role, check, message, selector=left_selector, viewport=viewport
                    )
                )
        return results

    async def _check_overflow(self, context: RunContext) -> ValidationResult:
        viewport = context.viewport
        try:
            content_width = await context.page.scroll_width()
        except BrowserError as e:
            return self._layout_failure(
                PAGE_ROLE,
                "horizontalOverflow",
                f"[{viewport.name}] page: {e.message}",
                viewport.name,
            )
        if content_width > viewport.width:
            return self._layout_failure(
                PAGE_ROLE,
                "horizontalOverflow",
                f"[{viewport.name}] page: horizontal overflow "
                f"({content_width}px content in {viewport.width}px viewport)",
                viewport.name,
                actual=f"{content_width}px",
            )
        return ValidationResult.success(
            PAGE_ROLE,
            "horizontalOverflow",
            f"[{viewport.name}] page: no horizontal overflow",
            viewport=viewport.name,
        )

    def _resolve(self, role: str, context: RunContext) -> str | None:
        selector = self.selectors.resolve(role, context.implementation)
        return None if selector is NOT_APPLICABLE else selector

    def _layout_failure(
        self,
        role: str,
        check: str,
        message: str,
        viewport: str,
        selector: str | None = None,
        actual: str | None = None,
    ) -> ValidationResult:
        logger.debug(message)
        return ValidationResult.failure(
            role,
            check,
            message,
            FailureKind.LAYOUT_VIOLATION,
            selector=selector,
            viewport=viewport,
            actual=actual,
        )


__all__ = ["SECTION_PREFIX", "PAGE_ROLE", "section_name", "ResponsiveRunner"]
