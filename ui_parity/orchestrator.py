"""Parity run orchestration.

Coordinates one implementation's run:
- Navigation (one automatic retry)
- Static role checks (resolve, extract, match)
- Structural integrity checks
- Interactive state driving
- Responsive variation and mobile layout checks
- Override filtering and report aggregation

and the comparison of baseline and candidate runs, which execute
concurrently in separate browser contexts. A run that fails in the browser
becomes a fatal report without affecting the other run.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .collectors.browser import BrowserManager, BrowserPage, RunContext, wait_for_server
from .collectors.interactions import InteractiveStateDriver
from .collectors.responsive import ResponsiveRunner
from .collectors.structure import STRUCTURE_SECTION, StructureChecker
from .collectors.style_capture import ElementNotFound, PropertyExtractor
from .config import GateConfig, ParityConfig
from .errors import BrowserError, FailureKind, NavigationFailure, ParityError, UnknownRoleError
from .matching.matcher import match_property_set
from .matching.override_filter import apply_overrides
from .models import Implementation, ParityGap, RunReport, ValidationResult
from .parity_logging import LogCategory, get_category_logger
from .report.aggregator import RunReportBuilder, compare
from .specs.loader import SpecTables
from .specs.selectors import NOT_APPLICABLE

logger = get_category_logger(LogCategory.PIPELINE)


@dataclass
class ComparisonResult:
    """Reports of the requested runs and, for two runs, their parity gap."""

    reports: dict[Implementation, RunReport] = field(default_factory=dict)
    gap: ParityGap | None = None

    @property
    def fatal_reports(self) -> list[RunReport]:
        """Runs that aborted."""
        return [r for r in self.reports.values() if r.is_fatal]

    def gated_report(self) -> RunReport:
        """The report whose failure count is gated.

        The candidate when it ran, otherwise the only report.
        """
        if Implementation.CANDIDATE in self.reports:
            return self.reports[Implementation.CANDIDATE]
        return next(iter(self.reports.values()))

    def passes(self, gate: GateConfig) -> bool:
        """Check the result against the gate thresholds."""
        if not self.reports or self.fatal_reports:
            return False
        if self.gated_report().failed > gate.failure_tolerance:
            return False
        if self.gap is not None and self.gap.gap > gate.max_parity_gap:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "reports": {impl.value: r.to_dict() for impl, r in self.reports.items()},
            "gap": self.gap.to_dict() if self.gap else None,
        }


class ParityPipeline:
    """Runs every check for one implementation on one page."""

    def __init__(
        self,
        tables: SpecTables,
        config: ParityConfig | None = None,
        extractor: PropertyExtractor | None = None,
    ):
        """Initialize the pipeline.

        Args:
            tables: Selector, expectation and override tables.
            config: Harness configuration.
            extractor: Property extractor (defaults to all categories).

        Raises:
            UnknownRoleError: If the configuration references a role missing
                from the selector table.
        """
        self.tables = tables
        self.config = config or ParityConfig()
        self.extractor = extractor or PropertyExtractor()
        self.driver = InteractiveStateDriver(
            tables.selectors, self.config.interactions, self.config.viewports
        )
        self.responsive = ResponsiveRunner(
            tables.selectors,
            tables.expectations,
            self.extractor,
            self.config.responsive.roles,
            self.config.viewports,
            layout=self.config.responsive.layout,
        )
        self.structure = StructureChecker(tables.selectors, tables.structure)
        self.check_roles()

    def check_roles(self) -> None:
        """Every role named by the configuration must have a selector."""
        roles = list(self.config.interactions.referenced_roles())
        roles += self.config.responsive.referenced_roles()
        for role in roles:
            if role not in self.tables.selectors:
                raise UnknownRoleError(role)

    async def run(self, page: BrowserPage, implementation: Implementation) -> RunReport:
        """Run all checks for one implementation.

        Args:
            page: A fresh page for this implementation.
            implementation: Implementation under test.

        Returns:
            The frozen RunReport. A navigation failure yields a fatal report
            without per-role results.
        """
        url = self.config.targets.url_for(implementation)
        context = RunContext(
            implementation=implementation,
            url=url,
            viewport=self.config.viewport(self.config.default_viewport),
            page=page,
            timeouts=self.config.timeouts,
        )
        builder = RunReportBuilder(implementation, url)
        start_time = time.time()

        try:
            await self.navigate(context)
        except NavigationFailure as e:
            logger.error(e.message, extra={"implementation": implementation.value})
            builder.fatal(e.message)
            return builder.build()

        for section, results in (await self.check_static(context)).items():
            self._record(builder, section, results, implementation)

        structure = await self.structure.run(context)
        if structure:
            self._record(builder, STRUCTURE_SECTION, structure, implementation)

        for section, results in (await self.driver.run(context)).items():
            self._record(builder, section, results, implementation)

        if self.config.responsive.enabled:
            for section, results in (await self.responsive.run(context)).items():
                self._record(builder, section, results, implementation)

        report = builder.build()
        logger.info(
            f"{implementation.value}: {report.passed}/{report.tested} passed, "
            f"{report.suppressed} suppressed",
            extra={
                "implementation": implementation.value,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return report

    async def navigate(self, context: RunContext) -> None:
        """Load the implementation's URL, retrying on failure.

        Raises:
            NavigationFailure: If every attempt failed.
        """
        attempts = 1 + max(0, self.config.timeouts.navigation_retries)
        last_error: BrowserError | None = None
        for attempt in range(1, attempts + 1):
            try:
                await context.page.goto(context.url, self.config.timeouts.navigation_ms)
                return
            except BrowserError as e:
                last_error = e
                logger.warning(
                    f"Navigation to {context.url} failed (attempt {attempt}/{attempts}): "
                    f"{e.message}",
                    extra={"implementation": context.implementation.value},
                )
        raise NavigationFailure(
            context.url,
            context.implementation.value,
            last_error.message if last_error else None,
        )

    async def check_static(self, context: RunContext) -> dict[str, list[ValidationResult]]:
        """Resolve, extract and match every role that has expectations.

        Returns:
            Section name -> results, in selector table order.
        """
        sections: dict[str, list[ValidationResult]] = {}
        for spec in self.tables.selectors:
            expectations = self.tables.expectations.for_role(spec.role)
            if not expectations:
                continue
            selector = self.tables.selectors.resolve(spec.role, context.implementation)
            if selector is NOT_APPLICABLE:
                continue

            properties = self.extractor.properties + [
                p for p in expectations if p not in self.extractor.properties
            ]
            captured = await self.extractor.extract(context, spec.role, selector, properties)
            if isinstance(captured, ElementNotFound):
                results = [
                    ValidationResult.failure(
                        spec.role,
                        "present",
                        captured.message,
                        FailureKind.ELEMENT_NOT_FOUND,
                        selector=selector,
                    )
                ]
            else:
                results = match_property_set(captured, expectations)
            sections.setdefault(spec.section, []).extend(results)
        return sections

    def _record(
        self,
        builder: RunReportBuilder,
        section: str,
        results: list[ValidationResult],
        implementation: Implementation,
    ) -> None:
        outcome = apply_overrides(results, self.tables.overrides, implementation)
        builder.add(section, outcome.results, outcome.suppressed)


class ParityOrchestrator:
    """Runs the pipeline for one or both implementations and compares them."""

    def __init__(
        self,
        tables: SpecTables,
        config: ParityConfig | None = None,
        browser_factory: Callable[..., Any] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            tables: Selector, expectation and override tables.
            config: Harness configuration.
            browser_factory: Callable returning an async context manager with
                an ``open_page(viewport)`` coroutine. Defaults to BrowserManager.
        """
        self.config = config or ParityConfig()
        self.pipeline = ParityPipeline(tables, self.config)
        self.browser_factory = browser_factory or BrowserManager

    async def run(self, implementations: list[Implementation]) -> ComparisonResult:
        """Run the requested implementations concurrently.

        Args:
            implementations: One or both implementations.

        Returns:
            ComparisonResult; the gap is computed when exactly two runs exist.
        """
        if self.config.browser.wait_for_server:
            await self._wait_for_servers(implementations)

        viewport = self.config.viewport(self.config.default_viewport)
        async with self.browser_factory(self.config.browser, self.config.timeouts) as browser:

            async def run_one(implementation: Implementation) -> RunReport:
                try:
                    page = await browser.open_page(viewport)
                except ParityError as e:
                    return self._fatal_report(implementation, e.message)
                try:
                    return await self.pipeline.run(page, implementation)
                except ParityError as e:
                    return self._fatal_report(implementation, e.message)
                finally:
                    try:
                        await page.close()
                    except BrowserError as e:
                        logger.warning(
                            f"Closing page failed: {e.message}",
                            extra={"implementation": implementation.value},
                        )

            reports = await asyncio.gather(*(run_one(i) for i in implementations))

        result = ComparisonResult(reports=dict(zip(implementations, reports, strict=True)))
        if len(reports) == 2:
            result.gap = compare(reports[0], reports[1])
            logger.info(
                f"Parity gap {result.gap.gap:.1%} ({result.gap.assessment.value})"
            )
        return result

    def _fatal_report(self, implementation: Implementation, message: str) -> RunReport:
        logger.error(message, extra={"implementation": implementation.value})
        builder = RunReportBuilder(implementation, self.config.targets.url_for(implementation))
        builder.fatal(message)
        return builder.build()

    async def _wait_for_servers(self, implementations: list[Implementation]) -> None:
        for implementation in implementations:
            url = self.config.targets.url_for(implementation)
            if not await wait_for_server(url, timeout=self.config.browser.server_timeout):
                logger.warning(f"Server for {implementation.value} not ready at {url}")


__all__ = ["ComparisonResult", "ParityPipeline", "ParityOrchestrator"]
