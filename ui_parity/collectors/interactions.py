"""Interactive state driving.

Drives the page through the state machines of its interactive widgets and
asserts each transition:

- mobile menu: Closed -> Opening -> Open -> Closing -> Closed
- accordion item: Collapsed <-> Expanded
- consent banner: Hidden -> Shown -> {Accepted | Rejected | SettingsOpened}
- hover feedback on configured roles

Every wait is bounded by the transition timeout. A transition that does not
happen is a failing ValidationResult, never an exception.
"""

from collections.abc import Awaitable, Callable
from enum import Enum

from ..config import InteractionConfig, ViewportConfig
from ..errors import BrowserError, FailureKind
from ..models import ValidationResult
from ..parity_logging import LogCategory, get_category_logger
from ..specs.selectors import NOT_APPLICABLE, SelectorTable
from .browser import ConditionResult, RunContext, await_condition

logger = get_category_logger(LogCategory.DRIVER)

MOBILE_MENU_SECTION = "mobileMenu"
ACCORDION_SECTION = "faqAccordion"
CONSENT_SECTION = "consent"
HOVER_SECTION = "hover"


class MenuState(Enum):
    """Mobile menu states."""

    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


class AccordionState(Enum):
    """Accordion item states."""

    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


class ConsentState(Enum):
    """Consent banner states."""

    HIDDEN = "hidden"
    SHOWN = "shown"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SETTINGS_OPENED = "settings_opened"


class InteractiveStateDriver:
    """Drives and asserts interactive widget behavior."""

    # Properties whose change counts as hover feedback
    HOVER_PROPERTIES = [
        "color",
        "backgroundColor",
        "borderColor",
        "boxShadow",
        "transform",
        "opacity",
    ]

    # Consent flows in the order they are driven
    CONSENT_FLOWS = [
        ConsentState.SETTINGS_OPENED,
        ConsentState.REJECTED,
        ConsentState.ACCEPTED,
    ]

    def __init__(
        self,
        selectors: SelectorTable,
        config: InteractionConfig | None = None,
        viewports: list[ViewportConfig] | None = None,
    ):
        """Initialize the driver.

        Args:
            selectors: Role selector table.
            config: Role wiring and enabled flows.
            viewports: Configured viewports; the mobile viewport is looked up
                here by name.
        """
        self.selectors = selectors
        self.config = config or InteractionConfig()
        self.viewports = {v.name: v for v in viewports or []}

    async def run(self, context: RunContext) -> dict[str, list[ValidationResult]]:
        """Run every enabled flow.

        Returns:
            Section name -> results, in execution order.
        """
        sections: dict[str, list[ValidationResult]] = {}
        if self.config.mobile_menu:
            sections[MOBILE_MENU_SECTION] = await self.drive_mobile_menu(context)
        if self.config.accordion:
            sections[ACCORDION_SECTION] = await self.drive_accordion(context)
        if self.config.consent:
            sections[CONSENT_SECTION] = await self.drive_consent(context)
        if self.config.hover:
            sections[HOVER_SECTION] = await self.check_hover(context)
        return sections

    # Mobile menu

    async def drive_mobile_menu(self, context: RunContext) -> list[ValidationResult]:
        """Open and close the mobile menu at the mobile viewport.

        The previous viewport is restored afterwards.
        """
        role = self.config.mobile_menu_button
        button = self._resolve(role, context)
        panel = self._resolve(self.config.mobile_menu_panel, context)
        if button is None or panel is None:
            return []

        mobile = self.viewports.get(self.config.mobile_viewport, context.viewport)
        previous = context.viewport
        try:
            mobile_context = await context.apply_viewport(mobile)
        except BrowserError as e:
            return [self._failure(role, "viewport", f"{role}: {e.message}", selector=button)]

        results = await self._mobile_menu_cycle(mobile_context, role, button, panel)

        try:
            await context.apply_viewport(previous)
        except BrowserError as e:
            results.append(
                self._failure(role, "restoreViewport", f"{role}: {e.message}", selector=button)
            )
        return results

    async def _mobile_menu_cycle(
        self,
        context: RunContext,
        role: str,
        button: str,
        panel: str,
    ) -> list[ValidationResult]:
        results: list[ValidationResult] = []
        state = MenuState.CLOSED
        page = context.page

        async def expanded() -> bool:
            return await page.get_attribute(button, "aria-expanded") == "true"

        async def is_open() -> bool:
            return await expanded() and await page.is_visible(panel)

        async def is_closed() -> bool:
            return not await expanded() and not await page.is_visible(panel)

        try:
            if not (await self._wait_present(context, button)).met:
                return [
                    self._failure(
                        role,
                        "present",
                        f"{role}: menu control not found within {context.timeouts.selector_ms}ms",
                        FailureKind.ELEMENT_NOT_FOUND,
                        selector=button,
                    )
                ]
            results.append(
                ValidationResult.success(role, "present", f"{role}: present", selector=button)
            )

            if await expanded():
                logger.debug(f"{role}: menu starts open, closing first")
                await page.click(button)
                if not (await self._wait(context, is_closed)).met:
                    results.append(
                        self._failure(
                            role,
                            "closes",
                            await self._stuck_message(context, role, button),
                            selector=button,
                        )
                    )
                    return results

            state = MenuState.OPENING
            await page.click(button)
            if not (await self._wait(context, is_open)).met:
                results.append(
                    self._failure(
                        role,
                        "opens",
                        await self._stuck_message(context, role, button),
                        selector=button,
                    )
                )
                return results
            state = MenuState.OPEN
            results.append(
                ValidationResult.success(role, "opens", f"{role}: opens", selector=button)
            )

            async def focus_in_panel() -> bool:
                return await page.focus_within(panel)

            results.append(
                self._outcome(
                    role,
                    "focusOnOpen",
                    (await self._wait(context, focus_in_panel)).met,
                    f"{role}: focus moves into the menu",
                    f"{role}: focus not moved into the menu after opening",
                    selector=button,
                )
            )

            state = MenuState.CLOSING
            await page.click(button)
            if not (await self._wait(context, is_closed)).met:
                results.append(
                    self._failure(
                        role,
                        "closes",
                        await self._stuck_message(context, role, button),
                        selector=button,
                    )
                )
                return results
            state = MenuState.CLOSED
            results.append(
                ValidationResult.success(role, "closes", f"{role}: closes", selector=button)
            )

            async def focus_on_button() -> bool:
                return await page.is_focused(button)

            results.append(
                self._outcome(
                    role,
                    "focusOnClose",
                    (await self._wait(context, focus_on_button)).met,
                    f"{role}: focus returns to the control",
                    f"{role}: focus not returned to the control after closing",
                    selector=button,
                )
            )
        except BrowserError as e:
            results.append(
                self._failure(
                    role,
                    state.value,
                    f"{role}: {e.message} (menu {state.value})",
                    selector=button,
                )
            )
        return results

    async def _stuck_message(self, context: RunContext, role: str, button: str) -> str:
        value = await context.page.get_attribute(button, "aria-expanded")
        return f"{role}: Mobile menu state did not change (stuck at aria-expanded={value})"

    # Accordion

    async def drive_accordion(self, context: RunContext) -> list[ValidationResult]:
        """Expand and collapse the first collapsed accordion item."""
        role = self.config.faq_question
        selector = self._resolve(role, context)
        if selector is None:
            return []
        page = context.page
        state = AccordionState.COLLAPSED

        try:
            if not (await self._wait_present(context, selector)).met:
                return [
                    self._failure(
                        role,
                        "present",
                        f"{role}: no accordion items found within {context.timeouts.selector_ms}ms",
                        FailureKind.ELEMENT_NOT_FOUND,
                        selector=selector,
                    )
                ]

            index: int | None = None
            without_state: list[int] = []
            for i in range(await page.count(selector)):
                value = await page.get_attribute(selector, "aria-expanded", i)
                if value == "false":
                    index = i
                    break
                if value is None:
                    without_state.append(i)

            if index is None:
                if without_state:
                    return [
                        self._failure(
                            role,
                            "ariaExpanded",
                            f"{role}: {len(without_state)} accordion item(s) without aria-expanded",
                            selector=selector,
                        )
                    ]
                return [
                    ValidationResult.success(
                        role,
                        "expands",
                        f"{role}: all accordion items already expanded",
                        selector=selector,
                    )
                ]

            # aria-controls is an ID reference list; the first ID is the panel
            controls = (await page.get_attribute(selector, "aria-controls", index) or "").split()
            panel_id = controls[0] if controls else None
            panel = id_selector(panel_id) if panel_id else None

            async def flag() -> str | None:
                return await page.get_attribute(selector, "aria-expanded", index)

            async def expanded() -> bool:
                if await flag() != "true":
                    return False
                return panel is None or await page.is_visible(panel)

            async def collapsed() -> bool:
                if await flag() != "false":
                    return False
                return panel is None or not await page.is_visible(panel)

            results: list[ValidationResult] = []
            await page.click(selector, index)
            if not (await self._wait(context, expanded)).met:
                message = _accordion_stuck(role, "expand", "true", await flag(), panel_id)
                return [self._failure(role, "expands", message, selector=selector)]
            state = AccordionState.EXPANDED
            results.append(
                ValidationResult.success(role, "expands", f"{role}: expands", selector=selector)
            )

            await page.click(selector, index)
            if not (await self._wait(context, collapsed)).met:
                message = _accordion_stuck(role, "collapse", "false", await flag(), panel_id)
                results.append(self._failure(role, "collapses", message, selector=selector))
                return results
            results.append(
                ValidationResult.success(role, "collapses", f"{role}: collapses", selector=selector)
            )
            return results
        except BrowserError as e:
            return [
                self._failure(
                    role,
                    state.value,
                    f"{role}: {e.message} (item {state.value})",
                    selector=selector,
                )
            ]

    # Consent banner

    async def drive_consent(self, context: RunContext) -> list[ValidationResult]:
        """Check policy links, then drive each consent flow if a banner exists.

        A page without a banner yields no banner results.
        """
        results = await self.check_policy_links(context)

        banner_role = self.config.consent_banner
        banner = self._resolve(banner_role, context)
        if banner is None:
            return results

        try:
            if not (await self._wait_banner(context, banner)).met:
                logger.info(
                    "No consent banner shown, skipping consent flows",
                    extra={"implementation": context.implementation.value},
                )
                return results
        except BrowserError as e:
            results.append(
                self._failure(banner_role, "shown", f"{banner_role}: {e.message}", selector=banner)
            )
            return results

        results.append(
            ValidationResult.success(
                banner_role, "shown", f"{banner_role}: shown", selector=banner
            )
        )

        buttons = {
            ConsentState.SETTINGS_OPENED: self.config.consent_settings,
            ConsentState.REJECTED: self.config.consent_reject,
            ConsentState.ACCEPTED: self.config.consent_accept,
        }
        for flow in self.CONSENT_FLOWS:
            button_role = buttons[flow]
            button = self._resolve(button_role, context)
            if button is None:
                continue
            results.extend(await self._consent_flow(context, flow, banner, button_role, button))
        return results

    async def _consent_flow(
        self,
        context: RunContext,
        flow: ConsentState,
        banner: str,
        button_role: str,
        button: str,
    ) -> list[ValidationResult]:
        page = context.page
        banner_role = self.config.consent_banner
        check = flow.value
        try:
            await page.reset_client_state(context.timeouts.navigation_ms)
            if not (await self._wait_banner(context, banner)).met:
                return [
                    self._failure(
                        banner_role,
                        check,
                        f"{banner_role}: not shown after clearing consent",
                        selector=banner,
                    )
                ]
            if not await page.count(button):
                return [
                    self._failure(
                        button_role,
                        "present",
                        f"{button_role}: consent button not found",
                        FailureKind.ELEMENT_NOT_FOUND,
                        selector=button,
                    )
                ]
            await page.click(button)

            if flow == ConsentState.SETTINGS_OPENED:
                settings_panel = self._resolve(self.config.consent_settings_panel, context)
                if settings_panel is None:
                    return []

                async def settings_visible() -> bool:
                    return await page.is_visible(settings_panel)

                return [
                    self._outcome(
                        button_role,
                        check,
                        (await self._wait(context, settings_visible)).met,
                        f"{button_role}: opens consent settings",
                        f"{button_role}: consent settings did not open",
                        selector=button,
                    )
                ]

            async def banner_hidden() -> bool:
                return not await page.is_visible(banner)

            if not (await self._wait(context, banner_hidden)).met:
                return [
                    self._failure(
                        button_role,
                        check,
                        f"{button_role}: banner still visible after {check}",
                        selector=button,
                    )
                ]
            results = [
                ValidationResult.success(
                    button_role, check, f"{button_role}: banner {check}", selector=button
                )
            ]

            # The choice must survive a reload
            await page.reload(context.timeouts.navigation_ms)
            reappeared = (await self._wait_banner(context, banner)).met
            results.append(
                self._outcome(
                    button_role,
                    "persisted",
                    not reappeared,
                    f"{button_role}: choice persisted",
                    f"{button_role}: banner shown again after reload",
                    selector=button,
                )
            )
            return results
        except BrowserError as e:
            return [
                self._failure(button_role, check, f"{button_role}: {e.message}", selector=button)
            ]

    async def check_policy_links(self, context: RunContext) -> list[ValidationResult]:
        """Policy links must exist and point at a plausible href."""
        keywords = {
            self.config.privacy_link: "privacy",
            self.config.terms_link: "terms",
        }
        results: list[ValidationResult] = []
        for role, keyword in keywords.items():
            selector = self._resolve(role, context)
            if selector is None:
                continue
            try:
                if not (await self._wait_present(context, selector)).met:
                    results.append(
                        self._failure(
                            role,
                            "present",
                            f"{role}: link not found",
                            FailureKind.ELEMENT_NOT_FOUND,
                            selector=selector,
                        )
                    )
                    continue
                href = await context.page.get_attribute(selector, "href") or ""
            except BrowserError as e:
                results.append(
                    self._failure(role, "href", f"{role}: {e.message}", selector=selector)
                )
                continue
            results.append(
                self._outcome(
                    role,
                    "href",
                    keyword in href.lower(),
                    f"{role}: href mentions {keyword}",
                    f'{role}: href "{href}" does not mention {keyword}',
                    selector=selector,
                )
            )
        return results

    # Hover

    async def check_hover(self, context: RunContext) -> list[ValidationResult]:
        """Hovering each configured role must change a visual property."""
        results: list[ValidationResult] = []
        page = context.page
        for role in self.config.hover_roles:
            selector = self._resolve(role, context)
            if selector is None:
                continue
            try:
                if not (await self._wait_present(context, selector)).met:
                    results.append(
                        self._failure(
                            role,
                            "hover",
                            f"{role}: element not found within {context.timeouts.selector_ms}ms",
                            FailureKind.ELEMENT_NOT_FOUND,
                            selector=selector,
                        )
                    )
                    continue
                before = await page.computed_style(selector, self.HOVER_PROPERTIES)
                await page.hover(selector)

                async def changed() -> bool:
                    return await page.computed_style(selector, self.HOVER_PROPERTIES) != before

                feedback = await self._wait(context, changed)
            except BrowserError as e:
                results.append(
                    self._failure(role, "hover", f"{role}: {e.message}", selector=selector)
                )
                continue
            results.append(
                self._outcome(
                    role,
                    "hover",
                    feedback.met,
                    f"{role}: hover feedback",
                    f"{role}: no visible hover feedback",
                    selector=selector,
                )
            )
        return results

    # Helpers

    def _resolve(self, role: str, context: RunContext) -> str | None:
        selector = self.selectors.resolve(role, context.implementation)
        return None if selector is NOT_APPLICABLE else selector

    async def _wait(
        self,
        context: RunContext,
        predicate: Callable[[], Awaitable[bool]],
    ) -> ConditionResult:
        return await await_condition(
            predicate, context.timeouts.transition_ms, context.timeouts.poll_interval_ms
        )

    async def _wait_present(self, context: RunContext, selector: str) -> ConditionResult:
        async def present() -> bool:
            return await context.page.count(selector) > 0

        return await await_condition(
            present, context.timeouts.selector_ms, context.timeouts.poll_interval_ms
        )

    async def _wait_banner(self, context: RunContext, banner: str) -> ConditionResult:
        async def visible() -> bool:
            return await context.page.is_visible(banner)

        return await await_condition(
            visible, context.timeouts.optional_element_ms, context.timeouts.poll_interval_ms
        )

    def _failure(
        self,
        role: str,
        check: str,
        message: str,
        kind: FailureKind = FailureKind.INTERACTION_FAILURE,
        selector: str | None = None,
    ) -> ValidationResult:
        logger.debug(message)
        return ValidationResult.failure(role, check, message, kind, selector=selector)

    def _outcome(
        self,
        role: str,
        check: str,
        passed: bool,
        success_message: str,
        failure_message: str,
        selector: str | None = None,
    ) -> ValidationResult:
        if passed:
            return ValidationResult.success(role, check, success_message, selector=selector)
        return self._failure(role, check, failure_message, selector=selector)


def id_selector(element_id: str) -> str:
    """Attribute selector matching an element ID verbatim."""
    escaped = element_id.replace("\\", "\\\\").replace('"', '\\"')
    return f'[id="{escaped}"]'


def _accordion_stuck(
    role: str,
    action: str,
    expected: str,
    actual: str | None,
    panel_id: str | None,
) -> str:
    if actual != expected:
        return f"{role}: accordion item did not {action} (stuck at aria-expanded={actual})"
    panel_state = "not visible" if expected == "true" else "still visible"
    return (
        f"{role}: accordion item did not {action} "
        f"(aria-expanded={actual} but panel {panel_id} {panel_state})"
    )


__all__ = [
    "MOBILE_MENU_SECTION",
    "ACCORDION_SECTION",
    "CONSENT_SECTION",
    "HOVER_SECTION",
    "MenuState",
    "AccordionState",
    "ConsentState",
    "InteractiveStateDriver",
    "id_selector",
]
