"""
Shared fixtures for the ui-parity test suite.

Provides test fixtures for:
- An in-memory page implementing the BrowserPage protocol
- Small selector, expectation and override tables
- Run contexts with short timeouts
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from ui_parity.config import ParityConfig, TimeoutConfig, ViewportConfig
from ui_parity.errors import BrowserError
from ui_parity.models import Implementation
from ui_parity.specs.loader import (
    SpecTables,
    build_expectation_table,
    build_override_registry,
    build_selector_table,
)

# ---------------------------------------------------------------------------
# Fake page
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class FakeElement:
    """One element of the fake document."""

    styles: dict[str, str] = field(default_factory=dict)
    attributes: dict[str, str] = field(default_factory=dict)
    visible: bool = True
    hover_styles: dict[str, str] = field(default_factory=dict)
    # Width -> style overrides applied when the viewport is at most that wide
    responsive_styles: dict[int, dict[str, str]] = field(default_factory=dict)
    children: list["FakeElement"] = field(default_factory=list)
    on_click: Callable[["FakePage", "FakeElement"], None] | None = None
    # Rendered bounding box; None reads as unrendered
    box: dict[str, float] | None = None


class FakePage:
    """In-memory BrowserPage.

    Elements are registered per selector; reads mirror PlaywrightPage (a
    missing element reads as absent, acting on one raises BrowserError).
    """

    def __init__(self, width: int = 1200, height: int = 800):
        self.elements: dict[str, list[FakeElement]] = {}
        self._viewport = {"width": width, "height": height}
        self.focused: FakeElement | None = None
        self.hovered: FakeElement | None = None
        self.storage: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.goto_failures = 0
        self.resets = 0
        self.reloads = 0
        self.closed = False
        self.close_error: BrowserError | None = None
        # Document scroll width; defaults to the viewport width
        self.content_width: int | None = None
        self.on_load: Callable[["FakePage"], None] | None = None

    def add(self, selector: str, **kwargs) -> FakeElement:
        element = FakeElement(**kwargs)
        self.elements.setdefault(selector, []).append(element)
        return element

    def _get(self, selector: str, index: int) -> FakeElement | None:
        matches = self.elements.get(selector, [])
        return matches[index] if index < len(matches) else None

    def _require(self, operation: str, selector: str, index: int) -> FakeElement:
        element = self._get(selector, index)
        if element is None:
            raise BrowserError(operation, f"no element #{index} for {selector}")
        return element

    @property
    def viewport(self) -> dict[str, int] | None:
        return dict(self._viewport)

    async def goto(self, url: str, timeout_ms: int) -> None:
        self.calls.append(("goto", url))
        if self.goto_failures:
            self.goto_failures -= 1
            raise BrowserError("goto", "net::ERR_CONNECTION_REFUSED")
        if self.on_load:
            self.on_load(self)

    async def reload(self, timeout_ms: int) -> None:
        self.calls.append(("reload",))
        self.reloads += 1
        self.focused = None
        self.hovered = None
        if self.on_load:
            self.on_load(self)

    async def count(self, selector: str) -> int:
        return len(self.elements.get(selector, []))

    async def computed_style(
        self, selector: str, properties: list[str], index: int = 0
    ) -> dict[str, str]:
        element = self._require("computed_style", selector, index)
        styles = dict(element.styles)
        for max_width in sorted(element.responsive_styles, reverse=True):
            if self._viewport["width"] <= max_width:
                styles.update(element.responsive_styles[max_width])
        if self.hovered is element:
            styles.update(element.hover_styles)
        return {p: styles[p] for p in properties if p in styles}

    async def get_attribute(self, selector: str, name: str, index: int = 0) -> str | None:
        element = self._get(selector, index)
        return element.attributes.get(name) if element else None

    async def is_visible(self, selector: str, index: int = 0) -> bool:
        element = self._get(selector, index)
        return bool(element and element.visible)

    async def bounding_box(self, selector: str, index: int = 0) -> dict[str, float] | None:
        element = self._get(selector, index)
        if element is None or not element.visible or element.box is None:
            return None
        return dict(element.box)

    async def scroll_width(self) -> int:
        return self.content_width or self._viewport["width"]

    async def focus_within(self, selector: str, index: int = 0) -> bool:
        element = self._get(selector, index)
        if element is None or self.focused is None:
            return False
        return self.focused is element or self.focused in element.children

    async def is_focused(self, selector: str, index: int = 0) -> bool:
        element = self._get(selector, index)
        return element is not None and self.focused is element

    async def click(self, selector: str, index: int = 0) -> None:
        element = self._require("click", selector, index)
        self.calls.append(("click", selector, index))
        if element.on_click:
            element.on_click(self, element)

    async def hover(self, selector: str, index: int = 0) -> None:
        self.hovered = self._require("hover", selector, index)
        self.calls.append(("hover", selector, index))

    async def set_viewport(self, width: int, height: int) -> None:
        self.calls.append(("set_viewport", width, height))
        self._viewport = {"width": width, "height": height}

    async def reset_client_state(self, timeout_ms: int) -> None:
        self.resets += 1
        self.storage.clear()
        await self.reload(timeout_ms)

    async def close(self) -> None:
        self.closed = True
        if self.close_error:
            raise self.close_error

    # Widgets

    def add_mobile_menu(
        self,
        button: str = "#menu-button",
        panel: str = "#mobile-menu",
        opens: bool = True,
        moves_focus: bool = True,
        starts_open: bool = False,
    ) -> tuple[FakeElement, FakeElement]:
        """Register a menu button toggling a panel with one focusable link."""
        link = FakeElement()
        menu = self.add(panel, visible=starts_open, children=[link])

        def toggle(page: "FakePage", element: FakeElement) -> None:
            if not opens:
                return
            is_open = element.attributes["aria-expanded"] == "true"
            element.attributes["aria-expanded"] = "false" if is_open else "true"
            menu.visible = not is_open
            if moves_focus:
                page.focused = element if is_open else link

        control = self.add(
            button,
            attributes={"aria-expanded": "true" if starts_open else "false"},
            on_click=toggle,
        )
        return control, menu

    def add_accordion(
        self,
        selector: str = "dt button",
        states: tuple[str | None, ...] = ("false", "false"),
        works: bool = True,
        controls: str = "faq-{i}",
        toggles_panel: bool = True,
    ) -> list[FakeElement]:
        """Register accordion items with the given aria-expanded values.

        controls is formatted with the item index; its first ID names the panel.
        """
        items = []
        for i, state in enumerate(states):
            attributes = {} if state is None else {"aria-expanded": state}
            attributes["aria-controls"] = controls.format(i=i)
            panel_id = attributes["aria-controls"].split()[0]
            panel = self.add(f'[id="{panel_id}"]', visible=state == "true")

            def toggle(page: "FakePage", element: FakeElement, panel=panel) -> None:
                if not works:
                    return
                expanded = element.attributes.get("aria-expanded") == "true"
                element.attributes["aria-expanded"] = "false" if expanded else "true"
                if toggles_panel:
                    panel.visible = not expanded

            items.append(self.add(selector, attributes=attributes, on_click=toggle))
        return items

    def add_consent_banner(
        self,
        banner: str = "#cookie-banner",
        accept: str = "#cookie-accept",
        reject: str = "#cookie-reject",
        settings: str = "#cookie-settings",
        settings_panel: str = "#cookie-modal",
        persists: bool = True,
    ) -> FakeElement:
        """Register a consent banner backed by the page's storage."""
        banner_el = self.add(banner, visible=True)
        panel_el = self.add(settings_panel, visible=False)

        def choose(value: str) -> Callable[["FakePage", FakeElement], None]:
            def handler(page: "FakePage", element: FakeElement) -> None:
                if persists:
                    page.storage["consent"] = value
                banner_el.visible = False

            return handler

        def open_settings(page: "FakePage", element: FakeElement) -> None:
            panel_el.visible = True

        def on_load(page: "FakePage") -> None:
            banner_el.visible = "consent" not in page.storage
            panel_el.visible = False

        self.add(accept, on_click=choose("accepted"))
        self.add(reject, on_click=choose("rejected"))
        self.add(settings, on_click=open_settings)
        self.on_load = on_load
        return banner_el


@pytest.fixture()
def fake_page() -> FakePage:
    """A fake page at the desktop viewport."""
    return FakePage()


# ---------------------------------------------------------------------------
# Tables and configuration
# ---------------------------------------------------------------------------

SELECTORS = {
    "roles": {
        "body": {"section": "layout", "selector": "body"},
        "heroTitle": {"section": "hero", "selector": "h1"},
        "ctaButton": {
            "section": "hero",
            "selector": {
                "primary": "button.btn-primary",
                "perTarget": {"baseline": "button.bg-highlight"},
            },
        },
        "productLink": {
            "section": "header",
            "selector": {"primary": "a.product", "uniqueTo": "candidate"},
        },
        "logo": {
            "section": "header",
            "selector": {"primary": "header .text-2xl", "perTarget": {"baseline": "header svg"}},
        },
        "mobileMenuButton": {"section": "header", "selector": "#menu-button"},
        "mobileMenuPanel": {"section": "header", "selector": "#mobile-menu"},
        "faqQuestion": {"section": "faq", "selector": "dt button"},
        "consentBanner": {"section": "consent", "selector": "#cookie-banner"},
        "consentAccept": {"section": "consent", "selector": "#cookie-accept"},
        "consentReject": {"section": "consent", "selector": "#cookie-reject"},
        "consentSettings": {"section": "consent", "selector": "#cookie-settings"},
        "consentSettingsPanel": {"section": "consent", "selector": "#cookie-modal"},
        "privacyLink": {"section": "footer", "selector": "a.privacy"},
        "termsLink": {"section": "footer", "selector": "a.terms"},
    }
}

EXPECTATIONS = {
    "roles": {
        "body": {"backgroundColor": "rgb(40, 40, 40)"},
        "heroTitle": {
            "fontSize": {"pattern": "^(48|60)px$"},
            "fontWeight": "600",
        },
        "ctaButton": {
            "backgroundColor": "rgb(255, 220, 97)",
            "color": "rgb(41, 48, 69)",
        },
        "productLink": {"fontWeight": {"oneOf": ["500", "600"]}},
        "logo": {"width": "70px"},
    },
    "viewports": {
        "narrow": {"heroTitle": {"fontSize": {"pattern": "^(36|48)px$"}}},
    },
}

OVERRIDES = {
    "enabled": True,
    "overrides": [
        {
            "id": "ralph-logo",
            "category": "branding",
            "description": "Text logo",
            "selector": "header .text-2xl",
        }
    ],
}


@pytest.fixture()
def spec_tables() -> SpecTables:
    """Small, consistent selector/expectation/override tables."""
    return SpecTables(
        selectors=build_selector_table(SELECTORS),
        expectations=build_expectation_table(EXPECTATIONS),
        overrides=build_override_registry(OVERRIDES),
    )


@pytest.fixture()
def fast_timeouts() -> TimeoutConfig:
    """Timeouts short enough for failing waits to finish quickly."""
    return TimeoutConfig(
        selector_ms=50,
        transition_ms=50,
        navigation_ms=1000,
        optional_element_ms=30,
        poll_interval_ms=5,
    )


@pytest.fixture()
def parity_config(fast_timeouts: TimeoutConfig) -> ParityConfig:
    """Configuration wired to the test tables."""
    config = ParityConfig(timeouts=fast_timeouts)
    config.interactions.hover_roles = ["ctaButton"]
    config.responsive.roles = ["heroTitle"]
    config.responsive.layout.enabled = False
    return config


@pytest.fixture()
def make_context(fast_timeouts: TimeoutConfig):
    """Factory building a RunContext around a page."""
    from ui_parity.collectors.browser import RunContext

    def _make(
        page: FakePage,
        implementation: Implementation = Implementation.CANDIDATE,
        viewport: ViewportConfig | None = None,
    ) -> RunContext:
        return RunContext(
            implementation=implementation,
            url="http://localhost:4321/",
            viewport=viewport or ViewportConfig("desktop", 1200, 800),
            page=page,
            timeouts=fast_timeouts,
        )

    return _make


def populate_home_page(page: FakePage, implementation: Implementation) -> FakePage:
    """Fill a page with elements satisfying the test expectations."""
    page.add("body", styles={"backgroundColor": "rgb(40, 40, 40)"})
    page.add(
        "h1",
        styles={"fontSize": "60px", "fontWeight": "600"},
        responsive_styles={375: {"fontSize": "48px"}},
    )
    cta = "button.bg-highlight" if implementation == Implementation.BASELINE else "button.btn-primary"
    page.add(
        cta,
        styles={"backgroundColor": "rgb(255, 220, 97)", "color": "rgb(41, 48, 69)"},
        hover_styles={"backgroundColor": "rgb(255, 230, 130)"},
    )
    if implementation == Implementation.BASELINE:
        page.add("header svg", styles={"width": "70px"})
    else:
        page.add("a.product", styles={"fontWeight": "600"})
        page.add("header .text-2xl", styles={"width": "52px"})
    page.add("a.privacy", attributes={"href": "/privacy"})
    page.add("a.terms", attributes={"href": "/terms"})
    page.add_mobile_menu()
    page.add_accordion()
    return page


@pytest.fixture()
def home_page():
    """Factory for a fully populated fake page."""

    def _make(implementation: Implementation = Implementation.CANDIDATE) -> FakePage:
        return populate_home_page(FakePage(), implementation)

    return _make
