"""Browser control for parity runs.

Defines the narrow page interface every collector works against, its
Playwright implementation, the browser lifecycle manager, and the uniform
bounded-wait primitive used for element and state transitions.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Protocol

try:
    from playwright.async_api import (
        Browser,
        BrowserContext,
        Page,
        Playwright,
        async_playwright,
    )
    from playwright.async_api import Error as PlaywrightError

    PLAYWRIGHT_AVAILABLE = True
except ImportError:
    PLAYWRIGHT_AVAILABLE = False
    Browser = None
    BrowserContext = None
    Page = None
    Playwright = None
    PlaywrightError = None
    async_playwright = None

import aiohttp

from ..config import BrowserConfig, TimeoutConfig, ViewportConfig
from ..errors import BrowserError
from ..models import Implementation
from ..parity_logging import LogCategory, get_category_logger

logger = get_category_logger(LogCategory.PIPELINE)

# Reads computed style values of the index-th match; null when absent
COMPUTED_STYLE_JS = """([selector, index, properties]) => {
    const el = document.querySelectorAll(selector)[index];
    if (!el) return null;
    const style = window.getComputedStyle(el);
    const values = {};
    for (const prop of properties) {
        values[prop] = style[prop];
    }
    return values;
}"""

ATTRIBUTE_JS = """([selector, index, name]) => {
    const el = document.querySelectorAll(selector)[index];
    return el ? el.getAttribute(name) : null;
}"""

# Visible: rendered with a box, not display:none / visibility:hidden, no
# ``hidden`` attribute
VISIBLE_JS = """([selector, index]) => {
    const el = document.querySelectorAll(selector)[index];
    if (!el || el.hidden) return false;
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') return false;
    const rect = el.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
}"""

FOCUS_WITHIN_JS = """([selector, index]) => {
    const el = document.querySelectorAll(selector)[index];
    return !!el && !!document.activeElement && el.contains(document.activeElement);
}"""

FOCUSED_JS = """([selector, index]) => {
    const el = document.querySelectorAll(selector)[index];
    return !!el && el === document.activeElement;
}"""

# Border box of the index-th match; null when absent or not rendered
BOX_JS = """([selector, index]) => {
    const el = document.querySelectorAll(selector)[index];
    if (!el) return null;
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') return null;
    const rect = el.getBoundingClientRect();
    if (rect.width === 0 && rect.height === 0) return null;
    return {x: rect.x, y: rect.y, width: rect.width, height: rect.height};
}"""

SCROLL_WIDTH_JS = "() => document.documentElement.scrollWidth"

CLEAR_STORAGE_JS = """() => {
    try { window.localStorage.clear(); } catch (e) {}
    try { window.sessionStorage.clear(); } catch (e) {}
}"""


class BrowserPage(Protocol):
    """The browser operations collectors rely on.

    Element arguments are a CSS selector plus the index of the match; all
    reads are non-waiting snapshots, waiting is done with await_condition.
    """

    @property
    def viewport(self) -> dict[str, int] | None: ...

    async def goto(self, url: str, timeout_ms: int) -> None: ...

    async def reload(self, timeout_ms: int) -> None: ...

    async def count(self, selector: str) -> int: ...

    async def computed_style(
        self, selector: str, properties: list[str], index: int = 0
    ) -> dict[str, str]: ...

    async def get_attribute(self, selector: str, name: str, index: int = 0) -> str | None: ...

    async def is_visible(self, selector: str, index: int = 0) -> bool: ...

    async def focus_within(self, selector: str, index: int = 0) -> bool: ...

    async def is_focused(self, selector: str, index: int = 0) -> bool: ...

    async def bounding_box(
        self, selector: str, index: int = 0
    ) -> dict[str, float] | None: ...

    async def scroll_width(self) -> int: ...

    async def click(self, selector: str, index: int = 0) -> None: ...

    async def hover(self, selector: str, index: int = 0) -> None: ...

    async def set_viewport(self, width: int, height: int) -> None: ...

    async def reset_client_state(self, timeout_ms: int) -> None: ...

    async def close(self) -> None: ...


class ConditionStatus(Enum):
    """Outcome of a bounded wait."""

    MET = "met"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ConditionResult:
    """Result of await_condition."""

    status: ConditionStatus
    elapsed_ms: float
    last_error: str | None = None

    @property
    def met(self) -> bool:
        return self.status == ConditionStatus.MET


async def await_condition(
    predicate: Callable[[], Awaitable[bool]],
    timeout_ms: int,
    interval_ms: int = 100,
) -> ConditionResult:
    """Poll an async predicate until it holds or the timeout elapses.

    The predicate is always evaluated at least once. Browser errors raised by
    the predicate count as "not yet" and are reported in last_error on
    timeout.

    Args:
        predicate: Async callable returning True once the condition holds.
        timeout_ms: Maximum time to wait in milliseconds.
        interval_ms: Delay between evaluations in milliseconds.

    Returns:
        ConditionResult with MET or TIMED_OUT and the elapsed time.
    """
    start_time = time.monotonic()
    last_error: str | None = None
    while True:
        try:
            if await predicate():
                return ConditionResult(
                    ConditionStatus.MET, (time.monotonic() - start_time) * 1000
                )
        except BrowserError as e:
            last_error = e.message

        elapsed_ms = (time.monotonic() - start_time) * 1000
        if elapsed_ms >= timeout_ms:
            return ConditionResult(ConditionStatus.TIMED_OUT, elapsed_ms, last_error)
        await asyncio.sleep(min(interval_ms, timeout_ms - elapsed_ms) / 1000)


@dataclass(frozen=True)
class RunContext:
    """Everything one implementation's run threads through its calls."""

    implementation: Implementation
    url: str
    viewport: ViewportConfig
    page: BrowserPage
    timeouts: TimeoutConfig

    def with_viewport(self, viewport: ViewportConfig) -> "RunContext":
        """Copy of this context describing another viewport."""
        return replace(self, viewport=viewport)

    async def apply_viewport(self, viewport: ViewportConfig) -> "RunContext":
        """Resize the page and return the matching context."""
        await self.page.set_viewport(viewport.width, viewport.height)
        return self.with_viewport(viewport)


class PlaywrightPage:
    """BrowserPage backed by a Playwright page and its own browser context."""

    # CSS to disable animations so state checks see final values
    DISABLE_ANIMATIONS_CSS = """
        *, *::before, *::after {
            animation-duration: 0.001s !important;
            animation-delay: 0s !important;
            transition-duration: 0.001s !important;
            transition-delay: 0s !important;
            scroll-behavior: auto !important;
        }
    """

    def __init__(
        self,
        page: "Page",
        context: "BrowserContext",
        disable_animations: bool = True,
        action_timeout_ms: int = 5000,
    ):
        self._page = page
        self._context = context
        self.disable_animations = disable_animations
        self.action_timeout_ms = action_timeout_ms

    @property
    def viewport(self) -> dict[str, int] | None:
        return self._page.viewport_size

    async def goto(self, url: str, timeout_ms: int) -> None:
        await self._call("goto", self._page.goto(url, wait_until="networkidle", timeout=timeout_ms))
        await self._setup_page()

    async def reload(self, timeout_ms: int) -> None:
        await self._call("reload", self._page.reload(wait_until="networkidle", timeout=timeout_ms))
        await self._setup_page()

    async def count(self, selector: str) -> int:
        return await self._call("count", self._page.locator(selector).count())

    async def computed_style(
        self, selector: str, properties: list[str], index: int = 0
    ) -> dict[str, str]:
        values = await self._call(
            "computed_style",
            self._page.evaluate(COMPUTED_STYLE_JS, [selector, index, list(properties)]),
        )
        if values is None:
            raise BrowserError("computed_style", f"no element #{index} for {selector}")
        return {k: v for k, v in values.items() if isinstance(v, str)}

    async def get_attribute(self, selector: str, name: str, index: int = 0) -> str | None:
        return await self._call(
            "get_attribute", self._page.evaluate(ATTRIBUTE_JS, [selector, index, name])
        )

    async def is_visible(self, selector: str, index: int = 0) -> bool:
        return bool(
            await self._call("is_visible", self._page.evaluate(VISIBLE_JS, [selector, index]))
        )

    async def focus_within(self, selector: str, index: int = 0) -> bool:
        return bool(
            await self._call(
                "focus_within", self._page.evaluate(FOCUS_WITHIN_JS, [selector, index])
            )
        )

    async def is_focused(self, selector: str, index: int = 0) -> bool:
        return bool(
            await self._call("is_focused", self._page.evaluate(FOCUSED_JS, [selector, index]))
        )

    async def bounding_box(
        self, selector: str, index: int = 0
    ) -> dict[str, float] | None:
        return await self._call(
            "bounding_box", self._page.evaluate(BOX_JS, [selector, index])
        )

    async def scroll_width(self) -> int:
        return int(await self._call("scroll_width", self._page.evaluate(SCROLL_WIDTH_JS)))

    async def click(self, selector: str, index: int = 0) -> None:
        await self._call(
            "click",
            self._page.locator(selector).nth(index).click(timeout=self.action_timeout_ms),
        )

    async def hover(self, selector: str, index: int = 0) -> None:
        await self._call(
            "hover",
            self._page.locator(selector).nth(index).hover(timeout=self.action_timeout_ms),
        )

    async def set_viewport(self, width: int, height: int) -> None:
        await self._call(
            "set_viewport", self._page.set_viewport_size({"width": width, "height": height})
        )

    async def reset_client_state(self, timeout_ms: int) -> None:
        """Clear cookies and web storage, then reload the page."""
        await self._call("clear_cookies", self._context.clear_cookies())
        await self._call("clear_storage", self._page.evaluate(CLEAR_STORAGE_JS))
        await self.reload(timeout_ms)

    async def close(self) -> None:
        await self._call("close", self._context.close())

    async def _setup_page(self) -> None:
        """Inject CSS to disable animations into the current document."""
        if self.disable_animations:
            await self._call(
                "add_style_tag", self._page.add_style_tag(content=self.DISABLE_ANIMATIONS_CSS)
            )

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        return await _wrap(operation, awaitable)


class BrowserManager:
    """Owns the Playwright driver and browser for a parity run.

    Each opened page gets its own browser context, so baseline and candidate
    runs never share cookies, storage or viewport.
    """

    def __init__(self, config: BrowserConfig | None = None, timeouts: TimeoutConfig | None = None):
        """Initialize the browser manager.

        Args:
            config: Browser launch options.
            timeouts: Timeouts used for page actions.
        """
        if not PLAYWRIGHT_AVAILABLE:
            raise ImportError(
                "Playwright is required for parity runs. "
                "Install with: pip install playwright && playwright install chromium"
            )

        self.config = config or BrowserConfig()
        self.timeouts = timeouts or TimeoutConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def __aenter__(self) -> "BrowserManager":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()

    async def start(self) -> None:
        """Start Playwright browser."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
            logger.debug("Chromium started")

    async def stop(self) -> None:
        """Stop Playwright browser."""
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def open_page(self, viewport: ViewportConfig) -> PlaywrightPage:
        """Open a page in a fresh browser context.

        Args:
            viewport: Initial viewport of the page.

        Returns:
            The page; close it to dispose of its context.

        Raises:
            BrowserError: If the context or page cannot be created.
        """
        if not self._browser:
            await self.start()
        context = await _wrap("new_context", self._browser.new_context(viewport=viewport.size))
        page = await _wrap("new_page", context.new_page())
        return PlaywrightPage(
            page,
            context,
            disable_animations=self.config.disable_animations,
            action_timeout_ms=self.timeouts.selector_ms,
        )


async def _wrap(operation: str, awaitable: Awaitable[Any]) -> Any:
    """Await a Playwright call, converting its errors to BrowserError."""
    try:
        return await awaitable
    except PlaywrightError as e:
        raise BrowserError(operation, str(e).splitlines()[0] if str(e) else repr(e)) from e


async def wait_for_server(url: str, timeout: int = 30) -> bool:
    """Wait for server to be available.

    Args:
        url: URL to check.
        timeout: Maximum seconds to wait.

    Returns:
        True if server became available, False otherwise.
    """
    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url, timeout=aiohttp.ClientTimeout(total=2)) as response:
                    if response.status < 500:
                        return True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Server at {url} not ready: {e}")
        await asyncio.sleep(0.5)
    return False


__all__ = [
    "PLAYWRIGHT_AVAILABLE",
    "BrowserPage",
    "ConditionStatus",
    "ConditionResult",
    "await_condition",
    "RunContext",
    "PlaywrightPage",
    "BrowserManager",
    "wait_for_server",
]
