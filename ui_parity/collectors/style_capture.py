"""Computed style extraction for resolved roles.

Reads the computed style of the first element matching a selector for a
categorized list of CSS properties. Values are kept exactly as the browser
serializes them; only values that carry no information are dropped.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..errors import BrowserError
from ..parity_logging import LogCategory, get_category_logger
from .browser import RunContext, await_condition

logger = get_category_logger(LogCategory.EXTRACTOR)


@dataclass(frozen=True)
class PropertySet:
    """Captured property values for one role on one page state."""

    role: str
    selector: str
    values: Mapping[str, str]

    def get(self, prop: str) -> str | None:
        """Captured value of a property, None if not captured."""
        return self.values.get(prop)

    def __contains__(self, prop: object) -> bool:
        return prop in self.values

    def by_category(self) -> dict[str, dict[str, str]]:
        """Captured values grouped by property category."""
        grouped: dict[str, dict[str, str]] = {}
        for category, props in PropertyExtractor.CATEGORIES.items():
            captured = {p: self.values[p] for p in props if p in self.values}
            if captured:
                grouped[category] = captured
        return grouped


@dataclass(frozen=True)
class ElementNotFound:
    """No element matched the selector within the selector timeout."""

    role: str
    selector: str
    timeout_ms: int
    cause: str | None = None

    @property
    def message(self) -> str:
        return f"{self.role}: element not found within {self.timeout_ms}ms"


class PropertyExtractor:
    """Captures categorized computed styles from the page.

    Property names are camelCase, as exposed by CSSStyleDeclaration.
    """

    TYPOGRAPHY_PROPS = [
        "fontFamily",
        "fontSize",
        "fontWeight",
        "fontStyle",
        "lineHeight",
        "letterSpacing",
        "textAlign",
        "textDecoration",
        "textTransform",
        "textIndent",
        "wordSpacing",
        "whiteSpace",
    ]

    COLOR_PROPS = [
        "color",
        "backgroundColor",
        "borderColor",
        "borderTopColor",
        "borderRightColor",
        "borderBottomColor",
        "borderLeftColor",
        "outlineColor",
    ]

    BACKGROUND_PROPS = [
        "backgroundImage",
        "backgroundPosition",
        "backgroundSize",
        "backgroundRepeat",
        "backgroundAttachment",
        "backgroundClip",
        "backgroundOrigin",
    ]

    BOX_MODEL_PROPS = [
        "width",
        "height",
        "minWidth",
        "minHeight",
        "maxWidth",
        "maxHeight",
        "padding",
        "paddingTop",
        "paddingRight",
        "paddingBottom",
        "paddingLeft",
        "margin",
        "marginTop",
        "marginRight",
        "marginBottom",
        "marginLeft",
        "boxSizing",
        "overflow",
    ]

    BORDER_PROPS = [
        "border",
        "borderWidth",
        "borderStyle",
        "borderRadius",
        "borderTop",
        "borderRight",
        "borderBottom",
        "borderLeft",
        "borderTopWidth",
        "borderRightWidth",
        "borderBottomWidth",
        "borderLeftWidth",
        "borderTopStyle",
        "borderRightStyle",
        "borderBottomStyle",
        "borderLeftStyle",
    ]

    POSITION_PROPS = ["position", "top", "right", "bottom", "left", "zIndex"]

    DISPLAY_PROPS = ["display", "visibility", "opacity", "float"]

    FLEX_PROPS = [
        "flexDirection",
        "flexWrap",
        "justifyContent",
        "alignItems",
        "alignContent",
        "alignSelf",
        "flex",
        "flexGrow",
        "flexShrink",
        "flexBasis",
    ]

    GRID_PROPS = [
        "gridTemplateColumns",
        "gridTemplateRows",
        "gridArea",
        "gridColumn",
        "gridRow",
        "gridColumnStart",
        "gridColumnEnd",
        "gridRowStart",
    ]

    TRANSFORM_PROPS = [
        "transform",
        "transformOrigin",
        "transition",
        "transitionProperty",
        "transitionDuration",
        "transitionTimingFunction",
        "transitionDelay",
        "animation",
        "animationName",
        "animationDuration",
        "animationTimingFunction",
        "animationDelay",
    ]

    EFFECT_PROPS = ["filter", "backdropFilter", "boxShadow", "textShadow"]

    INTERACTION_PROPS = ["cursor", "pointerEvents", "userSelect", "touchAction"]

    MISC_PROPS = [
        "listStyle",
        "listStyleType",
        "listStylePosition",
        "listStyleImage",
        "verticalAlign",
        "tableLayout",
        "borderCollapse",
        "borderSpacing",
    ]

    CATEGORIES = {
        "typography": TYPOGRAPHY_PROPS,
        "colors": COLOR_PROPS,
        "background": BACKGROUND_PROPS,
        "boxModel": BOX_MODEL_PROPS,
        "border": BORDER_PROPS,
        "position": POSITION_PROPS,
        "display": DISPLAY_PROPS,
        "flex": FLEX_PROPS,
        "grid": GRID_PROPS,
        "transform": TRANSFORM_PROPS,
        "effects": EFFECT_PROPS,
        "interaction": INTERACTION_PROPS,
        "misc": MISC_PROPS,
    }

    # Values that say nothing about the rendered element
    UNINFORMATIVE_VALUES = frozenset({"auto", "initial", "inherit", ""})

    def __init__(self, properties: list[str] | None = None):
        """Initialize the extractor.

        Args:
            properties: Properties captured when extract() is not given an
                explicit list. Defaults to every categorized property.
        """
        self.properties = list(properties) if properties else self.all_properties()

    @classmethod
    def all_properties(cls) -> list[str]:
        """Every categorized property, in category order."""
        return [prop for props in cls.CATEGORIES.values() for prop in props]

    async def extract(
        self,
        context: RunContext,
        role: str,
        selector: str,
        properties: list[str] | None = None,
    ) -> PropertySet | ElementNotFound:
        """Capture computed styles of the first element matching selector.

        Args:
            context: Current run context.
            role: Role being extracted (carried into the result).
            selector: Resolved CSS selector.
            properties: Properties to read; defaults to the configured list.

        Returns:
            PropertySet of informative values, or ElementNotFound if nothing
            matched within the selector timeout.
        """
        timeout_ms = context.timeouts.selector_ms

        async def _present() -> bool:
            return await context.page.count(selector) > 0

        wait = await await_condition(
            _present, timeout_ms, context.timeouts.poll_interval_ms
        )
        if not wait.met:
            logger.debug(f"{role}: no match for {selector} after {wait.elapsed_ms:.0f}ms")
            return ElementNotFound(role, selector, timeout_ms, wait.last_error)

        try:
            raw = await context.page.computed_style(selector, properties or self.properties)
        except BrowserError as e:
            return ElementNotFound(role, selector, timeout_ms, e.message)

        values = {
            prop: value
            for prop, value in raw.items()
            if value not in self.UNINFORMATIVE_VALUES
        }
        return PropertySet(role=role, selector=selector, values=MappingProxyType(values))


__all__ = ["PropertySet", "ElementNotFound", "PropertyExtractor"]
