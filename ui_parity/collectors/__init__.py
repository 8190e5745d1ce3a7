"""Collectors that read state from, and drive, a rendered page.

This module provides the browser interface, the computed style extractor,
the structural integrity checker, the interactive state driver and the
responsive variation runner.
"""

from .browser import (
    PLAYWRIGHT_AVAILABLE,
    BrowserManager,
    BrowserPage,
    ConditionResult,
    ConditionStatus,
    PlaywrightPage,
    RunContext,
    await_condition,
    wait_for_server,
)
from .interactions import (
    AccordionState,
    ConsentState,
    InteractiveStateDriver,
    MenuState,
)
from .responsive import ResponsiveRunner
from .structure import STRUCTURE_SECTION, StructureChecker
from .style_capture import ElementNotFound, PropertyExtractor, PropertySet

__all__ = [
    # Browser control
    "PLAYWRIGHT_AVAILABLE",
    "BrowserManager",
    "BrowserPage",
    "ConditionResult",
    "ConditionStatus",
    "PlaywrightPage",
    "RunContext",
    "await_condition",
    "wait_for_server",
    # Extraction
    "ElementNotFound",
    "PropertyExtractor",
    "PropertySet",
    # Structure
    "STRUCTURE_SECTION",
    "StructureChecker",
    # Interaction
    "AccordionState",
    "ConsentState",
    "InteractiveStateDriver",
    "MenuState",
    # Responsive
    "ResponsiveRunner",
]
