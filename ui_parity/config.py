"""Parity harness configuration loader.

Loads and validates ui-parity.config.json configuration files.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .models import Implementation
from .parity_logging import get_logger

logger = get_logger()

# Default configuration file name
CONFIG_FILENAME = "ui-parity.config.json"

# Environment variable naming an explicit config file
CONFIG_ENV_VAR = "UI_PARITY_CONFIG"

_VIEWPORT_RE = re.compile(r"^\s*([\w-]+)\s*=\s*(\d+)\s*[xX]\s*(\d+)\s*$")


@dataclass
class ViewportConfig:
    """Configuration for a viewport size."""

    name: str
    width: int
    height: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ViewportConfig":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            width=int(data["width"]),
            height=int(data["height"]),
        )

    @classmethod
    def parse(cls, value: str) -> "ViewportConfig":
        """Parse a ``NAME=WIDTHxHEIGHT`` option value.

        Raises:
            ConfigurationError: If the value is malformed.
        """
        match = _VIEWPORT_RE.match(value)
        if not match:
            raise ConfigurationError(
                f"Invalid viewport {value!r}",
                suggestion="Use NAME=WIDTHxHEIGHT, e.g. narrow=375x667",
            )
        return cls(match.group(1), int(match.group(2)), int(match.group(3)))

    @property
    def size(self) -> dict[str, int]:
        """Viewport as a width/height mapping for the browser."""
        return {"width": self.width, "height": self.height}


def default_viewports() -> list[ViewportConfig]:
    return [
        ViewportConfig("narrow", 375, 667),
        ViewportConfig("tablet", 768, 1024),
        ViewportConfig("desktop", 1200, 800),
    ]


@dataclass
class TargetConfig:
    """URLs of the two implementations."""

    baseline_url: str = "http://localhost:8081/"
    candidate_url: str = "http://localhost:4321/ralph-web/"

    def url_for(self, implementation: Implementation) -> str:
        """URL of the given implementation."""
        if implementation == Implementation.BASELINE:
            return self.baseline_url
        return self.candidate_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "baselineUrl": self.baseline_url,
            "candidateUrl": self.candidate_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TargetConfig":
        """Create from dictionary."""
        defaults = cls()
        return cls(
            baseline_url=data.get("baselineUrl", defaults.baseline_url),
            candidate_url=data.get("candidateUrl", defaults.candidate_url),
        )


@dataclass
class TimeoutConfig:
    """Bounded waits, in milliseconds.

    The selector wait (extraction), transition wait (interactive state
    changes) and navigation wait are independent.
    """

    selector_ms: int = 5000
    transition_ms: int = 2000
    navigation_ms: int = 60000
    optional_element_ms: int = 2000  # Elements allowed to be absent (consent banner)
    poll_interval_ms: int = 100
    navigation_retries: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "selectorMs": self.selector_ms,
            "transitionMs": self.transition_ms,
            "navigationMs": self.navigation_ms,
            "optionalElementMs": self.optional_element_ms,
            "pollIntervalMs": self.poll_interval_ms,
            "navigationRetries": self.navigation_retries,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeoutConfig":
        """Create from dictionary."""
        return cls(
            selector_ms=data.get("selectorMs", 5000),
            transition_ms=data.get("transitionMs", 2000),
            navigation_ms=data.get("navigationMs", 60000),
            optional_element_ms=data.get("optionalElementMs", 2000),
            poll_interval_ms=data.get("pollIntervalMs", 100),
            navigation_retries=data.get("navigationRetries", 1),
        )


@dataclass
class InteractionConfig:
    """Role wiring for the interactive state driver."""

    mobile_menu: bool = True
    accordion: bool = True
    consent: bool = True
    hover: bool = True
    mobile_viewport: str = "narrow"

    mobile_menu_button: str = "mobileMenuButton"
    mobile_menu_panel: str = "mobileMenuPanel"
    faq_question: str = "faqQuestion"
    consent_banner: str = "consentBanner"
    consent_accept: str = "consentAccept"
    consent_reject: str = "consentReject"
    consent_settings: str = "consentSettings"
    consent_settings_panel: str = "consentSettingsPanel"
    privacy_link: str = "privacyLink"
    terms_link: str = "termsLink"
    hover_roles: list[str] = field(default_factory=lambda: ["ctaButton", "navLink"])

    def referenced_roles(self) -> list[str]:
        """Every role the enabled flows touch."""
        roles: list[str] = []
        if self.mobile_menu:
            roles += [self.mobile_menu_button, self.mobile_menu_panel]
        if self.accordion:
            roles.append(self.faq_question)
        if self.consent:
            roles += [
                self.consent_banner,
                self.consent_accept,
                self.consent_reject,
                self.consent_settings,
                self.consent_settings_panel,
                self.privacy_link,
                self.terms_link,
            ]
        if self.hover:
            roles += self.hover_roles
        return roles

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "mobileMenu": self.mobile_menu,
            "accordion": self.accordion,
            "consent": self.consent,
            "hover": self.hover,
            "mobileViewport": self.mobile_viewport,
            "roles": {
                "mobileMenuButton": self.mobile_menu_button,
                "mobileMenuPanel": self.mobile_menu_panel,
                "faqQuestion": self.faq_question,
                "consentBanner": self.consent_banner,
                "consentAccept": self.consent_accept,
                "consentReject": self.consent_reject,
                "consentSettings": self.consent_settings,
                "consentSettingsPanel": self.consent_settings_panel,
                "privacyLink": self.privacy_link,
                "termsLink": self.terms_link,
            },
            "hoverRoles": self.hover_roles,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InteractionConfig":
        """Create from dictionary."""
        defaults = cls()
        roles = data.get("roles", {})
        return cls(
            mobile_menu=data.get("mobileMenu", True),
            accordion=data.get("accordion", True),
            consent=data.get("consent", True),
            hover=data.get("hover", True),
            mobile_viewport=data.get("mobileViewport", "narrow"),
            mobile_menu_button=roles.get("mobileMenuButton", defaults.mobile_menu_button),
            mobile_menu_panel=roles.get("mobileMenuPanel", defaults.mobile_menu_panel),
            faq_question=roles.get("faqQuestion", defaults.faq_question),
            consent_banner=roles.get("consentBanner", defaults.consent_banner),
            consent_accept=roles.get("consentAccept", defaults.consent_accept),
            consent_reject=roles.get("consentReject", defaults.consent_reject),
            consent_settings=roles.get("consentSettings", defaults.consent_settings),
            consent_settings_panel=roles.get(
                "consentSettingsPanel", defaults.consent_settings_panel
            ),
            privacy_link=roles.get("privacyLink", defaults.privacy_link),
            terms_link=roles.get("termsLink", defaults.terms_link),
            hover_roles=data.get("hoverRoles", defaults.hover_roles),
        )


@dataclass
class MobileLayoutConfig:
    """Layout constraints checked at mobile viewports.

    A viewport is mobile when its width is at most max_width. Sizes are CSS
    pixels.
    """

    enabled: bool = True
    max_width: int = 767
    header_role: str | None = "header"
    header_max_height: int = 92
    touch_target_roles: list[str] = field(
        default_factory=lambda: ["mobileMenuButton", "headerButton"]
    )
    touch_target_min: int = 44
    # Left-to-right header elements; hidden ones are skipped
    header_sequence: list[str] = field(
        default_factory=lambda: ["logo", "headerButton", "mobileMenuButton"]
    )
    min_gap: int = 10
    check_overflow: bool = True

    def applies_to(self, viewport: ViewportConfig) -> bool:
        """Whether the viewport is narrow enough for the mobile checks."""
        return self.enabled and viewport.width <= self.max_width

    def referenced_roles(self) -> list[str]:
        """Every role the layout checks touch."""
        if not self.enabled:
            return []
        roles = [self.header_role] if self.header_role else []
        return roles + self.touch_target_roles + self.header_sequence

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "maxWidth": self.max_width,
            "headerRole": self.header_role,
            "headerMaxHeight": self.header_max_height,
            "touchTargetRoles": self.touch_target_roles,
            "touchTargetMin": self.touch_target_min,
            "headerSequence": self.header_sequence,
            "minGap": self.min_gap,
            "checkOverflow": self.check_overflow,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MobileLayoutConfig":
        """Create from dictionary."""
        defaults = cls()
        return cls(
            enabled=data.get("enabled", True),
            max_width=data.get("maxWidth", defaults.max_width),
            header_role=data.get("headerRole", defaults.header_role),
            header_max_height=data.get("headerMaxHeight", defaults.header_max_height),
            touch_target_roles=data.get("touchTargetRoles", defaults.touch_target_roles),
            touch_target_min=data.get("touchTargetMin", defaults.touch_target_min),
            header_sequence=data.get("headerSequence", defaults.header_sequence),
            min_gap=data.get("minGap", defaults.min_gap),
            check_overflow=data.get("checkOverflow", True),
        )


@dataclass
class ResponsiveConfig:
    """Roles re-checked at every configured viewport."""

    enabled: bool = True
    roles: list[str] = field(
        default_factory=lambda: ["heroTitle", "heroSubtitle", "headerButton", "navigation"]
    )
    layout: MobileLayoutConfig = field(default_factory=MobileLayoutConfig)

    def referenced_roles(self) -> list[str]:
        """Every role the responsive pass touches."""
        if not self.enabled:
            return []
        return self.roles + self.layout.referenced_roles()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"enabled": self.enabled, "roles": self.roles, "layout": self.layout.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResponsiveConfig":
        """Create from dictionary."""
        return cls(
            enabled=data.get("enabled", True),
            roles=data.get("roles", cls().roles),
            layout=MobileLayoutConfig.from_dict(data.get("layout", {})),
        )


@dataclass
class GateConfig:
    """Pass/fail thresholds for the CLI exit code."""

    failure_tolerance: int = 0
    max_parity_gap: float = 0.15

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "failureTolerance": self.failure_tolerance,
            "maxParityGap": self.max_parity_gap,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GateConfig":
        """Create from dictionary."""
        return cls(
            failure_tolerance=data.get("failureTolerance", 0),
            max_parity_gap=data.get("maxParityGap", 0.15),
        )


@dataclass
class SpecSourcesConfig:
    """Paths of the declarative tables. None means the packaged table."""

    selectors: Path | None = None
    expectations: Path | None = None
    overrides: Path | None = None
    structure: Path | None = None

    def resolve(self, base_dir: Path) -> "SpecSourcesConfig":
        """Resolve relative paths against a directory."""

        def _abs(path: Path | None) -> Path | None:
            if path is None or path.is_absolute():
                return path
            return base_dir / path

        return SpecSourcesConfig(
            selectors=_abs(self.selectors),
            expectations=_abs(self.expectations),
            overrides=_abs(self.overrides),
            structure=_abs(self.structure),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "selectors": str(self.selectors) if self.selectors else None,
            "expectations": str(self.expectations) if self.expectations else None,
            "overrides": str(self.overrides) if self.overrides else None,
            "structure": str(self.structure) if self.structure else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpecSourcesConfig":
        """Create from dictionary."""
        return cls(
            selectors=Path(data["selectors"]) if data.get("selectors") else None,
            expectations=Path(data["expectations"]) if data.get("expectations") else None,
            overrides=Path(data["overrides"]) if data.get("overrides") else None,
            structure=Path(data["structure"]) if data.get("structure") else None,
        )


@dataclass
class BrowserConfig:
    """Browser launch and page setup options."""

    headless: bool = True
    disable_animations: bool = True
    wait_for_server: bool = False
    server_timeout: int = 30  # seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "headless": self.headless,
            "disableAnimations": self.disable_animations,
            "waitForServer": self.wait_for_server,
            "serverTimeout": self.server_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BrowserConfig":
        """Create from dictionary."""
        return cls(
            headless=data.get("headless", True),
            disable_animations=data.get("disableAnimations", True),
            wait_for_server=data.get("waitForServer", False),
            server_timeout=data.get("serverTimeout", 30),
        )


@dataclass
class ParityConfig:
    """Root configuration for the parity harness."""

    targets: TargetConfig = field(default_factory=TargetConfig)
    viewports: list[ViewportConfig] = field(default_factory=default_viewports)
    default_viewport: str = "desktop"
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    interactions: InteractionConfig = field(default_factory=InteractionConfig)
    responsive: ResponsiveConfig = field(default_factory=ResponsiveConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    specs: SpecSourcesConfig = field(default_factory=SpecSourcesConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)

    def viewport(self, name: str) -> ViewportConfig:
        """Get a viewport by name.

        Raises:
            ConfigurationError: If no viewport has that name.
        """
        for viewport in self.viewports:
            if viewport.name == name:
                return viewport
        known = ", ".join(v.name for v in self.viewports)
        raise ConfigurationError(f"Unknown viewport {name!r} (known: {known})")

    def validate(self) -> None:
        """Check cross-field consistency.

        Raises:
            ConfigurationError: On the first inconsistency found.
        """
        names = [v.name for v in self.viewports]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate viewport names: {names}")
        for viewport in self.viewports:
            if viewport.width <= 0 or viewport.height <= 0:
                raise ConfigurationError(f"Viewport {viewport.name!r} must have a positive size")
        self.viewport(self.default_viewport)
        if self.interactions.mobile_menu:
            self.viewport(self.interactions.mobile_viewport)
        if self.gate.failure_tolerance < 0:
            raise ConfigurationError("failureTolerance must not be negative")
        if not 0.0 <= self.gate.max_parity_gap <= 1.0:
            raise ConfigurationError("maxParityGap must be between 0 and 1")
        if self.timeouts.poll_interval_ms <= 0:
            raise ConfigurationError("pollIntervalMs must be positive")
        layout = self.responsive.layout
        for name in ("max_width", "header_max_height", "touch_target_min", "min_gap"):
            if getattr(layout, name) < 0:
                raise ConfigurationError(f"layout.{name} must not be negative")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "targets": self.targets.to_dict(),
            "viewports": [v.to_dict() for v in self.viewports],
            "defaultViewport": self.default_viewport,
            "timeouts": self.timeouts.to_dict(),
            "interactions": self.interactions.to_dict(),
            "responsive": self.responsive.to_dict(),
            "gate": self.gate.to_dict(),
            "specs": self.specs.to_dict(),
            "browser": self.browser.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParityConfig":
        """Create from dictionary."""
        viewports = data.get("viewports")
        return cls(
            targets=TargetConfig.from_dict(data.get("targets", {})),
            viewports=(
                [ViewportConfig.from_dict(v) for v in viewports]
                if viewports
                else default_viewports()
            ),
            default_viewport=data.get("defaultViewport", "desktop"),
            timeouts=TimeoutConfig.from_dict(data.get("timeouts", {})),
            interactions=InteractionConfig.from_dict(data.get("interactions", {})),
            responsive=ResponsiveConfig.from_dict(data.get("responsive", {})),
            gate=GateConfig.from_dict(data.get("gate", {})),
            specs=SpecSourcesConfig.from_dict(data.get("specs", {})),
            browser=BrowserConfig.from_dict(data.get("browser", {})),
        )


class ParityConfigLoader:
    """Loader for parity harness configuration."""

    def __init__(self, project_path: Path | None = None):
        """Initialize the config loader.

        Args:
            project_path: Directory searched for ui-parity.config.json.
                Defaults to current directory.
        """
        self.project_path = Path(project_path) if project_path else Path.cwd()

    def load(self, config_path: Path | None = None) -> ParityConfig:
        """Load parity configuration.

        Precedence (highest to lowest):
        1. Explicit config_path
        2. Environment variable UI_PARITY_CONFIG
        3. ui-parity.config.json in project root
        4. Default configuration

        Args:
            config_path: Optional explicit path to config file.

        Returns:
            Loaded and validated ParityConfig instance.

        Raises:
            ConfigurationError: If an explicit file is missing or any file is invalid.
        """
        if config_path is not None:
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}")
            return self._load_from_file(config_path)

        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            env_config_path = Path(env_path)
            if env_config_path.exists():
                return self._load_from_file(env_config_path)
            logger.warning(f"{CONFIG_ENV_VAR} points to missing file {env_path}")

        project_config = self.project_path / CONFIG_FILENAME
        if project_config.exists():
            return self._load_from_file(project_config)

        logger.debug("No parity config found, using defaults")
        config = ParityConfig()
        config.validate()
        return config

    def _load_from_file(self, config_path: Path) -> ParityConfig:
        """Load configuration from a file.

        Relative table paths are resolved against the config file's directory.

        Raises:
            ConfigurationError: If the file is unreadable, not valid JSON or has
                bad values.
        """
        logger.debug(f"Loading parity config from {config_path}")
        source = str(config_path)
        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read {config_path}: {e}", source=source) from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON: {e}", source=source) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Top-level JSON value must be an object", source=source)

        try:
            config = ParityConfig.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}", source=source) from e

        config.specs = config.specs.resolve(config_path.parent.resolve())
        config.validate()
        return config


def load_parity_config(
    config_path: Path | None = None,
    project_path: Path | None = None,
) -> ParityConfig:
    """Convenience function to load parity configuration.

    Args:
        config_path: Optional explicit config file.
        project_path: Optional directory searched for the default file.

    Returns:
        Loaded ParityConfig instance.
    """
    loader = ParityConfigLoader(project_path)
    return loader.load(config_path)


__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_ENV_VAR",
    "ViewportConfig",
    "TargetConfig",
    "TimeoutConfig",
    "InteractionConfig",
    "MobileLayoutConfig",
    "ResponsiveConfig",
    "GateConfig",
    "SpecSourcesConfig",
    "BrowserConfig",
    "ParityConfig",
    "ParityConfigLoader",
    "load_parity_config",
]
