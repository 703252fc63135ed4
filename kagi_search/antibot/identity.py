"""Compose Playwright context options from device, fingerprint and stealth layers."""
from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from playwright.sync_api import Browser, BrowserContext

from ..models import FingerprintProfile

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceTemplate:
    """Preset viewport/user-agent bundle mimicking one desktop browser."""

    user_agent: str
    viewport_width: int = 1280
    viewport_height: int = 720
    screen_width: int = 1920
    screen_height: int = 1080
    device_scale_factor: float = 1.0
    is_mobile: bool = False
    has_touch: bool = False

    def to_playwright_context(self) -> Dict[str, Any]:
        """Convert to Playwright context kwargs."""
        return {
            "user_agent": self.user_agent,
            "viewport": {
                "width": self.viewport_width,
                "height": self.viewport_height,
            },
            "screen": {
                "width": self.screen_width,
                "height": self.screen_height,
            },
            "device_scale_factor": self.device_scale_factor,
            "is_mobile": self.is_mobile,
            "has_touch": self.has_touch,
        }


DEVICE_TEMPLATES: Dict[str, DeviceTemplate] = {
    "Desktop Chrome": DeviceTemplate(
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/131.0.6778.33 Safari/537.36"
        ),
    ),
    "Desktop Edge": DeviceTemplate(
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/131.0.6778.33 Safari/537.36 Edg/131.0.6778.33"
        ),
    ),
    "Desktop Firefox": DeviceTemplate(
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:132.0) "
            "Gecko/20100101 Firefox/132.0"
        ),
    ),
    "Desktop Safari": DeviceTemplate(
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/18.0 Safari/605.1.15"
        ),
        device_scale_factor=2.0,
    ),
}

UNIVERSAL_OVERRIDES: Dict[str, Any] = {
    "permissions": ["geolocation", "notifications"],
    "accept_downloads": True,
    "is_mobile": False,
    "has_touch": False,
    "java_script_enabled": True,
}

STEALTH_SCRIPT_TEMPLATE = """
(() => {
    Object.defineProperty(navigator, 'webdriver', { get: () => false });
    Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
    Object.defineProperty(navigator, 'languages', { get: () => %(languages)s });

    window.chrome = {
        runtime: {},
        loadTimes: function () {},
        csi: function () {},
        app: {},
    };

    Object.defineProperty(window.screen, 'width', { get: () => %(screen_width)d });
    Object.defineProperty(window.screen, 'height', { get: () => %(screen_height)d });
    Object.defineProperty(window.screen, 'colorDepth', { get: () => %(color_depth)d });
    Object.defineProperty(window.screen, 'pixelDepth', { get: () => %(color_depth)d });
})();
"""


def navigator_languages(locale: str) -> List[str]:
    """Languages list led by the target locale (``zh-CN`` -> zh-CN, zh, en-US, en)."""
    languages: List[str] = []
    for candidate in (locale, locale.split("-")[0], "en-US", "en"):
        if candidate and candidate not in languages:
            languages.append(candidate)
    return languages


def stealth_init_script(locale: str, *, screen: Tuple[int, int] = (1920, 1080)) -> str:
    return STEALTH_SCRIPT_TEMPLATE % {
        "languages": json.dumps(navigator_languages(locale)),
        "screen_width": screen[0],
        "screen_height": screen[1],
        "color_depth": 24,
    }


@dataclass(frozen=True)
class ContextLayer:
    """One named layer of context options."""

    name: str
    options: Mapping[str, Any]


def merge_layers(layers: Sequence[ContextLayer]) -> Dict[str, Any]:
    """Merge layers in order; keys from later layers replace earlier ones."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        overridden = sorted(set(merged) & set(layer.options))
        if overridden:
            LOGGER.debug("Layer %s overrides %s", layer.name, ", ".join(overridden))
        merged.update(layer.options)
    return merged


def fingerprint_options(fingerprint: FingerprintProfile) -> Dict[str, Any]:
    return {
        "locale": fingerprint.locale,
        "timezone_id": fingerprint.timezone_id,
        "color_scheme": fingerprint.color_scheme,
        "reduced_motion": fingerprint.reduced_motion,
        "forced_colors": fingerprint.forced_colors,
    }


@dataclass
class BrowserIdentity:
    """Ready-to-use context configuration for one session."""

    device_name: str
    context_options: Dict[str, Any]
    init_scripts: List[str] = field(default_factory=list)

    def new_context(
        self,
        browser: Browser,
        *,
        storage_state: Optional[str] = None,
    ) -> BrowserContext:
        """Create a context and register init scripts before any page exists.

        Parameters
        ----------
        browser : Browser
            Playwright browser instance
        storage_state : str, optional
            Saved cookies/localStorage to restore

        Returns
        -------
        BrowserContext
            Configured browser context
        """
        kwargs = dict(self.context_options)
        if storage_state:
            LOGGER.info("Restoring saved browser state from %s", storage_state)
            kwargs["storage_state"] = storage_state

        context = browser.new_context(**kwargs)
        for script in self.init_scripts:
            context.add_init_script(script)
        return context


class IdentityComposer:
    """Builds a BrowserIdentity with precedence device < fingerprint < overrides."""

    def __init__(
        self,
        catalog: Optional[Mapping[str, DeviceTemplate]] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.catalog = dict(catalog or DEVICE_TEMPLATES)
        self.rng = rng or random.Random()

    def pick_template(
        self,
        fingerprint: Optional[FingerprintProfile],
    ) -> Tuple[str, DeviceTemplate]:
        if fingerprint is not None and fingerprint.device_name in self.catalog:
            name = fingerprint.device_name
        else:
            name = self.rng.choice(sorted(self.catalog))
            LOGGER.info("No usable device in fingerprint, picked %s", name)
        return name, self.catalog[name]

    @staticmethod
    def layers(
        template: DeviceTemplate,
        fingerprint: Optional[FingerprintProfile],
    ) -> List[ContextLayer]:
        layers = [ContextLayer("device", template.to_playwright_context())]
        if fingerprint is not None:
            layers.append(ContextLayer("fingerprint", fingerprint_options(fingerprint)))
        layers.append(ContextLayer("overrides", UNIVERSAL_OVERRIDES))
        return layers

    def compose(self, fingerprint: Optional[FingerprintProfile]) -> BrowserIdentity:
        device_name, template = self.pick_template(fingerprint)
        options = merge_layers(self.layers(template, fingerprint))
        locale = options.get("locale") or "en-US"

        LOGGER.info(
            "Composed identity: device=%s locale=%s timezone=%s",
            device_name,
            locale,
            options.get("timezone_id"),
        )
        return BrowserIdentity(
            device_name=device_name,
            context_options=options,
            init_scripts=[stealth_init_script(locale)],
        )
