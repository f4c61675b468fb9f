"""
Theme resolution across platform defaults, templates and organization
overrides.

Tiers are merged with the same deep merge as app configuration: later tiers
win key by key and nested objects (``colors.text``, ``typography.sizes``...)
are merged, never replaced wholesale.
"""

import logging
from typing import Any, Dict, Mapping, Optional, TypeVar
from urllib.parse import urlparse

from ..registry.config_resolver import merge_layers

logger = logging.getLogger("tokennexus.theming")

T = TypeVar("T")

STATUS_COLOR_DEFAULTS = {
    "success": "#10b981",
    "warning": "#f59e0b",
    "info": "#06b6d4",
    "destructive": "#ef4444",
}

NEUTRAL_PALETTE = {
    "50": "#f8fafc",
    "100": "#f1f5f9",
    "200": "#e2e8f0",
    "300": "#cbd5e1",
    "400": "#94a3b8",
    "500": "#64748b",
    "600": "#475569",
    "700": "#334155",
    "800": "#1e293b",
    "900": "#0f172a",
    "950": "#020617",
}

FONT_FALLBACK = "system-ui, sans-serif"

BRANDING_ASSET_FIELDS = ("logo", "logoLight", "logoDark", "favicon", "appIcon", "emailLogo")


class ThemeResolver:
    """Resolves an organization's effective theme."""

    @staticmethod
    def resolve_property(
        platform_default: T,
        template_value: Optional[T] = None,
        organization_override: Optional[T] = None,
    ) -> T:
        """Highest non-None tier wins: organization, template, platform."""
        if organization_override is not None:
            return organization_override
        if template_value is not None:
            return template_value
        return platform_default

    def resolve(
        self,
        platform: Mapping[str, Any],
        template: Optional[Mapping[str, Any]] = None,
        organization: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Merge the three theme tiers.

        After merging, missing status colors and an incomplete neutral
        palette are filled in, and font families get generic fallbacks.
        Inputs are not mutated.
        """
        theme = merge_layers(platform, template, organization)

        colors = theme.get("colors")
        if isinstance(colors, dict):
            self._complete_colors(colors)

        typography = theme.get("typography")
        if isinstance(typography, dict):
            self._ensure_font_fallbacks(typography)

        branding = theme.get("branding")
        if isinstance(branding, dict):
            self._check_branding_assets(branding)

        return theme

    def _complete_colors(self, colors: Dict[str, Any]) -> None:
        neutral = colors.get("neutral")
        if not isinstance(neutral, dict) or len(neutral) < len(NEUTRAL_PALETTE):
            colors["neutral"] = dict(NEUTRAL_PALETTE)

        for name, default in STATUS_COLOR_DEFAULTS.items():
            if not colors.get(name):
                colors[name] = default

    def _ensure_font_fallbacks(self, typography: Dict[str, Any]) -> None:
        for key in ("fontFamily", "headingFont"):
            family = typography.get(key)
            if family and "sans-serif" not in family:
                typography[key] = f"{family}, {FONT_FALLBACK}"

    def _check_branding_assets(self, branding: Dict[str, Any]) -> None:
        for key in BRANDING_ASSET_FIELDS:
            url = branding.get(key)
            if not url or not isinstance(url, str):
                continue
            parsed = urlparse(url)
            if parsed.scheme and parsed.netloc:
                continue
            if url.startswith("/") or url.startswith("./"):
                continue
            logger.warning(f"Branding asset {key} may have an invalid URL: {url}")

    @staticmethod
    def diff(original: Mapping[str, Any], updated: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
        """
        Dotted-path differences between two themes.

        Returns:
            ``{"colors.primary": {"from": ..., "to": ...}, ...}``
        """
        changes: Dict[str, Dict[str, Any]] = {}
        _compare(original, updated, "", changes)
        return changes


def _compare(
    original: Mapping[str, Any],
    updated: Mapping[str, Any],
    path: str,
    changes: Dict[str, Dict[str, Any]],
) -> None:
    for key in list(original) + [k for k in updated if k not in original]:
        current = f"{path}.{key}" if path else key
        before = original.get(key)
        after = updated.get(key)
        if isinstance(before, Mapping) and isinstance(after, Mapping):
            _compare(before, after, current, changes)
        elif before != after:
            changes[current] = {"from": before, "to": after}
