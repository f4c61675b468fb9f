"""
Token Nexus theming - three-tier theme resolution.
"""

from .resolver import (
    FONT_FALLBACK,
    NEUTRAL_PALETTE,
    STATUS_COLOR_DEFAULTS,
    ThemeResolver,
)

__all__ = [
    "ThemeResolver",
    "STATUS_COLOR_DEFAULTS",
    "NEUTRAL_PALETTE",
    "FONT_FALLBACK",
]
