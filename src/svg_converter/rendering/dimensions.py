"""Canvas size inference from the geometry hints declared in SVG markup."""

from __future__ import annotations

import math
import re
from typing import Optional

from .base import DEFAULT_CANVAS, CanvasSize

_VIEWBOX_RE = re.compile(r"""viewBox\s*=\s*["']([^"']+)["']""")
_WIDTH_RE = re.compile(r"""(?<![\w-])width\s*=\s*["']\s*(\d+)""")
_HEIGHT_RE = re.compile(r"""(?<![\w-])height\s*=\s*["']\s*(\d+)""")
_SEPARATOR_RE = re.compile(r"[\s,]+")


def _positive_ceil(token: str) -> Optional[int]:
    try:
        value = float(token)
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return math.ceil(value)


def _int_attribute(pattern: re.Pattern[str], markup: str) -> Optional[int]:
    match = pattern.search(markup)
    if not match:
        return None
    try:
        value = int(match.group(1))
    except ValueError:
        return None
    return value if value > 0 else None


def resolve_canvas(markup: str, default: CanvasSize = DEFAULT_CANVAS) -> CanvasSize:
    """Return the raster canvas for ``markup``.

    The ``viewBox`` wins when present; its third and fourth numbers become
    width and height. Without one, integer ``width``/``height`` attributes are
    used. Any axis that cannot be resolved to a positive number takes the
    value from ``default``. Never raises on malformed input.
    """

    viewbox = _VIEWBOX_RE.search(markup)
    if viewbox:
        parts = [part for part in _SEPARATOR_RE.split(viewbox.group(1).strip()) if part]
        width = _positive_ceil(parts[2]) if len(parts) > 2 else None
        height = _positive_ceil(parts[3]) if len(parts) > 3 else None
    else:
        width = _int_attribute(_WIDTH_RE, markup)
        height = _int_attribute(_HEIGHT_RE, markup)

    return CanvasSize(width=width or default.width, height=height or default.height)
