"""HTML wrapper that gives the browser a fixed, non-scrolling canvas."""

from __future__ import annotations

from jinja2 import Template

from ..config import DEFAULT_FONT_STACK
from .base import CanvasSize

_PAGE_TEMPLATE = Template(
    """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    html, body {
      width: {{ width }}px;
      height: {{ height }}px;
      overflow: hidden;
      background: transparent;
      font-family: {{ font_stack }};
    }
    svg {
      display: block;
      width: {{ width }}px;
      height: {{ height }}px;
    }
  </style>
</head>
<body>
{{ markup }}
</body>
</html>
""",
    autoescape=False,
)


def build_document(markup: str, canvas: CanvasSize, font_stack: str = DEFAULT_FONT_STACK) -> str:
    """Embed ``markup`` verbatim in a page sized exactly to ``canvas``."""

    return _PAGE_TEMPLATE.render(
        width=canvas.width,
        height=canvas.height,
        font_stack=font_stack,
        markup=markup,
    )
