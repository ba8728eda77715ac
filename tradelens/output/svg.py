"""Serialize a Scene to standalone SVG."""

import logging
from pathlib import Path
from xml.sax.saxutils import escape, quoteattr

from tradelens.scene import CircleMark, LineMark, Mark, PathMark, RectMark, Scene, TextMark

logger = logging.getLogger(__name__)


def _num(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".")


def _paint(mark: Mark, default_fill: str = "none") -> str:
    attrs = [f"fill={quoteattr(mark.fill or default_fill)}"]
    if mark.stroke:
        attrs.append(f"stroke={quoteattr(mark.stroke)}")
        attrs.append(f'stroke-width="{_num(mark.stroke_width)}"')
    if mark.opacity < 1.0:
        attrs.append(f'opacity="{_num(mark.opacity)}"')
    if mark.entity_id is not None:
        attrs.append(f"data-id={quoteattr(mark.entity_id)}")
    return " ".join(attrs)


def mark_to_svg(mark: Mark) -> str:
    if isinstance(mark, CircleMark):
        return f'<circle cx="{_num(mark.cx)}" cy="{_num(mark.cy)}" r="{_num(mark.r)}" {_paint(mark)}/>'
    if isinstance(mark, RectMark):
        return (
            f'<rect x="{_num(mark.x)}" y="{_num(mark.y)}" '
            f'width="{_num(mark.width)}" height="{_num(mark.height)}" {_paint(mark)}/>'
        )
    if isinstance(mark, PathMark):
        return f'<path d={quoteattr(mark.d)} fill-rule="evenodd" {_paint(mark)}/>'
    if isinstance(mark, LineMark):
        pts = " ".join(f"{_num(x)},{_num(y)}" for x, y in mark.points)
        return f'<polyline points="{pts}" {_paint(mark)}/>'
    if isinstance(mark, TextMark):
        return (
            f'<text x="{_num(mark.x)}" y="{_num(mark.y)}" font-size="{_num(mark.size)}" '
            f'text-anchor="{mark.anchor}" {_paint(mark, "#333333")}>{escape(mark.text)}</text>'
        )
    raise TypeError(f"Unsupported mark: {type(mark).__name__}")


def render_svg(scene: Scene) -> str:
    w, h = _num(scene.width), _num(scene.height)
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}">',
    ]
    if scene.title:
        parts.append(f"<title>{escape(scene.title)}</title>")
    parts.append(f'<rect width="100%" height="100%" fill={quoteattr(scene.background)}/>')
    parts.extend(mark_to_svg(m) for m in scene.marks)
    parts.append("</svg>")
    return "\n".join(parts) + "\n"


def write_svg(scene: Scene, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_svg(scene))
    logger.info("Wrote %s (%d marks)", path, len(scene.marks))
    return path
