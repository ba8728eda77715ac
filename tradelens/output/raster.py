"""Rasterize a Scene to PNG with Pillow.

Paths are drawn from their ``rings`` outlines, so a PathMark without rings
is skipped here even though it still appears in SVG output.
"""

import logging
from pathlib import Path

from PIL import Image, ImageColor, ImageDraw

from tradelens.scene import CircleMark, LineMark, Mark, PathMark, RectMark, Scene, TextMark

logger = logging.getLogger(__name__)

RGBA = tuple[int, int, int, int]


def _rgba(color: str | None, opacity: float) -> RGBA | None:
    if not color or color == "none":
        return None
    r, g, b = ImageColor.getrgb(color)[:3]
    return r, g, b, round(255 * max(0.0, min(1.0, opacity)))


def _draw_mark(draw: ImageDraw.ImageDraw, mark: Mark) -> None:
    fill = _rgba(mark.fill, mark.opacity)
    outline = _rgba(mark.stroke, mark.opacity)
    width = max(1, round(mark.stroke_width)) if outline else 0

    if isinstance(mark, CircleMark):
        if mark.r <= 0:
            return
        box = [(mark.cx - mark.r, mark.cy - mark.r), (mark.cx + mark.r, mark.cy + mark.r)]
        draw.ellipse(box, fill=fill, outline=outline, width=width)
    elif isinstance(mark, RectMark):
        if mark.width <= 0 or mark.height <= 0:
            return
        box = [(mark.x, mark.y), (mark.x + mark.width, mark.y + mark.height)]
        draw.rectangle(box, fill=fill, outline=outline, width=width)
    elif isinstance(mark, PathMark):
        for ring in mark.rings:
            if len(ring) >= 3:
                draw.polygon(list(ring), fill=fill, outline=outline, width=width)
    elif isinstance(mark, LineMark):
        if outline and len(mark.points) >= 2:
            draw.line(list(mark.points), fill=outline, width=width)
    elif isinstance(mark, TextMark):
        bbox = draw.textbbox((0, 0), mark.text)
        tw = bbox[2] - bbox[0]
        x = mark.x - {"start": 0, "middle": tw / 2, "end": tw}.get(mark.anchor, tw / 2)
        draw.text((x, mark.y - (bbox[3] - bbox[1])), mark.text, fill=fill or (51, 51, 51, 255))
    else:
        raise TypeError(f"Unsupported mark: {type(mark).__name__}")


def render_image(scene: Scene) -> Image.Image:
    img = Image.new("RGBA", (max(1, round(scene.width)), max(1, round(scene.height))), scene.background)
    draw = ImageDraw.Draw(img, "RGBA")
    for mark in scene.marks:
        _draw_mark(draw, mark)
    return img


def write_png(scene: Scene, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    render_image(scene).save(str(path))
    logger.info("Wrote %s (%d marks)", path, len(scene.marks))
    return path
