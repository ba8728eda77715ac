"""Tooltip placement and the tooltip surface."""

import logging
from dataclasses import dataclass

from tradelens.config import TooltipConfig
from tradelens.models import TooltipContent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains_point(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def contains_rect(self, other: "Rect", eps: float = 1e-9) -> bool:
        return (
            other.x >= self.x - eps and other.y >= self.y - eps
            and other.right <= self.right + eps and other.bottom <= self.bottom + eps
        )


def _axis(cursor: float, offset: float, size: float, lo: float, hi: float) -> float:
    pos = cursor + offset
    if pos + size > hi:
        pos = cursor - offset - size
    # clamp; when the tooltip is larger than the container pin it to the start
    return max(lo, min(pos, hi - size))


def place_tooltip(
    cursor: tuple[float, float],
    size: tuple[float, float],
    container: Rect,
    offset: tuple[float, float] = (15.0, 15.0),
) -> Rect:
    """Tooltip rect near the cursor: offset, flip on overflow, then clamp."""
    w, h = size
    x = _axis(cursor[0], offset[0], w, container.x, container.right)
    y = _axis(cursor[1], offset[1], h, container.y, container.bottom)
    return Rect(x, y, w, h)


class TooltipSurface:
    """The single tooltip of a render session.

    ``owner`` is the view currently showing content; another view's
    ``hide`` does not clear it.
    """

    def __init__(self, container: Rect, config: TooltipConfig | None = None) -> None:
        self.config = config or TooltipConfig()
        self.container = container
        self.content: TooltipContent | None = None
        self.rect: Rect | None = None
        self.owner: str | None = None

    @property
    def visible(self) -> bool:
        return self.content is not None

    def _place(self, cursor: tuple[float, float]) -> Rect:
        return place_tooltip(
            cursor,
            (self.config.width, self.config.height),
            self.container,
            (self.config.offset_x, self.config.offset_y),
        )

    def show(self, content: TooltipContent, cursor: tuple[float, float], owner: str | None = None) -> Rect:
        self.content = content
        self.owner = owner
        self.rect = self._place(cursor)
        return self.rect

    def move(self, cursor: tuple[float, float]) -> Rect | None:
        if not self.visible:
            return None
        self.rect = self._place(cursor)
        return self.rect

    def hide(self, owner: str | None = None) -> None:
        if owner is not None and self.owner is not None and owner != self.owner:
            return
        self.content = None
        self.rect = None
        self.owner = None
