"""Drawable scene: ordered, positioned primitives in screen coordinates.

Views produce a Scene; output writers serialize it and the interaction
controller hit-tests it. Marks carrying an ``entity_id`` are interactive.
"""

import math
from dataclasses import dataclass, field
from functools import cached_property

from shapely.errors import GEOSException
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon
from shapely.prepared import PreparedGeometry, prep

NO_DATA_MESSAGE = "No data for this selection"

Point = tuple[float, float]


@dataclass(kw_only=True)
class Mark:
    entity_id: str | None = None
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float = 1.0
    opacity: float = 1.0

    def hit(self, x: float, y: float) -> bool:
        return False


@dataclass(kw_only=True)
class CircleMark(Mark):
    cx: float
    cy: float
    r: float

    def hit(self, x: float, y: float) -> bool:
        return (x - self.cx) ** 2 + (y - self.cy) ** 2 <= self.r ** 2


@dataclass(kw_only=True)
class RectMark(Mark):
    x: float
    y: float
    width: float
    height: float

    def hit(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


def _outline(ring: tuple[Point, ...]) -> PreparedGeometry | None:
    if len(ring) < 3:
        return None
    try:
        return prep(Polygon(ring))
    except (ValueError, GEOSException):
        return None


@dataclass(kw_only=True)
class PathMark(Mark):
    """An SVG path. ``rings`` holds the screen-space outline used for hit tests."""
    d: str
    rings: tuple[tuple[Point, ...], ...] = ()

    @cached_property
    def outlines(self) -> list[PreparedGeometry]:
        return [o for o in map(_outline, self.rings) if o is not None]

    def hit(self, x: float, y: float) -> bool:
        # even-odd across all rings so holes do not count
        point = ShapelyPoint(x, y)
        return sum(o.contains(point) for o in self.outlines) % 2 == 1


def _segment_distance(p: Point, a: Point, b: Point) -> float:
    ax, ay = a
    dx, dy = b[0] - ax, b[1] - ay
    l2 = dx * dx + dy * dy
    t = 0.0 if l2 == 0 else max(0.0, min(1.0, ((p[0] - ax) * dx + (p[1] - ay) * dy) / l2))
    return math.hypot(p[0] - (ax + t * dx), p[1] - (ay + t * dy))


@dataclass(kw_only=True)
class LineMark(Mark):
    """An open polyline."""
    points: tuple[Point, ...]
    tolerance: float = 3.0

    def hit(self, x: float, y: float) -> bool:
        reach = max(self.tolerance, self.stroke_width / 2)
        return any(
            _segment_distance((x, y), a, b) <= reach
            for a, b in zip(self.points, self.points[1:])
        )


@dataclass(kw_only=True)
class TextMark(Mark):
    x: float
    y: float
    text: str
    size: float = 12.0
    anchor: str = "middle"
    fill: str | None = "#333333"


@dataclass
class Scene:
    width: float
    height: float
    marks: list[Mark] = field(default_factory=list)
    title: str | None = None
    background: str = "#ffffff"

    def add(self, mark: Mark) -> Mark:
        self.marks.append(mark)
        return mark

    def hit_test(self, x: float, y: float) -> Mark | None:
        """Topmost interactive mark under the point."""
        for mark in reversed(self.marks):
            if mark.entity_id is not None and mark.hit(x, y):
                return mark
        return None

    def find(self, entity_id: str) -> list[Mark]:
        return [m for m in self.marks if m.entity_id == entity_id]

    @property
    def is_placeholder(self) -> bool:
        return False


@dataclass
class Placeholder(Scene):
    """Stand-in scene when the selection has nothing drawable."""
    message: str = NO_DATA_MESSAGE

    def __post_init__(self) -> None:
        if not self.marks:
            self.marks.append(TextMark(x=self.width / 2, y=self.height / 2, text=self.message, size=16.0))

    @property
    def is_placeholder(self) -> bool:
        return True
