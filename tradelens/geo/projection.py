"""Mercator projection from (longitude, latitude) degrees to screen pixels."""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LonLat = tuple[float, float]
Point = tuple[float, float]

# Latitude at which the Mercator square closes
MAX_LATITUDE = math.degrees(2 * math.atan(math.exp(math.pi)) - math.pi / 2)


def _mercator_raw(lon: float, lat: float) -> Point:
    lam = math.radians(lon)
    phi = math.radians(max(-MAX_LATITUDE, min(MAX_LATITUDE, lat)))
    return lam, math.log(math.tan((math.pi / 2 + phi) / 2))


@dataclass(frozen=True)
class Projection:
    """A pure (lon, lat) -> (x, y) mapping.

    ``center`` is the geographic point drawn at ``translate``; ``scale`` is
    pixels per radian. The y axis points down, as on screen.
    """
    center: LonLat = (0.0, 0.0)
    scale: float = 150.0
    translate: Point = (480.0, 250.0)

    @property
    def _offset(self) -> Point:
        cx, cy = _mercator_raw(*self.center)
        return (
            self.translate[0] - self.scale * cx,
            self.translate[1] + self.scale * cy,
        )

    def project(self, lonlat: LonLat) -> Point:
        rx, ry = _mercator_raw(lonlat[0], lonlat[1])
        dx, dy = self._offset
        return dx + self.scale * rx, dy - self.scale * ry

    def invert(self, point: Point) -> LonLat:
        dx, dy = self._offset
        rx = (point[0] - dx) / self.scale
        ry = (dy - point[1]) / self.scale
        lat = 2 * math.atan(math.exp(ry)) - math.pi / 2
        return math.degrees(rx), math.degrees(lat)

    __call__ = project


class ProjectionBuilder:
    """Declared projection parameters; ``build()`` returns the mapping.

    >>> ProjectionBuilder(center=(0, 20), scale=130, size=(1220, 550)).build()
    """

    def __init__(
        self,
        center: LonLat = (0.0, 0.0),
        scale: float = 150.0,
        size: tuple[float, float] = (960.0, 500.0),
        translate: Point | None = None,
    ) -> None:
        self.center = center
        self.scale = scale
        self.size = size
        self.translate = translate if translate is not None else (size[0] / 2, size[1] / 2)

    def build(self) -> Projection:
        return Projection(center=tuple(self.center), scale=self.scale, translate=tuple(self.translate))

    def fit(self, rings: Iterable[Iterable[LonLat]], margin: float = 0.0) -> Projection:
        """Choose scale and translate so all ring points fit inside size minus margin."""
        unit = Projection(center=tuple(self.center), scale=150.0, translate=(0.0, 0.0))
        xs: list[float] = []
        ys: list[float] = []
        for ring in rings:
            for lonlat in ring:
                x, y = unit.project(lonlat)
                xs.append(x)
                ys.append(y)
        if not xs:
            logger.debug("fit() called with no points; keeping declared scale")
            return self.build()

        w = self.size[0] - 2 * margin
        h = self.size[1] - 2 * margin
        bw = max(xs) - min(xs)
        bh = max(ys) - min(ys)
        if bw <= 0 and bh <= 0:
            return self.build()
        k = min(w / bw if bw > 0 else math.inf, h / bh if bh > 0 else math.inf)
        tx = margin + (w - k * (max(xs) + min(xs))) / 2
        ty = margin + (h - k * (max(ys) + min(ys))) / 2
        return Projection(center=tuple(self.center), scale=150.0 * k, translate=(tx, ty))
