"""Country boundary paths and centroids.

Consumes already-extracted polygon data: GeoJSON-like features whose
``properties.name`` identifies the country. Decoding the world topology into
features is the topology collaborator's job.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import cached_property
from typing import Any

from shapely import geometry as sgeom
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry

from tradelens.errors import DataShapeError
from tradelens.geo.projection import LonLat, Projection
from tradelens.geo.zoom import ZoomTransform

logger = logging.getLogger(__name__)

Ring = tuple[LonLat, ...]
Polygon = tuple[Ring, ...]  # outer ring first, then holes


@dataclass(frozen=True)
class CountryShape:
    name: str
    polygons: tuple[Polygon, ...]

    @property
    def rings(self) -> list[Ring]:
        return [ring for poly in self.polygons for ring in poly]

    @cached_property
    def parts(self) -> list[sgeom.Polygon]:
        """The polygons as shapely geometry; rings too short to enclose anything are dropped."""
        parts = []
        for shell, *holes in self.polygons:
            try:
                parts.append(sgeom.Polygon(shell, [h for h in holes if len(h) >= 3]))
            except (ValueError, GEOSException):
                logger.debug("Degenerate ring in %s", self.name)
        return parts

    @classmethod
    def from_geometry(cls, name: str, geom: BaseGeometry) -> "CountryShape":
        polys = geom.geoms if geom.geom_type == "MultiPolygon" else [geom]
        return cls(name=name, polygons=tuple(
            (_ring(p.exterior.coords), *(_ring(i.coords) for i in p.interiors))
            for p in polys
        ))


def _ring(coords: Any) -> Ring:
    return tuple((float(c[0]), float(c[1])) for c in coords)


def features_to_shapes(collection: Mapping[str, Any] | list[Mapping[str, Any]]) -> list[CountryShape]:
    """Convert a feature collection into CountryShapes.

    Features without a name, or whose geometry is not a (multi)polygon shapely
    can read, are skipped with a debug log. Raises DataShapeError when there
    are no features at all.
    """
    if isinstance(collection, Mapping):
        features = collection.get("features")
    else:
        features = collection
    if not features:
        raise DataShapeError("Topology has no features", field="features")

    shapes: list[CountryShape] = []
    for i, feature in enumerate(features):
        name = (feature.get("properties") or {}).get("name")
        if not name:
            logger.debug("Skipping unnamed feature #%d", i)
            continue
        gtype = (feature.get("geometry") or {}).get("type")
        if gtype not in ("Polygon", "MultiPolygon"):
            logger.debug("Skipping feature %s with geometry %r", name, gtype)
            continue
        try:
            geom = sgeom.shape(feature["geometry"])
        except (ValueError, TypeError, GEOSException) as e:
            logger.debug("Skipping feature %s: %s", name, e)
            continue
        shapes.append(CountryShape.from_geometry(name, geom))
    return shapes


def ring_path(
    ring: Ring,
    projection: Projection,
    transform: ZoomTransform | None = None,
) -> str:
    """Closed SVG path for one ring."""
    if not ring:
        return ""
    parts = []
    for i, lonlat in enumerate(ring):
        x, y = projection.project(lonlat)
        if transform is not None:
            x, y = transform.apply((x, y))
        parts.append(f"{'M' if i == 0 else 'L'}{x:.2f},{y:.2f}")
    return "".join(parts) + "Z"


def shape_path(
    shape: CountryShape,
    projection: Projection,
    transform: ZoomTransform | None = None,
) -> str:
    return "".join(ring_path(r, projection, transform) for r in shape.rings)


def centroid(shape: CountryShape) -> LonLat:
    """Planar centroid in lon/lat of the shape's largest polygon; holes subtract.

    Outlying islands therefore do not pull the point off the mainland.
    Zero-area shapes fall back to the centroid of their points.
    """
    parts = [p for p in shape.parts if p.area > 0]
    if parts:
        c = max(parts, key=lambda p: p.area).centroid
        return c.x, c.y
    points = [p for ring in shape.rings for p in ring]
    if not points:
        raise DataShapeError(f"Shape {shape.name!r} has no points", field="geometry")
    c = sgeom.MultiPoint(points).centroid
    return c.x, c.y
