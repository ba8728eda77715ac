"""Choropleth map with proportional symbols at country centroids."""

import abc
import logging
from collections import defaultdict
from collections.abc import Callable, Mapping
from typing import Any

from tradelens.errors import DataShapeError, RenderError
from tradelens.geo.paths import CountryShape, centroid, features_to_shapes, shape_path
from tradelens.geo.projection import Projection, ProjectionBuilder
from tradelens.geo.zoom import ZoomTransform
from tradelens.models import TooltipContent, TradeRecord
from tradelens.normalizer.aliases import AliasTable
from tradelens.normalizer.tabular import WEAPON_TRANSFERS, ColumnSpec, TabularNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scales import FALLBACK_COLOR
from tradelens.scene import CircleMark, PathMark, Scene, TextMark
from tradelens.views.base import BaseView, fmt_value

logger = logging.getLogger(__name__)


def recipient_totals(records: list[TradeRecord]) -> dict[str, float]:
    """Imported quantity per recipient; missing values do not count."""
    totals: dict[str, float] = defaultdict(float)
    for r in records:
        if r.recipient is None or r.value_missing:
            continue
        totals[r.recipient] += r.value
    return dict(totals)


def mapped_recipients(records: list[TradeRecord]) -> frozenset[str]:
    return frozenset(r.recipient for r in records if r.recipient is not None and r.recipient_mapped)


class GeoView(BaseView):
    """A view drawn over world country shapes.

    Owns the alias table its normalizer resolves against. Installing a world
    registers the feature names as known countries and re-normalizes the
    current payload, so ``*_mapped`` flags always reflect the installed world.
    """
    zoomable = True

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.aliases = AliasTable(extra=self.config.normalizer.aliases)

    def define_derived(self, graph: DerivedGraph) -> None:
        graph.set_input("world", None)
        graph.define("shapes", self._shapes, ("world",))
        graph.define("projection", self.build_projection, ())
        graph.define("centroids", self._centroids, ("shapes", "projection"))

    @abc.abstractmethod
    def build_projection(self) -> Projection:
        ...

    def set_world(self, collection: Mapping[str, Any] | list[Mapping[str, Any]]) -> None:
        """Install country boundaries. Feature names become known identities."""
        shapes = features_to_shapes(collection)
        self.aliases.register(s.name for s in shapes)
        self.graph.set_input("world", collection)
        logger.debug("%s: %d country shapes", self.view_id, len(shapes))
        if self.payload is not None:
            self.set_payload(self.payload)

    def _shapes(self, world: Any) -> dict[str, CountryShape]:
        if world is None:
            return {}
        try:
            shapes = features_to_shapes(world)
        except DataShapeError as e:
            logger.warning("World topology unusable: %r", e)
            return {}
        return {self.aliases.canonical(s.name): s for s in shapes}

    def _centroids(self, shapes: dict[str, CountryShape], projection: Projection) -> dict[str, tuple[float, float]]:
        return {name: projection.project(centroid(shape)) for name, shape in shapes.items()}

    def country_marks(
        self,
        scene: Scene,
        fill: Callable[[str], str],
        stroke: str = "#333333",
        stroke_width: float = 0.5,
        interactive: bool = True,
    ) -> int:
        """Draw every country shape under the current zoom; ``fill(name)`` picks the color."""
        state = self.require_state()
        shapes: dict[str, CountryShape] = self.graph.get("shapes")
        projection: Projection = self.graph.get("projection")
        t: ZoomTransform = state.zoom_transform
        for name, shape in shapes.items():
            rings = tuple(
                tuple(t.apply(projection.project(p)) for p in ring)
                for ring in shape.rings
            )
            scene.add(PathMark(
                entity_id=name if interactive else None,
                d=shape_path(shape, projection, t),
                rings=rings,
                fill=fill(name),
                stroke=stroke,
                stroke_width=stroke_width,
            ))
        return len(shapes)


class MapView(GeoView):
    kind = "map"

    def __init__(self, *args: Any, columns: ColumnSpec = WEAPON_TRANSFERS, **kwargs: Any) -> None:
        self.columns = columns
        super().__init__(*args, **kwargs)

    @property
    def size(self) -> tuple[float, float]:
        return float(self.config.map.width), float(self.config.map.height)

    @property
    def zoom_extent(self) -> tuple[float, float]:
        return self.config.map.zoom_extent

    def make_normalizer(self) -> TabularNormalizer:
        return TabularNormalizer(self.columns, config=self.config.normalizer, aliases=self.aliases)

    def define_derived(self, graph: DerivedGraph) -> None:
        super().define_derived(graph)
        graph.define("totals", recipient_totals, ("filtered",))
        graph.define("placeable", mapped_recipients, ("filtered",))

    def build_projection(self) -> Projection:
        cfg = self.config.map
        return ProjectionBuilder(center=cfg.center, scale=cfg.scale, size=(cfg.width, cfg.height)).build()

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        totals = self.graph.get("totals")
        lines = [f"Country: {entity_id}"]
        if entity_id in totals:
            lines.append(f"Quantity: {fmt_value(totals[entity_id])}")
        else:
            lines.append("No data")
        return TooltipContent(entity_id=entity_id, lines=lines)

    def build_scene(self) -> Scene:
        state = self.require_state()
        totals = self.graph.get("totals")
        if not totals or not any(v > 0 for v in totals.values()):
            raise RenderError(f"No imports for year={state.selected_year} category={state.selected_category}")

        placeable: frozenset[str] = self.graph.get("placeable")
        centroids = self.graph.get("centroids")
        t: ZoomTransform = state.zoom_transform
        w, h = self.size

        fill = self.scales.sequential(totals.values())
        symbol = self.scales.symbol(
            totals.values(),
            (self.config.map.symbol_min_radius, self.config.map.symbol_max_radius),
        )

        year_label = state.selected_year if state.selected_year is not None else "all years"
        scene = Scene(w, h, title=f"Arms imports ({year_label})")
        drawn = self.country_marks(scene, lambda name: fill(totals[name]) if totals.get(name) else FALLBACK_COLOR)

        # symbols only for recipients mapped to a known country with a centroid
        placed = 0
        for name, value in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0])):
            if value <= 0 or name not in placeable or name not in centroids:
                continue
            cx, cy = t.apply(centroids[name])
            scene.add(CircleMark(
                entity_id=name, cx=cx, cy=cy, r=symbol(value) * t.k,
                fill="#e31a1c", stroke="#ffffff", opacity=0.6,
            ))
            placed += 1

        if scene.title:
            scene.add(TextMark(x=w / 2, y=20, text=scene.title, size=16.0))
        logger.info("%s: %d countries, %d symbols", self.view_id, drawn, placed)
        return scene
