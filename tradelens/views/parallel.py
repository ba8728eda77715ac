"""Parallel coordinates over supplier, recipient, year and value."""

import logging

from tradelens.errors import RenderError
from tradelens.layout.parallel import DEFAULT_DIMENSIONS, AxisScale, Polyline, parallel_layout
from tradelens.models import ModalContent, TooltipContent, TradeRecord
from tradelens.normalizer.nested import NestedNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scene import LineMark, Scene, TextMark
from tradelens.views.base import BaseView, fmt_value

logger = logging.getLogger(__name__)


class ParallelView(BaseView):
    """Top-N recipients across every year unless a year is selected."""
    kind = "parallel"

    @property
    def size(self) -> tuple[float, float]:
        return float(self.config.parallel.width), float(self.config.parallel.height)

    def make_normalizer(self) -> NestedNormalizer:
        return NestedNormalizer(config=self.config.normalizer)

    def filter_year(self) -> int | None:
        return None

    def define_derived(self, graph: DerivedGraph) -> None:
        graph.define("layout", self._layout, ("filtered",))

    def _layout(self, records: list[TradeRecord]) -> tuple[list[AxisScale], list[Polyline]]:
        return parallel_layout(records, DEFAULT_DIMENSIONS, self.config.parallel)

    def _line(self, entity_id: str) -> Polyline | None:
        _, lines = self.graph.get("layout")
        for line in lines:
            if line.id == entity_id:
                return line
        return None

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        line = self._line(entity_id)
        if line is None:
            return None
        r = line.record
        return TooltipContent(entity_id=entity_id, lines=[
            f"Supplier: {r.supplier}",
            f"Recipient: {r.recipient}",
            f"Year: {r.year}",
            f"Value: {fmt_value(r.value)}",
        ])

    def detail_for(self, entity_id: str) -> ModalContent | None:
        line = self._line(entity_id)
        if line is None or line.record.recipient is None:
            return None
        return super().detail_for(line.record.recipient)

    def build_scene(self) -> Scene:
        state = self.require_state()
        axes, lines = self.graph.get("layout")
        if not lines or not any(line.record.value > 0 for line in lines):
            raise RenderError(f"No flows for year={state.selected_year}")
        w, h = self.size
        m = self.config.parallel.margin
        color = self.scales.categorical(dict.fromkeys(line.key for line in lines))

        scene = Scene(w, h, title=f"Top {self.config.parallel.top_n} Recipients of Arms Trade by Supplier")
        scene.add(TextMark(x=w / 2, y=m / 2, text=scene.title, size=18.0))
        for line in lines:
            scene.add(LineMark(
                entity_id=line.id, points=line.points,
                stroke=color(line.key), stroke_width=1.5, opacity=0.7,
            ))
        for axis in axes:
            scene.add(LineMark(points=((axis.x, m), (axis.x, h - m)), stroke="#000000"))
            scene.add(TextMark(x=axis.x, y=h - m / 3, text=axis.dimension.name, size=12.0))
            for tick in axis.ticks:
                y = axis.scale(tick)
                if y is None:
                    continue
                label = fmt_value(tick) if isinstance(tick, (int, float)) else str(tick)
                scene.add(TextMark(x=axis.x - 6, y=y + 4, text=label, size=9.0, anchor="end"))
        logger.info("%s: %d axes, %d lines", self.view_id, len(axes), len(lines))
        return scene
