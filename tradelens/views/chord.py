"""Chord diagram of supplier -> top recipient flows for one year."""

import logging
import math

from tradelens.errors import RenderError
from tradelens.layout.chord import ChordLayout, arc_path, build_chord_matrix, chord_layout, ribbon_path
from tradelens.models import TooltipContent, TradeRecord
from tradelens.normalizer.nested import NestedNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scene import PathMark, Scene, TextMark
from tradelens.views.base import BaseView, fmt_value

logger = logging.getLogger(__name__)

RING_WIDTH = 20.0
LABEL_MARGIN = 60.0
# arc samples per radian for hit-test outlines
SAMPLES_PER_RADIAN = 16


def _arc_points(r: float, a0: float, a1: float, center: tuple[float, float]) -> list[tuple[float, float]]:
    steps = max(2, int(abs(a1 - a0) * SAMPLES_PER_RADIAN))
    return [
        (center[0] + r * math.sin(a0 + (a1 - a0) * i / steps), center[1] - r * math.cos(a0 + (a1 - a0) * i / steps))
        for i in range(steps + 1)
    ]


class ChordView(BaseView):
    kind = "chord"

    @property
    def size(self) -> tuple[float, float]:
        s = float(self.config.parallel.chord_size)
        return s, s

    @property
    def radii(self) -> tuple[float, float]:
        outer = min(self.size) / 2 - LABEL_MARGIN
        return outer - RING_WIDTH, outer

    def make_normalizer(self) -> NestedNormalizer:
        return NestedNormalizer(config=self.config.normalizer)

    def define_derived(self, graph: DerivedGraph) -> None:
        graph.define("chords", self._layout, ("records", "year"))

    def _layout(self, records: list[TradeRecord], year: int | None) -> ChordLayout:
        cfg = self.config.parallel
        names, matrix = build_chord_matrix(records, year, cfg.chord_top_k)
        return chord_layout(names, matrix, cfg.chord_pad_angle)

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        layout: ChordLayout = self.graph.get("chords")
        for g in layout.groups:
            if g.name == entity_id:
                return TooltipContent(entity_id=entity_id, lines=[f"Country: {g.name}", f"Total: {fmt_value(g.value)}"])
        for c in layout.chords:
            s, t = layout.names[c.source.index], layout.names[c.target.index]
            if entity_id == f"{s}->{t}":
                lines = [f"{s} -> {t}: {fmt_value(c.source.value)}"]
                if c.target.value:
                    lines.append(f"{t} -> {s}: {fmt_value(c.target.value)}")
                return TooltipContent(entity_id=entity_id, lines=lines)
        return None

    def build_scene(self) -> Scene:
        state = self.require_state()
        layout: ChordLayout = self.graph.get("chords")
        if layout.empty:
            raise RenderError(f"No flows for year={state.selected_year}")
        w, h = self.size
        center = (w / 2, h / 2)
        inner, outer = self.radii
        color = self.scales.categorical(layout.names)

        scene = Scene(w, h, title=f"Arms flows ({state.selected_year})")
        for c in layout.chords:
            s, t = layout.names[c.source.index], layout.names[c.target.index]
            outline = (
                _arc_points(inner, c.source.start_angle, c.source.end_angle, center)
                + [center]
                + _arc_points(inner, c.target.start_angle, c.target.end_angle, center)
                + [center]
            )
            scene.add(PathMark(
                entity_id=f"{s}->{t}", d=ribbon_path(c, inner, center), rings=(tuple(outline),),
                fill=color(s), stroke="#333333", stroke_width=0.5, opacity=0.7,
            ))
        for g in layout.groups:
            if g.end_angle <= g.start_angle:
                continue
            outline = (
                _arc_points(outer, g.start_angle, g.end_angle, center)
                + _arc_points(inner, g.end_angle, g.start_angle, center)
            )
            scene.add(PathMark(
                entity_id=g.name, d=arc_path(g.start_angle, g.end_angle, inner, outer, center),
                rings=(tuple(outline),), fill=color(g.name), stroke="#333333", opacity=0.8,
            ))
            mid = (g.start_angle + g.end_angle) / 2
            lx = center[0] + (outer + 10) * math.sin(mid)
            ly = center[1] - (outer + 10) * math.cos(mid)
            scene.add(TextMark(x=lx, y=ly, text=g.name, size=10.0, anchor="start" if mid < math.pi else "end"))
        logger.info("%s: %d groups, %d chords", self.view_id, len(layout.groups), len(layout.chords))
        return scene
