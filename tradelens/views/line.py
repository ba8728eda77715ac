"""Time-series line chart of yearly export or import totals per country."""

import logging
from collections import defaultdict
from typing import Any

from tradelens.errors import RenderError
from tradelens.interaction.modal import record_detail
from tradelens.interaction.session import RenderSession
from tradelens.layout.network import top_k
from tradelens.models import ModalContent, TooltipContent, TradeRecord
from tradelens.normalizer.base import NormalizationResult
from tradelens.normalizer.tabular import WideTableNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scene import CircleMark, LineMark, Scene, TextMark
from tradelens.views.base import BaseView, fmt_value

logger = logging.getLogger(__name__)

Series = dict[str, list[tuple[int, float]]]

TRADES = {
    # trade -> (entity column, record role)
    "export": ("supplier", "supplier"),
    "import": ("Recipient", "recipient"),
}


def yearly_series(records: list[TradeRecord], role: str, top_n: int) -> Series:
    """Per-year totals for the ``top_n`` countries by all-time total.

    Missing values count as zero.
    """
    by_year: dict[str, dict[int, float]] = defaultdict(lambda: defaultdict(float))
    for r in records:
        name = r.supplier if role == "supplier" else r.recipient
        if not name:
            continue
        by_year[name][r.year] += 0.0 if r.value_missing else r.value
    totals = {name: sum(years.values()) for name, years in by_year.items()}
    return {
        name: sorted(by_year[name].items())
        for name, _ in top_k(totals, top_n)
    }


def _point_id(country: str, year: int) -> str:
    return f"{country}@{year}"


class LineChartView(BaseView):
    """One line per selected country across a year range.

    ``trade`` picks the supplier table (exports) or the recipient table
    (imports). The selection lives in ``ViewState.selected_entities``; until
    the user toggles anything, the configured default countries that made
    the top list are shown.
    """
    kind = "line"

    def __init__(self, *args: Any, trade: str = "export", **kwargs: Any) -> None:
        if trade not in TRADES:
            raise ValueError(f"trade must be one of {sorted(TRADES)}")
        self.trade = trade
        super().__init__(*args, **kwargs)

    @property
    def size(self) -> tuple[float, float]:
        return float(self.config.line.width), float(self.config.line.height)

    @property
    def role(self) -> str:
        return TRADES[self.trade][1]

    def make_normalizer(self) -> WideTableNormalizer:
        column, role = TRADES[self.trade]
        return WideTableNormalizer(
            entity_column=column,
            role=role,
            value_scale=self.config.line.value_scale,
            config=self.config.normalizer,
        )

    def filter_year(self) -> int | None:
        return None

    def define_derived(self, graph: DerivedGraph) -> None:
        graph.set_input("selection", None)
        graph.set_input("year_range", None)
        graph.define("series", lambda records: yearly_series(records, self.role, self.config.line.top_n), ("filtered",))
        graph.define("visible", self._visible, ("series", "selection", "year_range"))

    def default_selection(self, series: Series) -> frozenset[str]:
        defaults = self.config.line.default_exporters if self.trade == "export" else self.config.line.default_importers
        return frozenset(c for c in defaults if c in series)

    def _visible(
        self,
        series: Series,
        selection: frozenset[str] | None,
        year_range: tuple[int, int] | None,
    ) -> Series:
        chosen = self.default_selection(series) if selection is None else selection
        lo, hi = year_range or (self.config.normalizer.min_year, self.config.normalizer.max_year)
        visible = {}
        for name, points in series.items():
            if name not in chosen:
                continue
            in_range = [(year, value) for year, value in points if lo <= year <= hi]
            if in_range:
                visible[name] = in_range
        return visible

    @property
    def selection(self) -> frozenset[str]:
        selection = self.graph.get("selection")
        return self.default_selection(self.graph.get("series")) if selection is None else selection

    def mount(self, session: RenderSession) -> None:
        super().mount(session)
        self.require_state().selected_entities = set(self.selection)

    def set_normalized(self, result: NormalizationResult) -> NormalizationResult:
        # a new table starts from the default selection again
        self.graph.set_input("selection", None)
        result = super().set_normalized(result)
        if self.state is not None:
            self.state.selected_entities = set(self.selection)
        return result

    def toggle_country(self, country: str) -> None:
        self.graph.set_input("selection", self.selection ^ {country})
        if self.state is not None:
            self.state.selected_entities = set(self.selection)
        self.on_selection_changed()

    def select_year_range(self, start: int, end: int) -> None:
        if end < start:
            start, end = end, start
        self.graph.set_input("year_range", (start, end))
        self.on_selection_changed()

    def reset(self) -> None:
        self.graph.set_input("selection", None)
        self.graph.set_input("year_range", None)
        if self.state is not None:
            self.state.selected_entities = set(self.selection)
        self.on_selection_changed()

    def _point(self, entity_id: str) -> tuple[str, int, float] | None:
        country, _, year = entity_id.rpartition("@")
        for y, value in self.graph.get("visible").get(country, ()):
            if str(y) == year:
                return country, y, value
        return None

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        point = self._point(entity_id)
        if point is not None:
            country, year, value = point
            return TooltipContent(entity_id=entity_id, lines=[country, f"Year: {year}", f"Value: {value:.2f} Billion"])
        points = self.graph.get("visible").get(entity_id)
        if not points:
            return None
        peak_year, peak = max(points, key=lambda p: (p[1], -p[0]))
        return TooltipContent(entity_id=entity_id, lines=[
            entity_id,
            f"Total: {sum(v for _, v in points):.2f} Billion",
            f"Peak: {peak:.2f} Billion ({peak_year})",
        ])

    def detail_for(self, entity_id: str) -> ModalContent | None:
        point = self._point(entity_id)
        if point is None:
            return super().detail_for(entity_id)
        country, year, _ = point
        return record_detail(country, self.records, year, self.graph.get("category"))

    def build_scene(self) -> Scene:
        self.require_state()
        cfg = self.config.line
        visible: Series = self.graph.get("visible")
        values = [v for points in visible.values() for _, v in points]
        if not values or max(values) <= 0:
            raise RenderError(f"No {self.trade}s for the selected countries")

        w, h = self.size
        left, right = cfg.margin_left, w - cfg.margin_right
        top, bottom = cfg.margin_top, h - cfg.margin_bottom
        lo, hi = self.graph.get("year_range") or (
            min(y for points in visible.values() for y, _ in points),
            max(y for points in visible.values() for y, _ in points),
        )
        x = self.scales.position([lo, hi], (left, right))
        y = self.scales.position([0.0, max(values)], (bottom, top))
        color = self.scales.categorical(visible)

        label = "Exports" if self.trade == "export" else "Imports"
        scene = Scene(w, h, title=f"Arms {label} by Country (Top {cfg.top_n}) Over Time")
        scene.add(TextMark(x=w / 2, y=top / 2, text=scene.title, size=20.0))

        # axes and ticks
        scene.add(LineMark(points=((left, bottom), (right, bottom)), stroke="#333333"))
        scene.add(LineMark(points=((left, top), (left, bottom)), stroke="#333333"))
        first_tick = lo + (-lo) % cfg.tick_years
        for year in range(first_tick, hi + 1, cfg.tick_years):
            scene.add(TextMark(x=x(year), y=bottom + 18, text=str(year), size=10.0))
        for value in (0.0, max(values) / 2, max(values)):
            scene.add(TextMark(x=left - 8, y=y(value) + 4, text=f"{value:.1f}B", size=10.0, anchor="end"))

        for country, points in visible.items():
            stroke = color(country)
            scene.add(LineMark(
                entity_id=country, points=tuple((x(yr), y(v)) for yr, v in points),
                stroke=stroke, stroke_width=cfg.stroke_width,
            ))
            for yr, v in points:
                scene.add(CircleMark(entity_id=_point_id(country, yr), cx=x(yr), cy=y(v), r=cfg.dot_radius, fill=stroke))
            scene.add(TextMark(
                x=right + 5, y=y(points[-1][1]) + 4, text=country, size=12.0, anchor="start", fill=stroke,
            ))

        logger.info("%s: %d series, years %d..%d", self.view_id, len(visible), lo, hi)
        return scene
