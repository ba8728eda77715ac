"""Treemap of the top arms companies by revenue, grouped by country."""

import logging
from typing import Any

from tradelens.errors import RenderError
from tradelens.layout.hierarchy import group_records, top_n_leaves
from tradelens.layout.treemap import TreemapCell, treemap
from tradelens.models import HierarchyNode, ModalContent, TooltipContent, TradeRecord
from tradelens.normalizer.tabular import WideTableNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scene import RectMark, Scene, TextMark
from tradelens.views.base import BaseView, fmt_value

logger = logging.getLogger(__name__)

TITLE_HEIGHT = 60.0


class TreemapView(BaseView):
    """Expects one row per company with ``Arms Revenue <year>`` columns."""
    kind = "treemap"

    def __init__(
        self,
        *args: Any,
        company_column: str = "Company",
        country_column: str = "Country",
        year_pattern: str = r"^Arms Revenue (\d{4})$",
        **kwargs: Any,
    ) -> None:
        self.company_column = company_column
        self.country_column = country_column
        self.year_pattern = year_pattern
        super().__init__(*args, **kwargs)

    @property
    def size(self) -> tuple[float, float]:
        return float(self.config.treemap.width), float(self.config.treemap.height)

    def make_normalizer(self) -> WideTableNormalizer:
        return WideTableNormalizer(
            entity_column=self.country_column,
            category_column=self.company_column,
            year_pattern=self.year_pattern,
            config=self.config.normalizer,
        )

    def define_derived(self, graph: DerivedGraph) -> None:
        graph.define("hierarchy", self._hierarchy, ("filtered",))
        graph.define("cells", lambda root: treemap(root, self.config.treemap, top=TITLE_HEIGHT), ("hierarchy",))

    def _hierarchy(self, records: list[TradeRecord]) -> HierarchyNode:
        root = group_records(records, ("supplier", "category"), root_name="Companies")
        return top_n_leaves(root, self.config.treemap.top_n)

    def _cell(self, entity_id: str) -> TreemapCell | None:
        for cell in self.graph.get("cells"):
            if cell.id == entity_id:
                return cell
        return None

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        cell = self._cell(entity_id)
        if cell is None:
            return None
        root: HierarchyNode = self.graph.get("hierarchy")
        share = cell.value / root.value * 100 if root.value else 0.0
        return TooltipContent(entity_id=entity_id, lines=[
            f"Company: {cell.name}",
            f"Country: {cell.parent_id.split('/')[-1] if cell.parent_id else ''}",
            f"Revenue: {fmt_value(cell.value)}",
            f"Share: {share:.1f}%",
        ])

    def detail_for(self, entity_id: str) -> ModalContent | None:
        # drill-down is by country; company cells map to their parent
        cell = self._cell(entity_id)
        if cell is not None and cell.is_leaf and cell.parent_id:
            entity_id = cell.parent_id.split("/")[-1]
        return super().detail_for(entity_id)

    def build_scene(self) -> Scene:
        state = self.require_state()
        root: HierarchyNode = self.graph.get("hierarchy")
        if root.value <= 0:
            raise RenderError(f"No company revenue for year={state.selected_year}")
        cells: list[TreemapCell] = self.graph.get("cells")
        w, h = self.size

        countries = [c.name for c in cells if c.depth == 1]
        color = self.scales.categorical(countries)
        scene = Scene(w, h, title=f"Top {self.config.treemap.top_n} Arms Companies by Revenue ({state.selected_year})")
        scene.add(TextMark(x=w / 2, y=20, text=scene.title, size=20.0))
        for cell in cells:
            if not cell.is_leaf or cell.depth == 0:
                continue
            country = cell.parent_id.split("/")[-1] if cell.parent_id else cell.name
            scene.add(RectMark(
                entity_id=cell.id, x=cell.x0, y=cell.y0, width=cell.width, height=cell.height,
                fill=color(country), stroke="#ffffff",
            ))
            if cell.width > 40 and cell.height > 14:
                scene.add(TextMark(x=cell.x0 + 4, y=cell.y0 + 14, text=cell.name, size=10.0, anchor="start"))
        logger.info("%s: %d company cells", self.view_id, sum(1 for c in cells if c.is_leaf))
        return scene
