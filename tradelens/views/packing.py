"""Zoomable circle packing: supplier -> category export volumes."""

import logging
from typing import Any

from tradelens.errors import RenderError
from tradelens.interaction.session import RenderSession
from tradelens.layout.focus import FocusController, Viewport
from tradelens.layout.hierarchy import group_records
from tradelens.layout.pack import PackedCircle, pack
from tradelens.models import HierarchyNode, TooltipContent
from tradelens.normalizer.category import CategoryTableNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scene import CircleMark, Scene, TextMark
from tradelens.views.base import BaseView, fmt_value

logger = logging.getLogger(__name__)

LEVELS = ("supplier", "category")


class PackingView(BaseView):
    kind = "packing"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._focus: FocusController | None = None
        super().__init__(*args, **kwargs)

    @property
    def size(self) -> tuple[float, float]:
        return float(self.config.pack.width), float(self.config.pack.height)

    def make_normalizer(self) -> CategoryTableNormalizer:
        return CategoryTableNormalizer(config=self.config.normalizer)

    def define_derived(self, graph: DerivedGraph) -> None:
        graph.define("hierarchy", lambda records: group_records(records, LEVELS, root_name="Exports"), ("filtered",))
        graph.define("circles", lambda root: pack(root, self.config.pack), ("hierarchy",))
        graph.define("focus", self._make_focus, ("circles",))

    def _make_focus(self, circles: list[PackedCircle]) -> FocusController:
        if self._focus is not None:
            self._focus.cancel()
        scheduler = self.session.scheduler if self.session is not None else None
        self._focus = FocusController(circles, self.config.pack, scheduler)
        if self.state is not None:
            self.state.focus_node = None
        return self._focus

    @property
    def focus(self) -> FocusController:
        return self.graph.get("focus")

    def mount(self, session: RenderSession) -> None:
        super().mount(session)
        if self._focus is not None:
            self._focus.bind(session.scheduler)

    def stop(self) -> None:
        if self._focus is not None:
            self._focus.cancel()

    def on_click(self, entity_id: str | None) -> bool:
        state = self.require_state()
        focus = self.focus
        changed = focus.click(entity_id) if entity_id is not None else focus.click_background()
        if changed:
            state.focus_node = None if focus.focus.id == focus.root.id else focus.focus.id
        return changed

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        circle = self.focus.circles.get(entity_id)
        if circle is None or circle.depth == 0:
            return None
        lines = [circle.name]
        if circle.parent_id and circle.depth > 1:
            lines.append(f"Supplier: {circle.parent_id.split('/')[-1]}")
        lines.append(f"Value: {fmt_value(circle.value)}")
        return TooltipContent(entity_id=entity_id, lines=lines)

    def build_scene(self, viewport: Viewport | None = None) -> Scene:
        state = self.require_state()
        root: HierarchyNode = self.graph.get("hierarchy")
        if root.value <= 0:
            raise RenderError(f"No exports for year={state.selected_year}")
        circles: list[PackedCircle] = self.graph.get("circles")
        focus = self.focus
        t = focus.screen_transform(viewport)
        w, h = self.size

        suppliers = [c.name for c in circles if c.depth == 1]
        color = self.scales.categorical(suppliers)
        scene = Scene(w, h, title=f"Exports by category ({state.selected_year})")
        for c in circles:
            if c.depth == 0:
                continue
            x, y = t.apply((c.x, c.y))
            top = c.id.split("/")[1]
            scene.add(CircleMark(
                entity_id=c.id, cx=x, cy=y, r=c.r * t.k,
                fill="#ffffff" if c.is_leaf else color(top),
                stroke=color(top), opacity=0.9 if c.is_leaf else 0.7,
            ))
        # label the children of the focused node
        for c in circles:
            if c.parent_id == focus.focus.id:
                x, y = t.apply((c.x, c.y))
                scene.add(TextMark(x=x, y=y, text=c.name, size=11.0))
        logger.info("%s: %d circles, focus=%s", self.view_id, len(circles), focus.focus.id)
        return scene
