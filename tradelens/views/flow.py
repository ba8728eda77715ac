"""Flow map: supplier -> recipient lines between country centroids."""

import logging
from collections import defaultdict
from dataclasses import dataclass

from tradelens.errors import RenderError
from tradelens.geo.projection import Projection, ProjectionBuilder
from tradelens.geo.zoom import ZoomTransform
from tradelens.interaction.session import RenderSession
from tradelens.layout.network import top_k
from tradelens.models import ModalContent, TooltipContent, TradeRecord
from tradelens.normalizer.nested import NestedNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scene import CircleMark, LineMark, Scene, TextMark
from tradelens.views.base import fmt_value
from tradelens.views.map import GeoView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Flow:
    supplier: str
    recipient: str
    value: float

    @property
    def id(self) -> str:
        return f"{self.supplier}->{self.recipient}"


def supplier_flows(records: list[TradeRecord], suppliers: frozenset[str]) -> dict[str, list[Flow]]:
    """Positive flows per supplier, largest first.

    Only records whose both ends are mapped to known countries count. An
    empty ``suppliers`` selection means every supplier.
    """
    totals: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for r in records:
        if r.recipient is None or r.value_missing:
            continue
        if not (r.supplier_mapped and r.recipient_mapped):
            continue
        if suppliers and r.supplier not in suppliers:
            continue
        totals[r.supplier][r.recipient] += r.value
    return {
        supplier: [Flow(supplier, name, value) for name, value in top_k(weights, len(weights)) if value > 0]
        for supplier, weights in sorted(totals.items())
    }


class FlowMapView(GeoView):
    """Where each supplier's arms went in the selected year.

    The supplier selector is ``ViewState.selected_entities``: empty shows
    every supplier. Each supplier's top-K recipients get a larger highlighted
    dot.
    """
    kind = "flow"

    @property
    def size(self) -> tuple[float, float]:
        return float(self.config.flow.width), float(self.config.flow.height)

    @property
    def zoom_extent(self) -> tuple[float, float]:
        return self.config.flow.zoom_extent

    def make_normalizer(self) -> NestedNormalizer:
        return NestedNormalizer(config=self.config.normalizer, aliases=self.aliases)

    def define_derived(self, graph: DerivedGraph) -> None:
        super().define_derived(graph)
        graph.set_input("suppliers", frozenset())
        graph.define("flows", supplier_flows, ("filtered", "suppliers"))

    def build_projection(self) -> Projection:
        cfg = self.config.flow
        return ProjectionBuilder(
            center=cfg.center, scale=cfg.scale, size=(cfg.width, cfg.height), translate=cfg.translate,
        ).build()

    def mount(self, session: RenderSession) -> None:
        super().mount(session)
        self.require_state().selected_entities = set(self.graph.get("suppliers"))

    def suppliers(self) -> list[str]:
        return sorted({r.supplier for r in self.records if r.supplier})

    def select_supplier(self, supplier: str | None) -> None:
        """Show one supplier's flows, or every supplier's with None."""
        selection = frozenset() if supplier is None else frozenset({supplier})
        self.graph.set_input("suppliers", selection)
        if self.state is not None:
            self.state.selected_entities = set(selection)
        self.on_selection_changed()

    def _flow(self, entity_id: str) -> Flow | None:
        supplier = entity_id.split("->", 1)[0]
        for flow in self.graph.get("flows").get(supplier, ()):
            if flow.id == entity_id:
                return flow
        return None

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        flow = self._flow(entity_id)
        if flow is None:
            return None
        return TooltipContent(entity_id=entity_id, lines=[
            f"Origin: {flow.supplier}",
            f"Destination: {flow.recipient}",
            f"Trade Value: {fmt_value(flow.value)}",
        ])

    def detail_for(self, entity_id: str) -> ModalContent | None:
        flow = self._flow(entity_id)
        if flow is None:
            return None
        return super().detail_for(flow.recipient)

    def build_scene(self) -> Scene:
        state = self.require_state()
        cfg = self.config.flow
        centroids: dict[str, tuple[float, float]] = self.graph.get("centroids")
        flows = {
            supplier: [f for f in supplier_list if f.supplier in centroids and f.recipient in centroids]
            for supplier, supplier_list in self.graph.get("flows").items()
        }
        if not any(flows.values()):
            raise RenderError(f"No flows for year={state.selected_year}")

        t: ZoomTransform = state.zoom_transform
        w, h = self.size
        color = self.scales.categorical(flows)

        scene = Scene(w, h, title=f"Global arms transfers by supplier ({state.selected_year})")
        self.country_marks(
            scene, lambda _name: cfg.land_color, stroke="#999999", stroke_width=1.5, interactive=False,
        )

        drawn = 0
        for supplier, supplier_list in flows.items():
            if not supplier_list:
                continue
            stroke = self.scales.symbol([f.value for f in supplier_list], cfg.stroke_range)
            top = {f.recipient for f in supplier_list[:cfg.top_k]}
            origin = t.apply(centroids[supplier])
            for f in supplier_list:
                scene.add(LineMark(
                    entity_id=f.id, points=(origin, t.apply(centroids[f.recipient])),
                    stroke=color(supplier), stroke_width=stroke(f.value),
                ))
            for f in supplier_list:
                x, y = t.apply(centroids[f.recipient])
                highlighted = f.recipient in top
                scene.add(CircleMark(
                    entity_id=f.id, cx=x, cy=y,
                    r=cfg.top_recipient_radius if highlighted else cfg.recipient_radius,
                    fill=cfg.top_recipient_color if highlighted else color(supplier),
                ))
            drawn += len(supplier_list)

        scene.add(TextMark(x=w / 2, y=30, text=scene.title, size=18.0))
        logger.info("%s: %d flows from %d suppliers", self.view_id, drawn, len(flows))
        return scene
