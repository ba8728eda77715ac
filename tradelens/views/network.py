"""Force-directed supplier/recipient network."""

import logging
from typing import Any

from tradelens.errors import RenderError
from tradelens.geo.zoom import ZoomTransform
from tradelens.interaction.session import RenderSession
from tradelens.layout.force import ForceSimulation, SimulationState
from tradelens.layout.network import NetworkEncoding, encode_network
from tradelens.models import Role, TooltipContent, TradeRecord
from tradelens.normalizer.nested import NestedNormalizer
from tradelens.pipeline import DerivedGraph
from tradelens.scales import FALLBACK_COLOR
from tradelens.scene import CircleMark, LineMark, Scene, TextMark
from tradelens.views.base import BaseView, fmt_value

logger = logging.getLogger(__name__)


class NetworkView(BaseView):
    kind = "network"
    zoomable = True
    draggable = True

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._sim: ForceSimulation | None = None
        super().__init__(*args, **kwargs)

    @property
    def size(self) -> tuple[float, float]:
        return float(self.config.force.width), float(self.config.force.height)

    @property
    def zoom_extent(self) -> tuple[float, float]:
        return self.config.force.zoom_extent

    def make_normalizer(self) -> NestedNormalizer:
        return NestedNormalizer(config=self.config.normalizer)

    def define_derived(self, graph: DerivedGraph) -> None:
        graph.define("encoding", self._encode, ("records", "year", "category"))
        graph.define("simulation", self._simulate, ("encoding",))

    def _encode(self, records: list[TradeRecord], year: int | None, category: str | None) -> NetworkEncoding:
        return encode_network(records, year, self.config.force.top_k, self.scales, category=category)

    def _simulate(self, encoding: NetworkEncoding) -> ForceSimulation:
        if self._sim is not None:
            self._sim.stop()
        sim = ForceSimulation(
            encoding.nodes, encoding.edges, self.config.force,
            radii=encoding.radii(), strokes=encoding.strokes(),
        )
        if self.session is not None:
            sim.start(self.session.scheduler)
        self._sim = sim
        return sim

    @property
    def simulation(self) -> ForceSimulation:
        return self.graph.get("simulation")

    def mount(self, session: RenderSession) -> None:
        super().mount(session)
        if self._sim is not None:
            self._sim.start(session.scheduler)

    def stop(self) -> None:
        if self._sim is not None:
            self._sim.stop()

    def settle(self) -> int:
        """Run the simulation to rest synchronously (batch rendering)."""
        sim = self.simulation
        sim.stop()
        return sim.run()

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        encoding: NetworkEncoding = self.graph.get("encoding")
        for node in encoding.nodes:
            if node.id == entity_id:
                return TooltipContent(entity_id=entity_id, lines=[
                    f"Country: {node.id}",
                    f"Role: {node.role.value}",
                    f"Total: {fmt_value(node.value)}",
                ])
        return None

    # --- Drag ---

    def _to_layout(self, point: tuple[float, float]) -> tuple[float, float]:
        return self.require_state().zoom_transform.invert(point)

    def drag_start(self, entity_id: str, point: tuple[float, float]) -> bool:
        try:
            self.simulation.drag_start(entity_id)
        except KeyError:
            return False
        return True

    def drag_move(self, entity_id: str, point: tuple[float, float]) -> None:
        x, y = self._to_layout(point)
        self.simulation.drag_move(entity_id, x, y)

    def drag_end(self, entity_id: str) -> None:
        self.simulation.drag_end(entity_id)

    # --- Scene ---

    def build_scene(self) -> Scene:
        state = self.require_state()
        encoding: NetworkEncoding = self.graph.get("encoding")
        if not encoding.nodes:
            raise RenderError(f"No suppliers for year={state.selected_year}")
        sim = self.simulation
        t: ZoomTransform = state.zoom_transform
        w, h = self.size

        scene = Scene(w, h, title=f"Arms trade network ({state.selected_year})")
        for link in sim.links:
            scene.add(LineMark(
                entity_id=f"{link.source.id}->{link.target.id}",
                points=(t.apply((link.source.x, link.source.y)), t.apply((link.target.x, link.target.y))),
                stroke="#999999",
                stroke_width=link.stroke_width,
                opacity=0.6,
            ))
        for node in sim.nodes:
            x, y = t.apply((node.x, node.y))
            color = encoding.color(node.id) if node.role is Role.SUPPLIER else FALLBACK_COLOR
            scene.add(CircleMark(
                entity_id=node.id, cx=x, cy=y, r=node.radius * t.k,
                fill=color, stroke="#ffffff", stroke_width=1.5,
            ))
            scene.add(TextMark(x=x + node.radius * t.k + 3, y=y + 4, text=node.id, size=10.0, anchor="start"))

        state_label = "settled" if sim.state is SimulationState.SETTLED else f"alpha={sim.alpha:.3f}"
        logger.info("%s: %d nodes, %d links (%s)", self.view_id, len(sim.nodes), len(sim.links), state_label)
        return scene
