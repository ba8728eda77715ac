"""Force-directed layout: link springs, Barnes-Hut repulsion, centering.

The simulation is a plain object advanced one tick at a time. ``start()``
hands ticking to a FrameScheduler so it runs one tick per frame until the
energy term alpha drops below ``alpha_min``.
"""

import logging
import math
import random
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from tradelens.config import ForceConfig
from tradelens.layout.quadtree import QuadCell, build_quadtree
from tradelens.models import GraphEdge, GraphNode, Role
from tradelens.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


class SimulationState(str, Enum):
    ACTIVE = "active"
    SETTLED = "settled"


@dataclass
class SimNode:
    id: str
    role: Role
    value: float = 0.0
    radius: float = 5.0
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: float | None = None
    fy: float | None = None
    index: int = 0

    @property
    def pinned(self) -> bool:
        return self.fx is not None


@dataclass
class SimLink:
    source: SimNode
    target: SimNode
    weight: float
    stroke_width: float = 1.0
    bias: float = field(default=0.5)


class ForceSimulation:
    """Mutable simulation state for one network view.

    Node positions are owned here and nowhere else; the view reads them each
    frame to rebuild its scene.
    """

    def __init__(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        config: ForceConfig | None = None,
        radii: dict[str, float] | None = None,
        strokes: dict[tuple[str, str], float] | None = None,
        seed: int = 0,
    ) -> None:
        self.config = config or ForceConfig()
        self._random = random.Random(seed)
        self.center = (self.config.width / 2, self.config.height / 2)
        radii = radii or {}
        strokes = strokes or {}

        self.nodes: list[SimNode] = []
        self._by_id: dict[str, SimNode] = {}
        for n in nodes:
            if n.id in self._by_id:
                continue
            node = SimNode(id=n.id, role=n.role, value=n.value, radius=radii.get(n.id, 5.0), index=len(self.nodes))
            self.nodes.append(node)
            self._by_id[n.id] = node

        self.links: list[SimLink] = []
        for e in edges:
            src, tgt = self._by_id.get(e.source_id), self._by_id.get(e.target_id)
            if src is None or tgt is None:
                logger.warning("Dropping edge %s -> %s with unknown endpoint", e.source_id, e.target_id)
                continue
            self.links.append(SimLink(src, tgt, e.weight, strokes.get((e.source_id, e.target_id), 1.0)))

        degree = Counter()
        for link in self.links:
            degree[link.source.id] += 1
            degree[link.target.id] += 1
        for link in self.links:
            s, t = degree[link.source.id], degree[link.target.id]
            link.bias = s / (s + t)

        self.alpha = 1.0
        self.alpha_target = 0.0
        self.alpha_decay = 1 - self.config.alpha_min ** (1 / 300)
        self.ticks = 0
        self._handle: int | None = None
        self._scheduler: FrameScheduler | None = None
        self.on_tick: Callable[["ForceSimulation"], None] | None = None
        self._place_initial()

    # --- State ---

    @property
    def state(self) -> SimulationState:
        if self.alpha < self.config.alpha_min and self.alpha_target < self.config.alpha_min:
            return SimulationState.SETTLED
        return SimulationState.ACTIVE

    def node(self, node_id: str) -> SimNode:
        return self._by_id[node_id]

    def _place_initial(self) -> None:
        """Phyllotaxis spiral around the canvas centre for nodes without a position."""
        cx, cy = self.center
        for i, node in enumerate(self.nodes):
            r = INITIAL_RADIUS * math.sqrt(0.5 + i)
            angle = i * INITIAL_ANGLE
            node.x = cx + r * math.cos(angle)
            node.y = cy + r * math.sin(angle)

    def _jiggle(self) -> float:
        return (self._random.random() - 0.5) * 1e-6

    # --- Forces ---

    def _apply_links(self, alpha: float) -> None:
        strength = self.config.link_strength
        distance = self.config.link_distance
        for link in self.links:
            s, t = link.source, link.target
            dx = t.x + t.vx - s.x - s.vx or self._jiggle()
            dy = t.y + t.vy - s.y - s.vy or self._jiggle()
            l = math.sqrt(dx * dx + dy * dy)
            l = (l - distance) / l * alpha * strength
            dx *= l
            dy *= l
            b = link.bias
            t.vx -= dx * b
            t.vy -= dy * b
            s.vx += dx * (1 - b)
            s.vy += dy * (1 - b)

    def _apply_charge(self, alpha: float) -> None:
        strengths = [self.config.charge_strength] * len(self.nodes)
        root = build_quadtree(self.nodes, strengths)
        if root is None:
            return
        theta2 = self.config.theta ** 2
        dmin2 = self.config.distance_min ** 2
        for node in self.nodes:
            self._visit(root, node, alpha, theta2, dmin2)

    def _visit(self, cell: QuadCell, node: SimNode, alpha: float, theta2: float, dmin2: float) -> None:
        if cell.strength == 0:
            return
        dx = cell.cx - node.x
        dy = cell.cy - node.y
        l = dx * dx + dy * dy

        # far enough away: treat the whole cell as one body
        if cell.size * cell.size / theta2 < l:
            if l < dmin2:
                l = math.sqrt(dmin2 * l)
            node.vx += dx * cell.strength * alpha / l
            node.vy += dy * cell.strength * alpha / l
            return

        if not cell.is_leaf:
            for child in cell.children:
                if child is not None:
                    self._visit(child, node, alpha, theta2, dmin2)
            return

        for body, strength in cell.bodies:
            if body is node:
                continue
            bx = body.x - node.x
            by = body.y - node.y
            if bx == 0:
                bx = self._jiggle()
            if by == 0:
                by = self._jiggle()
            bl = bx * bx + by * by
            if bl < dmin2:
                bl = math.sqrt(dmin2 * bl)
            w = strength * alpha / bl
            node.vx += bx * w
            node.vy += by * w

    def _apply_center(self) -> None:
        if not self.nodes:
            return
        sx = sum(n.x for n in self.nodes) / len(self.nodes) - self.center[0]
        sy = sum(n.y for n in self.nodes) / len(self.nodes) - self.center[1]
        for n in self.nodes:
            n.x -= sx
            n.y -= sy

    # --- Stepping ---

    def tick(self) -> SimulationState:
        """One explicit integration step, then alpha decays toward its target."""
        alpha = self.alpha
        self._apply_links(alpha)
        self._apply_charge(alpha)

        keep = 1 - self.config.velocity_decay
        for n in self.nodes:
            if n.fx is None:
                n.vx *= keep
                n.x += n.vx
            else:
                n.x, n.vx = n.fx, 0.0
            if n.fy is None:
                n.vy *= keep
                n.y += n.vy
            else:
                n.y, n.vy = n.fy, 0.0
        self._apply_center()

        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self.ticks += 1
        if self.on_tick is not None:
            self.on_tick(self)
        return self.state

    def run(self, max_ticks: int = 10_000) -> int:
        """Tick synchronously until settled. Returns ticks taken."""
        start = self.ticks
        while self.state is SimulationState.ACTIVE and self.ticks - start < max_ticks:
            self.tick()
        return self.ticks - start

    def restart(self, alpha: float | None = None) -> None:
        if alpha is not None:
            self.alpha = alpha
        logger.debug("Simulation restarted at alpha=%.3f", self.alpha)
        if self._scheduler is not None and self._handle is None:
            self._handle = self._scheduler.request_frame(self._on_frame)

    # --- Scheduling ---

    def start(self, scheduler: FrameScheduler) -> None:
        self._scheduler = scheduler
        if self._handle is None and self.state is SimulationState.ACTIVE:
            self._handle = scheduler.request_frame(self._on_frame)

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel(self._handle)
        self._handle = None

    def _on_frame(self, _now: float) -> None:
        self._handle = None
        if self.tick() is SimulationState.ACTIVE and self._scheduler is not None:
            self._handle = self._scheduler.request_frame(self._on_frame)
        else:
            logger.debug("Simulation settled after %d ticks", self.ticks)

    # --- Drag ---

    def drag_start(self, node_id: str) -> SimNode:
        """Pin the node where it is and re-heat the simulation."""
        node = self._by_id[node_id]
        node.fx, node.fy = node.x, node.y
        self.alpha_target = self.config.alpha_restart
        self.alpha = max(self.alpha, self.config.alpha_restart)
        self.restart()
        return node

    def drag_move(self, node_id: str, x: float, y: float) -> None:
        node = self._by_id[node_id]
        node.fx, node.fy = x, y

    def drag_end(self, node_id: str) -> None:
        node = self._by_id[node_id]
        node.fx = node.fy = None
        self.alpha_target = 0.0

    def find(self, x: float, y: float, radius: float | None = None) -> SimNode | None:
        """Closest node to (x, y), optionally within ``radius``."""
        best, best_d2 = None, math.inf if radius is None else radius * radius
        for n in self.nodes:
            d2 = (n.x - x) ** 2 + (n.y - y) ** 2
            if d2 < best_d2:
                best, best_d2 = n, d2
        return best
