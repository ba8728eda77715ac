"""Zoom-to-focus for circle packing.

The viewport is the visible circle (centre + diameter). Clicking a packed
node animates the viewport onto that node's circle using smooth zoom
interpolation; a new click mid-flight starts over from wherever the viewport
currently is.
"""

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from tradelens.config import PackConfig
from tradelens.geo.zoom import ZoomTransform
from tradelens.layout.pack import PackedCircle
from tradelens.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

RHO = math.sqrt(2)
EPSILON2 = 1e-12


class FocusState(str, Enum):
    ROOT_FOCUSED = "root_focused"
    NODE_FOCUSED = "node_focused"


@dataclass(frozen=True)
class Viewport:
    x: float
    y: float
    diameter: float

    @classmethod
    def of(cls, circle: PackedCircle) -> "Viewport":
        return cls(circle.x, circle.y, circle.r * 2)


def cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


def interpolate_zoom(v0: Viewport, v1: Viewport, rho: float = RHO) -> tuple[Callable[[float], Viewport], float]:
    """van Wijk and Nuij smooth zoom from v0 to v1.

    Returns the interpolator and the path length S (useful for
    distance-proportional durations).
    """
    ux0, uy0, w0 = v0.x, v0.y, v0.diameter
    ux1, uy1, w1 = v1.x, v1.y, v1.diameter
    dx, dy = ux1 - ux0, uy1 - uy0
    d2 = dx * dx + dy * dy
    rho2, rho4 = rho * rho, rho ** 4

    if w0 <= 0 or w1 <= 0:
        # zero-size endpoint: fall back to a straight blend
        def linear(t: float) -> Viewport:
            return Viewport(ux0 + t * dx, uy0 + t * dy, w0 + t * (w1 - w0))
        return linear, 0.0

    if d2 < EPSILON2:
        s_total = math.log(w1 / w0) / rho

        def zoom_only(t: float) -> Viewport:
            return Viewport(ux0 + t * dx, uy0 + t * dy, w0 * math.exp(rho * t * s_total))
        return zoom_only, s_total

    d1 = math.sqrt(d2)
    b0 = (w1 * w1 - w0 * w0 + rho4 * d2) / (2 * w0 * rho2 * d1)
    b1 = (w1 * w1 - w0 * w0 - rho4 * d2) / (2 * w1 * rho2 * d1)
    r0 = math.log(math.sqrt(b0 * b0 + 1) - b0)
    r1 = math.log(math.sqrt(b1 * b1 + 1) - b1)
    s_total = (r1 - r0) / rho
    cosh_r0 = math.cosh(r0)

    def smooth(t: float) -> Viewport:
        s = t * s_total
        u = w0 / (rho2 * d1) * (cosh_r0 * math.tanh(rho * s + r0) - math.sinh(r0))
        return Viewport(ux0 + u * dx, uy0 + u * dy, w0 * cosh_r0 / math.cosh(rho * s + r0))

    return smooth, s_total


class _Transition:
    def __init__(self, start: Viewport, target: Viewport, started_at: float, duration: float) -> None:
        self.start = start
        self.target = target
        self.started_at = started_at
        self.duration = duration
        self.interp, _ = interpolate_zoom(start, target)

    def at(self, now: float) -> tuple[Viewport, bool]:
        t = 1.0 if self.duration <= 0 else min(1.0, max(0.0, (now - self.started_at) / self.duration))
        if t >= 1.0:
            return self.target, True
        return self.interp(cubic_in_out(t)), False


class FocusController:
    """ROOT_FOCUSED / NODE_FOCUSED state machine over a packed layout."""

    def __init__(
        self,
        circles: Sequence[PackedCircle],
        config: PackConfig | None = None,
        scheduler: FrameScheduler | None = None,
    ) -> None:
        if not circles:
            raise ValueError("FocusController needs at least the root circle")
        self.config = config or PackConfig()
        self.scheduler = scheduler or FrameScheduler()
        self.circles = {c.id: c for c in circles}
        self.root = circles[0]
        self.focus = self.root
        self.viewport = Viewport.of(self.root)
        self.on_change: Callable[[Viewport], None] | None = None
        self._transition: _Transition | None = None
        self._handle: int | None = None

    @property
    def state(self) -> FocusState:
        return FocusState.ROOT_FOCUSED if self.focus.id == self.root.id else FocusState.NODE_FOCUSED

    @property
    def in_flight(self) -> bool:
        return self._transition is not None

    @property
    def transition_origin(self) -> Viewport | None:
        """Where the in-flight transition started, if any."""
        return self._transition.start if self._transition is not None else None

    def click(self, circle_id: str) -> bool:
        """Focus a node. Returns False when the click is ignored."""
        circle = self.circles.get(circle_id)
        if circle is None:
            logger.debug("Click on unknown circle %r ignored", circle_id)
            return False
        if circle.is_leaf and circle.id != self.root.id:
            return False
        if circle.id == self.focus.id:
            return False
        self._zoom_to(circle)
        return True

    def click_background(self) -> bool:
        """Return to the root; ignored when the root already has focus."""
        return self.click(self.root.id)

    def _zoom_to(self, circle: PackedCircle) -> None:
        if self._transition is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None
            logger.debug("Aborted transition to %s at %s", self._transition.target, self.viewport)
        self.focus = circle
        self._transition = _Transition(
            start=self.viewport,
            target=Viewport.of(circle),
            started_at=self.scheduler.now(),
            duration=self.config.transition_ms,
        )
        logger.debug("Focus -> %s (%s)", circle.id, self.state.value)
        self._handle = self.scheduler.request_frame(self._on_frame)

    def _on_frame(self, now: float) -> None:
        self._handle = None
        if self._transition is None:
            return
        self.viewport, done = self._transition.at(now)
        if self.on_change is not None:
            self.on_change(self.viewport)
        if done:
            self._transition = None
        else:
            self._handle = self.scheduler.request_frame(self._on_frame)

    def cancel(self) -> None:
        """Stop any in-flight transition where it is."""
        if self._transition is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None
            self._transition = None

    def bind(self, scheduler: FrameScheduler) -> None:
        """Move onto another frame scheduler, dropping any in-flight transition."""
        self.cancel()
        self.scheduler = scheduler

    def screen_transform(self, viewport: Viewport | None = None) -> ZoomTransform:
        """Layout coordinates -> screen coordinates for a viewport (default: current)."""
        v = viewport or self.viewport
        if v.diameter <= 0:
            return ZoomTransform(x=self.config.width / 2 - v.x, y=self.config.height / 2 - v.y, k=1.0)
        k = self.config.width / v.diameter
        return ZoomTransform(
            x=self.config.width / 2 - v.x * k,
            y=self.config.height / 2 - v.y * k,
            k=k,
        )
