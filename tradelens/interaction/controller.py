"""Routes pointer events from the host surface to a mounted view.

The controller does hit-testing against the view's last rendered scene and
owns the gesture bookkeeping (hover, drag, pan). Physics and transitions stay
with the view's layout engines.
"""

import logging
from dataclasses import dataclass

from tradelens.views.base import BaseView

logger = logging.getLogger(__name__)

# Wheel delta to zoom factor, matching browser zoom behaviour
WHEEL_STEP = 0.002


@dataclass
class _Gesture:
    kind: str  # "drag" or "pan"
    entity_id: str | None
    last: tuple[float, float]


class InteractionController:
    def __init__(self, view: BaseView) -> None:
        self.view = view
        self._gesture: _Gesture | None = None

    @property
    def hovered(self) -> str | None:
        return self.view.state.hovered_entity if self.view.state else None

    def _entity_at(self, x: float, y: float) -> str | None:
        if self.view.scene is None:
            return None
        mark = self.view.scene.hit_test(x, y)
        return mark.entity_id if mark is not None else None

    # --- Hover ---

    def pointer_move(self, x: float, y: float) -> None:
        state = self.view.require_state()
        if self._gesture is not None:
            self._continue_gesture(x, y)
            return

        entity = self._entity_at(x, y)
        tooltip = self.view.tooltip
        if entity is None:
            self.pointer_leave()
            return
        if entity != state.hovered_entity:
            state.hovered_entity = entity
            content = self.view.tooltip_content(entity)
            if tooltip is not None:
                if content is None:
                    tooltip.hide(owner=self.view.view_id)
                else:
                    tooltip.show(content, (x, y), owner=self.view.view_id)
        elif tooltip is not None and tooltip.owner == self.view.view_id:
            tooltip.move((x, y))

    def pointer_leave(self) -> None:
        state = self.view.require_state()
        state.hovered_entity = None
        if self.view.tooltip is not None:
            self.view.tooltip.hide(owner=self.view.view_id)

    # --- Click ---

    def click(self, x: float, y: float) -> bool:
        """Returns True when the click changed something."""
        state = self.view.require_state()
        modal = self.view.modal
        if modal is not None and modal.is_open:
            modal.handle_click(x, y)
            if not modal.is_open:
                state.active_modal = None
            return True
        return self.view.on_click(self._entity_at(x, y))

    def close_modal(self) -> None:
        state = self.view.require_state()
        if self.view.modal is not None:
            self.view.modal.close()
        state.active_modal = None

    # --- Drag and pan ---

    def pointer_down(self, x: float, y: float) -> None:
        self.view.require_state()
        entity = self._entity_at(x, y)
        if entity is not None and self.view.draggable and self.view.drag_start(entity, (x, y)):
            self._gesture = _Gesture("drag", entity, (x, y))
            if self.view.tooltip is not None:
                self.view.tooltip.hide(owner=self.view.view_id)
        elif self.view.zoomable:
            self._gesture = _Gesture("pan", None, (x, y))

    def _continue_gesture(self, x: float, y: float) -> None:
        g = self._gesture
        assert g is not None
        if g.kind == "drag" and g.entity_id is not None:
            self.view.drag_move(g.entity_id, (x, y))
        else:
            state = self.view.require_state()
            dx, dy = x - g.last[0], y - g.last[1]
            self.view.set_zoom(state.zoom_transform.translate_by(dx, dy))
        g.last = (x, y)

    def pointer_up(self, x: float, y: float) -> None:
        g = self._gesture
        self._gesture = None
        if g is not None and g.kind == "drag" and g.entity_id is not None:
            self.view.drag_end(g.entity_id)

    def wheel(self, x: float, y: float, delta_y: float) -> None:
        """Zoom about the cursor; positive delta zooms out."""
        if not self.view.zoomable:
            return
        state = self.view.require_state()
        factor = 2 ** (-delta_y * WHEEL_STEP)
        self.view.set_zoom(state.zoom_transform.scale_by(factor, (x, y), self.view.zoom_extent))
