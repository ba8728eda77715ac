"""Tests for tooltip placement, the modal, the render session and pointer routing."""

import itertools

import pytest

from tradelens.interaction.controller import InteractionController
from tradelens.interaction.modal import ModalSurface, record_detail
from tradelens.interaction.session import RenderSession
from tradelens.interaction.tooltip import Rect, TooltipSurface, place_tooltip
from tradelens.layout.force import SimulationState
from tradelens.models import TooltipContent
from tradelens.scene import CircleMark
from tradelens.views.network import NetworkView
from tradelens.views.parallel import ParallelView


class TestTooltipPlacement:
    def test_default_offset(self):
        r = place_tooltip((100, 100), (50, 20), Rect(0, 0, 500, 500))
        assert (r.x, r.y) == (115, 115)

    def test_flips_near_right_and_bottom(self):
        r = place_tooltip((490, 495), (50, 20), Rect(0, 0, 500, 500))
        assert r.x == 490 - 15 - 50
        assert r.y == 495 - 15 - 20

    def test_always_inside_container(self):
        container = Rect(10, 20, 400, 300)
        size = (120, 80)
        for cx, cy in itertools.product(range(10, 411, 25), range(20, 321, 25)):
            r = place_tooltip((cx, cy), size, container)
            assert container.contains_rect(r), (cx, cy, r)

    def test_larger_than_container_pins_to_origin(self):
        r = place_tooltip((50, 50), (500, 500), Rect(0, 0, 100, 100))
        assert (r.x, r.y) == (0, 0)

    def test_surface_ownership(self):
        surface = TooltipSurface(Rect(0, 0, 800, 600))
        surface.show(TooltipContent(entity_id="x", lines=["x"]), (10, 10), owner="map-1")
        surface.hide(owner="network-2")
        assert surface.visible
        assert surface.move((20, 20)).x == 35
        surface.hide(owner="map-1")
        assert not surface.visible
        assert surface.move((20, 20)) is None


class TestModal:
    def test_record_detail(self, rec):
        records = [
            rec("France", "India", 2020, 36, category="Fighter aircraft", status="New"),
            rec("Russia", "India", 2020, 5, category="SAM system", status="New"),
            rec("United States", "India", 2020, 4, category="Fighter aircraft", status="Second hand"),
            rec("France", "Egypt", 2020, 2, category="Frigate"),
            rec("Russia", "India", 2019, 99, category="SAM system"),
        ]
        detail = record_detail("India", records, year=2020)
        assert detail.title == "India"
        assert [row["category"] for row in detail.rows] == ["Fighter aircraft", "SAM system"]
        fighters = detail.rows[0]
        assert fighters["quantity"] == 40
        assert fighters["suppliers"] == "France, United States"
        assert fighters["status"] == "New, Second hand"
        summary = {row.label: row.value for row in detail.summary}
        assert summary == {"Country": "India", "Year": "2020", "Total": "45"}

    def test_record_detail_empty(self, rec):
        assert record_detail("Chad", [rec("France", "India", 2020, 1)]) is None

    def test_outside_click_closes_and_is_consumed(self, rec):
        modal = ModalSurface(Rect(0, 0, 1000, 800))
        assert not modal.handle_click(1, 1)
        modal.open(record_detail("India", [rec("France", "India", 2020, 1)]))
        assert modal.handle_click(500, 400)
        assert modal.is_open
        assert modal.handle_click(1, 1)
        assert not modal.is_open

    def test_modal_centred_and_clamped(self):
        modal = ModalSurface(Rect(0, 0, 300, 1000))
        assert modal.rect == Rect(0, 320, 300, 360)


class TestRenderSession:
    def test_refcounted_tooltip(self, session):
        a = session.acquire("map-1")
        b = session.acquire("network-1")
        assert a is b
        assert session.refcount == 2
        session.release("map-1")
        assert session.tooltip is a
        session.release("network-1")
        assert session.tooltip is None
        assert session.tooltips_created == 1

    def test_recreated_after_last_release(self, session):
        session.acquire("v")
        session.release("v")
        session.acquire("v")
        assert session.tooltips_created == 2

    def test_double_acquire_and_unknown_release(self, session):
        session.acquire("v")
        with pytest.raises(ValueError):
            session.acquire("v")
        with pytest.raises(ValueError):
            session.release("w")

    def test_release_hides_own_content(self, session):
        tip = session.acquire("a")
        session.acquire("b")
        tip.show(TooltipContent(entity_id="x", lines=[]), (0, 0), owner="a")
        session.release("b")
        assert tip.visible
        session.release("a")
        assert not tip.visible

    def test_views_share_session(self, session, config, nested_payload):
        net = NetworkView(config)
        par = ParallelView(config)
        net.mount(session)
        par.mount(session)
        assert net.tooltip is par.tooltip
        net.unmount()
        assert session.refcount == 1
        par.unmount()
        assert session.tooltip is None


@pytest.fixture()
def network(session, config, nested_payload):
    view = NetworkView(config)
    view.mount(session)
    view.set_payload(nested_payload)
    view.settle()
    view.render()
    yield view
    view.unmount()


def _node_mark(view, node_id):
    return next(m for m in view.scene.find(node_id) if isinstance(m, CircleMark))


class TestInteractionController:
    def test_hover_shows_tooltip_and_leave_hides(self, network):
        ctl = InteractionController(network)
        mark = _node_mark(network, "France")
        ctl.pointer_move(mark.cx, mark.cy)
        assert ctl.hovered == "France"
        assert network.tooltip.visible
        assert network.tooltip.content.lines[0] == "Country: France"
        ctl.pointer_leave()
        assert ctl.hovered is None
        assert not network.tooltip.visible

    def test_hover_empty_space_hides(self, network):
        ctl = InteractionController(network)
        mark = _node_mark(network, "France")
        ctl.pointer_move(mark.cx, mark.cy)
        ctl.pointer_move(-1000, -1000)
        assert not network.tooltip.visible

    def test_click_opens_modal_then_consumes_next_click(self, network):
        ctl = InteractionController(network)
        mark = _node_mark(network, "India")
        assert ctl.click(mark.cx, mark.cy)
        assert network.modal.is_open
        assert network.state.active_modal.entity_id == "India"
        # outside the modal: closes without reaching the chart
        assert ctl.click(1, 1)
        assert not network.modal.is_open
        assert network.state.active_modal is None

    def test_drag_pins_node_and_reheats(self, network):
        ctl = InteractionController(network)
        sim = network.simulation
        assert sim.state is SimulationState.SETTLED
        mark = _node_mark(network, "France")
        ctl.pointer_down(mark.cx, mark.cy)
        assert sim.state is SimulationState.ACTIVE
        ctl.pointer_move(mark.cx + 40, mark.cy + 10)
        node = sim.node("France")
        assert (node.fx, node.fy) == pytest.approx((mark.cx + 40, mark.cy + 10))
        ctl.pointer_up(mark.cx + 40, mark.cy + 10)
        assert not node.pinned
        assert sim.alpha_target == 0

    def test_pan_and_wheel_zoom(self, network):
        ctl = InteractionController(network)
        ctl.pointer_down(-500, -500)
        ctl.pointer_move(-490, -480)
        ctl.pointer_up(-490, -480)
        t = network.state.zoom_transform
        assert (t.x, t.y, t.k) == (10, 20, 1)

        ctl.wheel(100, 100, -500)
        assert network.state.zoom_transform.k == pytest.approx(2)
        ctl.wheel(100, 100, 100000)
        assert network.state.zoom_transform.k == pytest.approx(network.zoom_extent[0])

    def test_wheel_ignored_when_not_zoomable(self, session, config, nested_payload):
        view = ParallelView(config)
        view.mount(session)
        view.set_payload(nested_payload)
        view.render()
        InteractionController(view).wheel(10, 10, -500)
        assert view.state.zoom_transform.k == 1
