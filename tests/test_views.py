"""End-to-end tests for the views: load, select, render, drill down."""

import math

import pytest

from tradelens.interaction.session import RenderSession
from tradelens.interaction.tooltip import Rect
from tradelens.models import ViewStatus
from tradelens.scheduler import FrameScheduler, ManualClock
from tradelens.scene import NO_DATA_MESSAGE, CircleMark, LineMark, PathMark, RectMark
from tradelens.views.base import LOADING_MESSAGE
from tradelens.views.chord import ChordView
from tradelens.views.flow import FlowMapView
from tradelens.views.line import LineChartView
from tradelens.views.map import MapView, recipient_totals
from tradelens.views.network import NetworkView
from tradelens.views.packing import PackingView
from tradelens.views.parallel import ParallelView
from tradelens.views.registry import VIEWS
from tradelens.views.treemap import TreemapView


def _mounted(view_cls, session, config, payload=None, **kwargs):
    view = view_cls(config, **kwargs)
    view.mount(session)
    if payload is not None:
        view.set_payload(payload)
    return view


def _marks(scene, kind):
    return [m for m in scene.marks if isinstance(m, kind)]


class TestRegistry:
    def test_all_views_registered(self):
        assert sorted(VIEWS) == ["chord", "flow", "line", "map", "network", "packing", "parallel", "treemap"]


class TestViewLifecycle:
    def test_loading_placeholder_before_data(self, session, config):
        view = _mounted(NetworkView, session, config)
        scene = view.render()
        assert scene.is_placeholder
        assert scene.message == LOADING_MESSAGE

    def test_structural_failure_shows_error(self, session, config):
        view = _mounted(MapView, session, config, [])
        assert view.status is ViewStatus.ERROR
        scene = view.render()
        assert scene.is_placeholder
        assert scene.message == "Payload has no rows"

    def test_empty_records(self, session, config):
        payload = [{"supplier": "France", "recipients": [{"recipient": "India", "years": {"1900": 1}}]}]
        view = _mounted(NetworkView, session, config, payload)
        assert view.status is ViewStatus.EMPTY
        assert view.render().is_placeholder

    def test_render_requires_mount(self, config):
        with pytest.raises(RuntimeError):
            NetworkView(config).render()

    def test_double_mount_rejected(self, session, config):
        view = _mounted(NetworkView, session, config)
        with pytest.raises(RuntimeError):
            view.mount(session)

    def test_unmount_releases_session(self, session, config, nested_payload):
        view = _mounted(NetworkView, session, config, nested_payload)
        view.unmount()
        assert not view.mounted
        assert session.refcount == 0
        assert session.scheduler.idle

    def test_default_year_is_latest(self, session, config, nested_payload):
        view = _mounted(NetworkView, session, config, nested_payload)
        assert view.years() == [2019, 2020]
        assert view.state.selected_year == 2020

    def test_selection_change_closes_modal(self, session, config, nested_payload):
        view = _mounted(NetworkView, session, config, nested_payload)
        assert view.on_click("India")
        assert view.modal.is_open
        view.select_year(2019)
        assert not view.modal.is_open
        assert view.state.active_modal is None


class TestMapView:
    @pytest.fixture()
    def view(self, session, config, world, transfer_rows):
        view = MapView(config)
        view.mount(session)
        view.set_world(world)
        view.set_payload(transfer_rows)
        return view

    def test_recipient_totals(self, rec):
        records = [rec("a", "x", 2020, 2), rec("b", "x", 2020, 3), rec("c", "y", 2020, 0, value_missing=True)]
        assert recipient_totals(records) == {"x": 5}

    def test_choropleth_and_symbols(self, view):
        scene = view.render()
        assert not scene.is_placeholder
        paths = {m.entity_id: m for m in _marks(scene, PathMark)}
        assert set(paths) == {"Japan", "India", "Egypt"}
        assert paths["Egypt"].fill == "#cccccc"
        assert paths["India"].fill != paths["Japan"].fill
        symbols = {m.entity_id: m for m in _marks(scene, CircleMark)}
        assert set(symbols) == {"India", "Japan"}
        assert symbols["India"].r > symbols["Japan"].r

    def test_registered_world_names_are_mapped(self, view):
        japan = [r for r in view.records if r.recipient == "Japan"]
        assert japan and all(r.recipient_mapped for r in japan)

    def test_world_after_payload_remaps_records(self, session, config, world, transfer_rows):
        view = MapView(config)
        view.mount(session)
        view.set_payload(transfer_rows)
        assert not any(r.recipient_mapped for r in view.records if r.recipient == "India")
        assert _marks(view.render(), CircleMark) == []
        view.set_world(world)
        assert all(r.recipient_mapped for r in view.records if r.recipient == "India")
        assert {m.entity_id for m in _marks(view.render(), CircleMark)} == {"India", "Japan"}

    def test_hit_test_country(self, view):
        scene = view.render()
        india = next(m for m in _marks(scene, CircleMark) if m.entity_id == "India")
        assert scene.hit_test(india.cx, india.cy).entity_id == "India"
        assert view.tooltip_content("India").lines == ["Country: India", "Quantity: 41"]
        assert view.tooltip_content("Egypt").lines[1] == "No data"

    def test_year_and_category_without_data_is_placeholder(self, view):
        view.select_year(2019)
        view.select_category("Fighter aircraft")
        scene = view.render()
        assert scene.is_placeholder
        assert scene.message == NO_DATA_MESSAGE

    def test_zoom_applies_to_geometry(self, view):
        before = next(m for m in _marks(view.render(), CircleMark) if m.entity_id == "India")
        view.set_zoom(view.state.zoom_transform.scale_by(2, (0, 0), view.zoom_extent))
        after = next(m for m in _marks(view.render(), CircleMark) if m.entity_id == "India")
        assert after.cx == pytest.approx(before.cx * 2)
        assert after.r == pytest.approx(before.r * 2)

    def test_year_change_recomputes_only_filtered(self, view):
        view.render()
        counts = dict(view.graph.compute_counts)
        view.select_year(2019)
        view.render()
        assert view.graph.compute_counts["shapes"] == counts["shapes"]
        assert view.graph.compute_counts["projection"] == counts["projection"]
        assert view.graph.compute_counts["totals"] == counts["totals"] + 1


class TestNetworkView:
    def test_scene(self, session, config, nested_payload):
        view = _mounted(NetworkView, session, config, nested_payload)
        view.settle()
        scene = view.render()
        nodes = {m.entity_id for m in _marks(scene, CircleMark)}
        assert nodes == {"United States", "Russia", "France", "Saudi Arabia", "Australia", "India"}
        assert len(_marks(scene, LineMark)) == 4

    def test_animation_runs_on_session_scheduler(self, session, config, nested_payload):
        view = _mounted(NetworkView, session, config, nested_payload)
        sim = view.simulation
        session.scheduler.run_frame()
        assert sim.ticks == 1

    def test_year_change_stops_previous_simulation(self, session, config, nested_payload):
        view = _mounted(NetworkView, session, config, nested_payload)
        old = view.simulation
        view.select_year(2019)
        new = view.simulation
        assert new is not old
        session.scheduler.run_frame()
        assert old.ticks == 0
        assert new.ticks == 1

    def test_three_suppliers_without_flows(self, session, config, nested_payload):
        view = _mounted(NetworkView, session, config, nested_payload)
        view.select_year(2010)
        view.settle()
        scene = view.render()
        circles = _marks(scene, CircleMark)
        assert len(circles) == 3
        assert {c.r for c in circles} == {config.scales.min_radius}
        assert _marks(scene, LineMark) == []


class TestPackingView:
    def test_scene_and_focus(self, session, config, export_table):
        view = _mounted(PackingView, session, config, export_table)
        scene = view.render()
        ids = {m.entity_id for m in _marks(scene, CircleMark)}
        assert "Exports/United States" in ids
        assert "Exports/United States/Aircraft" in ids
        # zero-valued ships were dropped
        assert "Exports/United States/Ships" not in ids

        assert view.on_click("Exports/France")
        assert view.state.focus_node == "Exports/France"
        session.scheduler.run_until_idle()
        focused = view.render()
        france = next(m for m in _marks(focused, CircleMark) if m.entity_id == "Exports/France")
        assert france.r * 2 == pytest.approx(config.pack.width)

        assert view.on_click(None)
        assert view.state.focus_node is None

    def test_focus_follows_remount_to_new_session(self, session, config, export_table):
        view = _mounted(PackingView, session, config, export_table)
        view.render()
        view.unmount()
        other = RenderSession(Rect(0, 0, 1200, 900), scheduler=FrameScheduler(clock=ManualClock()))
        view.mount(other)
        view.render()
        assert view.on_click("Exports/France")
        assert other.scheduler.run_until_idle() > 0
        assert session.scheduler.idle
        france = next(m for m in _marks(view.render(), CircleMark) if m.entity_id == "Exports/France")
        assert france.r * 2 == pytest.approx(config.pack.width)

    def test_leaf_click_ignored(self, session, config, export_table):
        view = _mounted(PackingView, session, config, export_table)
        view.render()
        assert not view.on_click("Exports/France/Ships")

    def test_tooltip(self, session, config, export_table):
        view = _mounted(PackingView, session, config, export_table)
        lines = view.tooltip_content("Exports/Russia/Air defence").lines
        assert lines == ["Air defence", "Supplier: Russia", "Value: 1,100"]
        assert view.tooltip_content("Exports") is None

    def test_unknown_year_placeholder(self, session, config, export_table):
        view = _mounted(PackingView, session, config, export_table)
        view.select_year(2001)
        assert view.render().is_placeholder


class TestTreemapView:
    def test_scene(self, session, config, company_rows):
        view = _mounted(TreemapView, session, config, company_rows)
        assert view.state.selected_year == 2021
        scene = view.render()
        rects = _marks(scene, RectMark)
        assert len(rects) == 4
        assert all(r.y >= 60 for r in rects)

    def test_tooltip_and_detail(self, session, config, company_rows):
        view = _mounted(TreemapView, session, config, company_rows)
        cid = "Companies/United States/Lockheed Martin"
        lines = view.tooltip_content(cid).lines
        assert lines[:3] == ["Company: Lockheed Martin", "Country: United States", "Revenue: 60,340"]
        detail = view.detail_for(cid)
        assert detail.entity_id == "United States"
        assert {row["category"] for row in detail.rows} == {"Lockheed Martin", "Raytheon"}


class TestParallelView:
    def test_all_years_by_default(self, session, config, nested_payload):
        view = _mounted(ParallelView, session, config, nested_payload)
        assert view.state.selected_year is None
        scene = view.render()
        lines = [m for m in _marks(scene, LineMark) if m.entity_id is not None]
        assert len(lines) == 11

    def test_year_filter_and_detail(self, session, config, nested_payload):
        view = _mounted(ParallelView, session, config, nested_payload)
        view.select_year(2020)
        scene = view.render()
        lines = [m for m in _marks(scene, LineMark) if m.entity_id is not None]
        assert len(lines) == 4
        detail = view.detail_for(lines[0].entity_id)
        assert detail is not None
        assert view.detail_for("nope") is None


class TestChordView:
    def test_scene(self, session, config, nested_payload):
        view = _mounted(ChordView, session, config, nested_payload)
        scene = view.render()
        ids = {m.entity_id for m in _marks(scene, PathMark)}
        assert "Russia->India" in ids
        # arcs span outgoing volume only: recipients and China get none
        assert {"United States", "Russia", "France"} <= ids
        assert not ids & {"India", "China", "Australia"}
        assert len(view.graph.get("chords").names) == 7
        assert len(ids) == 7

    def test_tooltips(self, session, config, nested_payload):
        view = _mounted(ChordView, session, config, nested_payload)
        assert view.tooltip_content("Russia->India").lines == ["Russia -> India: 1,800"]
        assert view.tooltip_content("India").lines == ["Country: India", "Total: 0"]
        assert view.tooltip_content("United States").lines[1] == "Total: 3,400"

    def test_arc_hit_test(self, session, config, nested_payload):
        view = _mounted(ChordView, session, config, nested_payload)
        scene = view.render()
        group = next(g for g in view.graph.get("chords").groups if g.name == "United States")
        mid = (group.start_angle + group.end_angle) / 2
        inner, outer = view.radii
        r = (inner + outer) / 2
        cx, cy = scene.width / 2, scene.height / 2
        assert scene.hit_test(cx + r * math.sin(mid), cy - r * math.cos(mid)).entity_id == "United States"

    def test_no_flows_placeholder(self, session, config, nested_payload):
        view = _mounted(ChordView, session, config, nested_payload)
        view.select_year(2005)
        assert view.render().is_placeholder


@pytest.fixture()
def flow_world(world):
    def square(name, x0, y0, size):
        ring = [[x0, y0], [x0 + size, y0], [x0 + size, y0 + size], [x0, y0 + size], [x0, y0]]
        return {"type": "Feature", "properties": {"name": name}, "geometry": {"type": "Polygon", "coordinates": [ring]}}
    features = world["features"] + [
        square("United States", -100, 35, 10),
        square("Russia", 40, 50, 20),
        square("France", 0, 44, 5),
    ]
    return {"type": "FeatureCollection", "features": features}


def _flow_ids(scene):
    return {m.entity_id for m in _marks(scene, LineMark)}


class TestFlowMapView:
    @pytest.fixture()
    def view(self, session, config, flow_world, nested_payload):
        view = FlowMapView(config)
        view.mount(session)
        view.set_world(flow_world)
        view.set_payload(nested_payload)
        return view

    def test_lines_between_mapped_centroids(self, view):
        scene = view.render()
        # Saudi Arabia and Australia have no shape, so the US draws nothing in 2020
        assert _flow_ids(scene) == {"Russia->India", "France->India"}
        lines = {m.entity_id: m for m in _marks(scene, LineMark)}
        assert lines["Russia->India"].stroke == "#DC143C"
        assert lines["Russia->India"].stroke_width == pytest.approx(4)
        centroids = view.graph.get("centroids")
        assert lines["France->India"].points == (centroids["France"], centroids["India"])

    def test_known_country_without_shape_is_skipped(self, view):
        view.select_year(2019)
        # China is a known alias target but has no centroid
        assert _flow_ids(view.render()) == {"United States->India", "Russia->India", "France->India", "France->Egypt"}

    def test_top_recipients_highlighted(self, session, config, flow_world, nested_payload):
        config.flow.top_k = 1
        view = FlowMapView(config)
        view.mount(session)
        view.set_world(flow_world)
        view.set_payload(nested_payload)
        view.select_year(2019)
        dots = {m.entity_id: m for m in _marks(view.render(), CircleMark)}
        assert dots["France->India"].fill == config.flow.top_recipient_color
        assert dots["France->India"].r == config.flow.top_recipient_radius
        assert dots["France->Egypt"].r == config.flow.recipient_radius
        assert dots["France->Egypt"].fill != config.flow.top_recipient_color

    def test_supplier_selector(self, view):
        assert view.suppliers() == ["France", "Russia", "United States"]
        view.select_supplier("France")
        assert view.state.selected_entities == {"France"}
        assert _flow_ids(view.render()) == {"France->India"}
        view.select_supplier(None)
        assert view.state.selected_entities == set()
        assert len(_flow_ids(view.render())) == 2

    def test_tooltip_and_detail(self, view):
        assert view.tooltip_content("France->India").lines == [
            "Origin: France", "Destination: India", "Trade Value: 1,200",
        ]
        assert view.tooltip_content("France->Japan") is None
        assert view.detail_for("Russia->India").entity_id == "India"

    def test_world_after_payload(self, session, config, flow_world, nested_payload):
        view = FlowMapView(config)
        view.mount(session)
        view.set_payload(nested_payload)
        assert view.render().is_placeholder
        view.set_world(flow_world)
        assert "France->India" in _flow_ids(view.render())

    def test_no_flows_placeholder(self, view):
        view.select_year(2005)
        assert view.render().is_placeholder


@pytest.fixture()
def supplier_table():
    return [
        {"supplier": "United States", "2019": 10000, "2020": 9000},
        {"supplier": "Russia", "2019": 5000, "2020": 3000},
        {"supplier": "France", "2019": 2000, "2020": 2500},
        {"supplier": "China", "2019": 1000, "2020": 800},
    ]


def _series_ids(scene):
    return {m.entity_id for m in _marks(scene, LineMark) if m.entity_id is not None}


class TestLineChartView:
    def test_default_exporters(self, session, config, supplier_table):
        view = _mounted(LineChartView, session, config, supplier_table)
        assert view.state.selected_year is None
        assert view.state.selected_entities == {"United States", "China", "Russia"}
        scene = view.render()
        assert _series_ids(scene) == {"United States", "China", "Russia"}
        lines = {m.entity_id: m for m in _marks(scene, LineMark) if m.entity_id}
        assert lines["Russia"].stroke == "#DC143C"
        assert len(lines["Russia"].points) == 2

    def test_values_in_billions_on_linear_axes(self, session, config, supplier_table):
        view = _mounted(LineChartView, session, config, supplier_table)
        dots = {m.entity_id: m for m in _marks(view.render(), CircleMark)}
        top = dots["United States@2019"]
        assert top.cy == pytest.approx(config.line.margin_top)
        assert top.cx == pytest.approx(config.line.margin_left)
        assert dots["United States@2020"].cx == pytest.approx(config.line.width - config.line.margin_right)
        assert view.tooltip_content("Russia@2019").lines == ["Russia", "Year: 2019", "Value: 5.00 Billion"]

    def test_toggle_and_reset(self, session, config, supplier_table):
        view = _mounted(LineChartView, session, config, supplier_table)
        view.toggle_country("France")
        view.toggle_country("China")
        assert view.state.selected_entities == {"United States", "Russia", "France"}
        assert _series_ids(view.render()) == {"United States", "Russia", "France"}
        view.reset()
        assert _series_ids(view.render()) == {"United States", "China", "Russia"}

    def test_year_range(self, session, config, supplier_table):
        view = _mounted(LineChartView, session, config, supplier_table)
        view.select_year_range(2020, 2020)
        lines = {m.entity_id: m for m in _marks(view.render(), LineMark) if m.entity_id}
        assert all(len(line.points) == 1 for line in lines.values())

    def test_empty_selection_is_placeholder(self, session, config, supplier_table):
        view = _mounted(LineChartView, session, config, supplier_table)
        for country in sorted(view.state.selected_entities):
            view.toggle_country(country)
        assert view.render().is_placeholder

    def test_imports(self, session, config):
        rows = [{"Recipient": "India", "2020": 3000}, {"Recipient": "China", "2020": 500}, {"Recipient": "Qatar", "2020": 900}]
        view = _mounted(LineChartView, session, config, rows, trade="import")
        assert _series_ids(view.render()) == {"China", "India"}
        assert view.detail_for("India@2020").entity_id == "India"

    def test_unknown_trade_rejected(self, config):
        with pytest.raises(ValueError):
            LineChartView(config, trade="re-export")
