"""View kinds by name."""

from tradelens.views.base import BaseView
from tradelens.views.chord import ChordView
from tradelens.views.flow import FlowMapView
from tradelens.views.line import LineChartView
from tradelens.views.map import MapView
from tradelens.views.network import NetworkView
from tradelens.views.packing import PackingView
from tradelens.views.parallel import ParallelView
from tradelens.views.treemap import TreemapView

VIEWS: dict[str, type[BaseView]] = {
    view.kind: view
    for view in (
        MapView, FlowMapView, NetworkView, PackingView, TreemapView, ParallelView, ChordView, LineChartView,
    )
}
