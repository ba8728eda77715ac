"""Supplier/recipient graph construction for the force layout."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

import networkx as nx

from tradelens.models import GraphEdge, GraphNode, Role, TradeRecord
from tradelens.scales import ScaleBuilder, ScaleSpec

logger = logging.getLogger(__name__)


def top_k(weights: dict[str, float], k: int) -> list[tuple[str, float]]:
    """Highest weights first; ties broken alphabetically, independent of input order."""
    ranked = sorted(weights.items(), key=lambda kv: (-kv[1], kv[0]))
    return ranked[:k]


def build_trade_graph(
    records: Iterable[TradeRecord],
    year: int | None = None,
    top_k_recipients: int = 5,
    category: str | None = None,
) -> nx.DiGraph:
    """Per supplier, keep the top-K recipients by weight for the year.

    Every supplier in the record set becomes a node even when it has no
    qualifying edge for the year. A country that appears as both supplier
    and recipient keeps the supplier role. Records flagged ``value_missing``
    do not count toward weights.
    """
    flows: dict[str, dict[str, float]] = {}
    for r in records:
        if not r.supplier:
            continue
        if r.supplier not in flows:
            flows[r.supplier] = defaultdict(float)
        if year is not None and r.year != year:
            continue
        if category is not None and r.category != category:
            continue
        if r.recipient is None or r.value_missing:
            continue
        flows[r.supplier][r.recipient] += r.value

    suppliers = list(flows)
    g = nx.DiGraph()
    for s in suppliers:
        g.add_node(s, role=Role.SUPPLIER)
    for s in suppliers:
        qualifying = {name: w for name, w in flows[s].items() if w > 0 and name != s}
        for recipient, weight in top_k(qualifying, top_k_recipients):
            if recipient not in g:
                g.add_node(recipient, role=Role.RECIPIENT)
            g.add_edge(s, recipient, weight=weight)

    logger.debug("Trade graph for %s: %d nodes, %d edges", year, g.number_of_nodes(), g.number_of_edges())
    return g


def graph_entities(g: nx.DiGraph) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Export a trade graph as GraphNode/GraphEdge lists.

    A node's value is its outgoing weight for suppliers and incoming weight
    for recipients.
    """
    nodes = []
    for node_id, data in g.nodes(data=True):
        role = data.get("role", Role.RECIPIENT)
        if role is Role.SUPPLIER:
            value = g.out_degree(node_id, weight="weight")
        else:
            value = g.in_degree(node_id, weight="weight")
        nodes.append(GraphNode(id=node_id, role=role, value=float(value)))
    edges = [GraphEdge(source_id=s, target_id=t, weight=d["weight"]) for s, t, d in g.edges(data=True)]
    return nodes, edges


@dataclass
class NetworkEncoding:
    """Nodes and edges with their visual channels resolved."""
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    radius: ScaleSpec
    stroke: ScaleSpec
    color: ScaleSpec

    def radii(self) -> dict[str, float]:
        return {n.id: self.radius(n.value) for n in self.nodes}

    def strokes(self) -> dict[tuple[str, str], float]:
        return {(e.source_id, e.target_id): self.stroke(e.weight) for e in self.edges}


def encode_network(
    records: Iterable[TradeRecord],
    year: int | None,
    top_k_recipients: int = 5,
    scales: ScaleBuilder | None = None,
    category: str | None = None,
) -> NetworkEncoding:
    scales = scales or ScaleBuilder()
    g = build_trade_graph(records, year, top_k_recipients, category=category)
    nodes, edges = graph_entities(g)
    suppliers = [n.id for n in nodes if n.role is Role.SUPPLIER]
    return NetworkEncoding(
        nodes=nodes,
        edges=edges,
        radius=scales.radius([n.value for n in nodes]),
        stroke=scales.stroke([e.weight for e in edges]),
        color=scales.categorical(suppliers),
    )
