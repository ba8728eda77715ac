"""Hierarchy builders: group flat records into value-weighted trees."""

import logging
from collections.abc import Iterable, Sequence

from tradelens.models import HierarchyNode, TradeRecord

logger = logging.getLogger(__name__)


def filter_records(
    records: Iterable[TradeRecord],
    year: int | None = None,
    category: str | None = None,
) -> list[TradeRecord]:
    """Records matching the active year and category filters (None = any)."""
    return [
        r for r in records
        if (year is None or r.year == year) and (category is None or r.category == category)
    ]


def _sorted(children: Iterable[HierarchyNode]) -> tuple[HierarchyNode, ...]:
    return tuple(sorted(children, key=lambda n: (-n.value, n.name)))


def _level_key(record: TradeRecord, level: str) -> str | None:
    value = getattr(record, level)
    if value is None:
        return None
    return str(value)


def group_records(
    records: Iterable[TradeRecord],
    levels: Sequence[str] = ("supplier", "category"),
    root_name: str = "root",
) -> HierarchyNode:
    """Nest records by the given TradeRecord fields, summing values.

    Records whose grouping field is empty, and leaves whose summed value is
    zero, are left out. Children are ordered by value descending, then name.
    """
    if not levels:
        raise ValueError("levels must name at least one TradeRecord field")

    tree: dict = {}
    for r in records:
        if r.value_missing or r.value <= 0:
            continue
        keys = [_level_key(r, level) for level in levels]
        if any(k is None for k in keys):
            continue
        node = tree
        for k in keys[:-1]:
            node = node.setdefault(k, {})
        node[keys[-1]] = node.get(keys[-1], 0.0) + r.value

    def build(name: str, branch: dict | float, depth: int) -> HierarchyNode:
        if not isinstance(branch, dict):
            return HierarchyNode(name=name, depth=depth, value=branch)
        children = _sorted(build(k, v, depth + 1) for k, v in branch.items())
        children = tuple(c for c in children if c.value > 0)
        return HierarchyNode(name=name, depth=depth, value=sum(c.value for c in children), children=children)

    root = build(root_name, tree, 0)
    logger.debug("Grouped %d leaves under %r by %s", len(root.leaves()) if root.children else 0, root_name, levels)
    return root


def top_n_leaves(root: HierarchyNode, n: int) -> HierarchyNode:
    """Prune the tree to its n largest leaves (alphabetical tie-break).

    Ancestors are kept only where they still hold a selected leaf, and their
    values are re-summed from what remains.
    """
    leaves = [leaf for leaf in root.leaves() if leaf is not root]
    ranked = sorted(leaves, key=lambda leaf: (-leaf.value, leaf.name))[:n]
    keep = {id(leaf) for leaf in ranked}

    def prune(node: HierarchyNode) -> HierarchyNode | None:
        if node.is_leaf:
            return node if id(node) in keep else None
        children = _sorted(c for c in (prune(child) for child in node.children) if c is not None)
        if not children:
            return None
        return HierarchyNode(name=node.name, depth=node.depth, value=sum(c.value for c in children), children=children)

    return prune(root) or HierarchyNode(name=root.name, depth=root.depth)
