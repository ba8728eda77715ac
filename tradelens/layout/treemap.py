"""Squarified treemap subdivision with inner and outer padding."""

import logging
import math
from dataclasses import dataclass

from tradelens.config import TreemapConfig
from tradelens.models import HierarchyNode

logger = logging.getLogger(__name__)

PHI = (1 + math.sqrt(5)) / 2


@dataclass(frozen=True)
class TreemapCell:
    id: str
    name: str
    depth: int
    value: float
    x0: float
    y0: float
    x1: float
    y1: float
    is_leaf: bool
    parent_id: str | None = None

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, px: float, py: float) -> bool:
        return self.x0 <= px <= self.x1 and self.y0 <= py <= self.y1


class _Box:
    __slots__ = ("node", "x0", "y0", "x1", "y1", "children")

    def __init__(self, node: HierarchyNode) -> None:
        self.node = node
        self.x0 = self.y0 = self.x1 = self.y1 = 0.0
        self.children = [_Box(c) for c in node.children]

    @property
    def value(self) -> float:
        return self.node.value


def _dice(boxes: list[_Box], total: float, x0: float, y0: float, x1: float, y1: float) -> None:
    """Split horizontally in proportion to value."""
    k = (x1 - x0) / total if total else 0.0
    for b in boxes:
        b.y0, b.y1 = y0, y1
        b.x0 = x0
        x0 += b.value * k
        b.x1 = x0


def _slice(boxes: list[_Box], total: float, x0: float, y0: float, x1: float, y1: float) -> None:
    """Split vertically in proportion to value."""
    k = (y1 - y0) / total if total else 0.0
    for b in boxes:
        b.x0, b.x1 = x0, x1
        b.y0 = y0
        y0 += b.value * k
        b.y1 = y0


def squarify(parent: _Box, x0: float, y0: float, x1: float, y1: float, ratio: float = PHI) -> None:
    """Lay out rows of children, growing each row while its worst aspect ratio improves."""
    nodes = parent.children
    n = len(nodes)
    value = parent.value
    i0 = i1 = 0
    while i0 < n:
        dx, dy = x1 - x0, y1 - y0

        # next non-empty node
        sum_value = nodes[i1].value
        i1 += 1
        while not sum_value and i1 < n:
            sum_value = nodes[i1].value
            i1 += 1
        min_value = max_value = sum_value
        if dx <= 0 or dy <= 0 or value <= 0:
            alpha = math.inf
        else:
            alpha = max(dy / dx, dx / dy) / (value * ratio)
        beta = sum_value * sum_value * alpha
        min_ratio = max(max_value / beta, beta / min_value) if beta and min_value else math.inf

        while i1 < n:
            node_value = nodes[i1].value
            sum_value += node_value
            min_value = min(min_value, node_value)
            max_value = max(max_value, node_value)
            beta = sum_value * sum_value * alpha
            new_ratio = max(max_value / beta, beta / min_value) if beta and min_value else math.inf
            if new_ratio > min_ratio:
                sum_value -= node_value
                break
            min_ratio = new_ratio
            i1 += 1

        row = nodes[i0:i1]
        if dx < dy:
            y_split = y0 + dy * sum_value / value if value else y1
            _dice(row, sum_value, x0, y0, x1, y_split)
            if value:
                y0 = y_split
        else:
            x_split = x0 + dx * sum_value / value if value else x1
            _slice(row, sum_value, x0, y0, x_split, y1)
            if value:
                x0 = x_split
        value -= sum_value
        i0 = i1


def treemap(root: HierarchyNode, config: TreemapConfig | None = None, top: float = 0.0) -> list[TreemapCell]:
    """Lay the hierarchy out as nested rectangles, pre-order, root first.

    ``top`` reserves space above the map (for a title row).
    """
    config = config or TreemapConfig()
    tree = _Box(root)
    tree.x0, tree.y0, tree.x1, tree.y1 = 0.0, top, float(config.width), float(config.height)
    inner = config.padding
    outer = config.padding
    padding_stack: dict[int, float] = {0: 0.0}
    out: list[TreemapCell] = []

    def position(box: _Box, parent_id: str | None) -> None:
        depth = box.node.depth
        p = padding_stack.get(depth, 0.0)
        x0, y0, x1, y1 = box.x0 + p, box.y0 + p, box.x1 - p, box.y1 - p
        if x1 < x0:
            x0 = x1 = (x0 + x1) / 2
        if y1 < y0:
            y0 = y1 = (y0 + y1) / 2
        box.x0, box.y0, box.x1, box.y1 = x0, y0, x1, y1

        node = box.node
        cid = node.name if parent_id is None else f"{parent_id}/{node.name}"
        out.append(TreemapCell(
            id=cid, name=node.name, depth=depth, value=node.value,
            x0=x0, y0=y0, x1=x1, y1=y1,
            is_leaf=not box.children, parent_id=parent_id,
        ))
        if not box.children:
            return

        p = padding_stack[depth + 1] = inner / 2
        x0 += outer - p
        y0 += outer - p
        x1 -= outer - p
        y1 -= outer - p
        if x1 < x0:
            x0 = x1 = (x0 + x1) / 2
        if y1 < y0:
            y0 = y1 = (y0 + y1) / 2
        squarify(box, x0, y0, x1, y1)
        for child in box.children:
            position(child, cid)

    position(tree, None)
    logger.debug("Treemap: %d cells", len(out))
    return out
