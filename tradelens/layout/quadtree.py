"""Barnes-Hut quadtree for the many-body force.

Each cell caches the total charge of the bodies beneath it and their
charge-weighted centre, so a distant cell can stand in for all of them.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

# Cells smaller than this stop subdividing; coincident bodies share a leaf
MIN_CELL = 1e-6


class Body(Protocol):
    x: float
    y: float


class QuadCell:
    __slots__ = ("x0", "y0", "size", "children", "bodies", "strength", "cx", "cy")

    def __init__(self, x0: float, y0: float, size: float) -> None:
        self.x0 = x0
        self.y0 = y0
        self.size = size
        self.children: list[QuadCell | None] | None = None
        self.bodies: list[tuple[Body, float]] = []
        self.strength = 0.0
        self.cx = 0.0
        self.cy = 0.0

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def _quadrant(self, x: float, y: float) -> int:
        half = self.size / 2
        right = x >= self.x0 + half
        bottom = y >= self.y0 + half
        return (2 if bottom else 0) + (1 if right else 0)

    def _child(self, i: int) -> "QuadCell":
        assert self.children is not None
        cell = self.children[i]
        if cell is None:
            half = self.size / 2
            cell = QuadCell(self.x0 + half * (i & 1), self.y0 + half * (i >> 1), half)
            self.children[i] = cell
        return cell

    def insert(self, body: Body, strength: float) -> None:
        if self.is_leaf:
            coincident = all(b.x == body.x and b.y == body.y for b, _ in self.bodies)
            if not self.bodies or coincident or self.size <= MIN_CELL:
                self.bodies.append((body, strength))
                return
            # split: push the resident bodies down one level
            resident, self.bodies = self.bodies, []
            self.children = [None, None, None, None]
            for b, s in resident:
                self._child(self._quadrant(b.x, b.y)).insert(b, s)
        self._child(self._quadrant(body.x, body.y)).insert(body, strength)

    def accumulate(self) -> None:
        """Compute charge totals bottom-up."""
        weight = total = sx = sy = 0.0
        if self.is_leaf:
            for b, s in self.bodies:
                total += s
                weight += abs(s)
                sx += abs(s) * b.x
                sy += abs(s) * b.y
        else:
            for cell in self.children:
                if cell is None:
                    continue
                cell.accumulate()
                w = abs(cell.strength)
                total += cell.strength
                weight += w
                sx += w * cell.cx
                sy += w * cell.cy
        self.strength = total
        if weight > 0:
            self.cx, self.cy = sx / weight, sy / weight
        else:
            self.cx, self.cy = self.x0 + self.size / 2, self.y0 + self.size / 2

    def walk(self) -> Iterable["QuadCell"]:
        yield self
        if self.children:
            for cell in self.children:
                if cell is not None:
                    yield from cell.walk()


def build_quadtree(bodies: Sequence[Body], strengths: Sequence[float]) -> "QuadCell | None":
    """Square root cell covering every body, with charges accumulated."""
    if not bodies:
        return None
    xs = [b.x for b in bodies]
    ys = [b.y for b in bodies]
    x0, y0 = min(xs), min(ys)
    size = max(max(xs) - x0, max(ys) - y0, 1.0)
    # pad so bodies on the max edge land inside the square
    root = QuadCell(x0, y0, size * (1 + 1e-9) + 1e-9)
    for body, strength in zip(bodies, strengths):
        root.insert(body, strength)
    root.accumulate()
    return root
