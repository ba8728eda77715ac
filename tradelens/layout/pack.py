"""Circle packing: front-chain sibling placement plus smallest enclosing circle.

Leaves get radius sqrt(value); each parent's children are packed around the
origin, wrapped in their smallest enclosing circle, and the whole tree is
finally scaled to fit the canvas.
"""

import logging
import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from tradelens.config import PackConfig
from tradelens.models import HierarchyNode

logger = logging.getLogger(__name__)

PATH_SEP = "/"


@dataclass(frozen=True)
class PackedCircle:
    """One positioned node. ``id`` is the slash-joined path from the root."""
    id: str
    name: str
    depth: int
    value: float
    x: float
    y: float
    r: float
    is_leaf: bool
    parent_id: str | None = None

    def contains(self, px: float, py: float) -> bool:
        return (px - self.x) ** 2 + (py - self.y) ** 2 <= self.r ** 2


class _Circle:
    __slots__ = ("x", "y", "r", "node", "children")

    def __init__(self, r: float = 0.0, node: HierarchyNode | None = None) -> None:
        self.x = 0.0
        self.y = 0.0
        self.r = r
        self.node = node
        self.children: list["_Circle"] = []


def lcg(seed: int = 1) -> Callable[[], float]:
    """Deterministic linear congruential generator in [0, 1)."""
    a, c, m = 1664525, 1013904223, 4294967296
    state = seed

    def rand() -> float:
        nonlocal state
        state = (a * state + c) % m
        return state / m

    return rand


# --- Smallest enclosing circle (Welzl, move-to-front basis) ---


def _encloses_not(a, b) -> bool:
    dr = a.r - b.r
    dx, dy = b.x - a.x, b.y - a.y
    return dr < 0 or dr * dr < dx * dx + dy * dy


def _encloses_weak(a, b) -> bool:
    dr = a.r - b.r + max(a.r, b.r, 1.0) * 1e-9
    dx, dy = b.x - a.x, b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


def _encloses_weak_all(a, basis) -> bool:
    return all(_encloses_weak(a, b) for b in basis)


def _basis2(a, b) -> _Circle:
    x21, y21, r21 = b.x - a.x, b.y - a.y, b.r - a.r
    l = math.sqrt(x21 * x21 + y21 * y21)
    out = _Circle()
    if l == 0:
        out.x, out.y, out.r = a.x, a.y, max(a.r, b.r)
        return out
    out.x = (a.x + b.x + x21 / l * r21) / 2
    out.y = (a.y + b.y + y21 / l * r21) / 2
    out.r = (l + a.r + b.r) / 2
    return out


def _basis3(a, b, c) -> _Circle:
    x1, y1, r1 = a.x, a.y, a.r
    a2, a3 = x1 - b.x, x1 - c.x
    b2, b3 = y1 - b.y, y1 - c.y
    c2, c3 = b.r - r1, c.r - r1
    d1 = x1 * x1 + y1 * y1 - r1 * r1
    d2 = d1 - b.x * b.x - b.y * b.y + b.r * b.r
    d3 = d1 - c.x * c.x - c.y * c.y + c.r * c.r
    ab = a3 * b2 - a2 * b3
    xa = (b2 * d3 - b3 * d2) / (ab * 2) - x1
    xb = (b3 * c2 - b2 * c3) / ab
    ya = (a3 * d2 - a2 * d3) / (ab * 2) - y1
    yb = (a2 * c3 - a3 * c2) / ab
    qa = xb * xb + yb * yb - 1
    qb = 2 * (r1 + xa * xb + ya * yb)
    qc = xa * xa + ya * ya - r1 * r1
    if abs(qa) > 1e-6:
        r = -(qb + math.sqrt(max(0.0, qb * qb - 4 * qa * qc))) / (2 * qa)
    else:
        r = -qc / qb
    out = _Circle(r)
    out.x = x1 + xa + xb * r
    out.y = y1 + ya + yb * r
    return out


def _basis(basis: Sequence) -> _Circle:
    if len(basis) == 1:
        out = _Circle(basis[0].r)
        out.x, out.y = basis[0].x, basis[0].y
        return out
    if len(basis) == 2:
        return _basis2(*basis)
    return _basis3(*basis)


def _extend_basis(basis: list, p) -> list:
    if _encloses_weak_all(p, basis):
        return [p]
    for b in basis:
        if _encloses_not(p, b) and _encloses_weak_all(_basis2(b, p), basis):
            return [b, p]
    for i in range(len(basis) - 1):
        for j in range(i + 1, len(basis)):
            bi, bj = basis[i], basis[j]
            if (
                _encloses_not(_basis2(bi, bj), p)
                and _encloses_not(_basis2(bi, p), bj)
                and _encloses_not(_basis2(bj, p), bi)
                and _encloses_weak_all(_basis3(bi, bj, p), basis)
            ):
                return [bi, bj, p]
    raise ArithmeticError("No enclosing basis found")


def enclose(circles: Sequence, rand: Callable[[], float] | None = None) -> _Circle | None:
    """Smallest circle enclosing every input circle (objects with x, y, r)."""
    items = list(circles)
    rand = rand or lcg()
    # Fisher-Yates shuffle, deterministic for a given generator
    m = len(items)
    while m:
        i = int(rand() * m)
        m -= 1
        items[m], items[i] = items[i], items[m]

    basis: list = []
    e: _Circle | None = None
    i = 0
    while i < len(items):
        p = items[i]
        if e is not None and _encloses_weak(e, p):
            i += 1
        else:
            basis = _extend_basis(basis, p)
            e = _basis(basis)
            i = 0
    return e


# --- Sibling packing ---


def _place(b: _Circle, a: _Circle, c: _Circle) -> None:
    """Put c tangent to both a and b."""
    dx, dy = b.x - a.x, b.y - a.y
    d2 = dx * dx + dy * dy
    if d2:
        a2 = (a.r + c.r) ** 2
        b2 = (b.r + c.r) ** 2
        if a2 > b2:
            x = (d2 + b2 - a2) / (2 * d2)
            y = math.sqrt(max(0.0, b2 / d2 - x * x))
            c.x = b.x - x * dx - y * dy
            c.y = b.y - x * dy + y * dx
        else:
            x = (d2 + a2 - b2) / (2 * d2)
            y = math.sqrt(max(0.0, a2 / d2 - x * x))
            c.x = a.x + x * dx - y * dy
            c.y = a.y + x * dy + y * dx
    else:
        c.x = a.x + c.r
        c.y = a.y


def _intersects(a: _Circle, b: _Circle) -> bool:
    dr = a.r + b.r - 1e-6
    dx, dy = b.x - a.x, b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


class _Link:
    __slots__ = ("c", "next", "prev")

    def __init__(self, c: _Circle) -> None:
        self.c = c
        self.next: "_Link" = self
        self.prev: "_Link" = self


def _score(link: _Link) -> float:
    a, b = link.c, link.next.c
    ab = a.r + b.r
    dx = (a.x * b.r + b.x * a.r) / ab
    dy = (a.y * b.r + b.y * a.r) / ab
    return dx * dx + dy * dy


def pack_siblings(circles: Sequence[_Circle], rand: Callable[[], float] | None = None) -> float:
    """Place circles tangentially without overlap, centred on the origin.

    Returns the radius of the enclosing circle.
    """
    n = len(circles)
    if n == 0:
        return 0.0
    rand = rand or lcg()

    a = circles[0]
    a.x = a.y = 0.0
    if n == 1:
        return a.r

    b = circles[1]
    a.x, b.x, b.y = -b.r, a.r, 0.0
    if n == 2:
        return a.r + b.r

    c = circles[2]
    _place(b, a, c)

    # front chain: a -> b -> c -> a
    la, lb, lc = _Link(a), _Link(b), _Link(c)
    la.next = lc.prev = lb
    lb.next = la.prev = lc
    lc.next = lb.prev = la

    i = 3
    while i < n:
        c = circles[i]
        _place(la.c, lb.c, c)
        lc = _Link(c)

        # closest intersecting circle on the front chain, walking both ways
        j, k = lb.next, la.prev
        sj, sk = lb.c.r, la.c.r
        collided = False
        while True:
            if sj <= sk:
                if _intersects(j.c, lc.c):
                    lb = j
                    la.next, lb.prev = lb, la
                    collided = True
                    break
                sj += j.c.r
                j = j.next
            else:
                if _intersects(k.c, lc.c):
                    la = k
                    la.next, lb.prev = lb, la
                    collided = True
                    break
                sk += k.c.r
                k = k.prev
            if j is k.next:
                break
        if collided:
            continue

        # insert c between a and b
        lc.prev, lc.next = la, lb
        la.next = lb.prev = lc
        lb = lc

        # new closest pair to the centroid
        best = _score(la)
        node = lc.next
        while node is not lb:
            s = _score(node)
            if s < best:
                la, best = node, s
            node = node.next
        lb = la.next
        i += 1

    front = [lb.c]
    node = lb.next
    while node is not lb:
        front.append(node.c)
        node = node.next
    e = enclose(front, rand)
    for circle in circles:
        circle.x -= e.x
        circle.y -= e.y
    return e.r


# --- Hierarchy packing ---


def _build(node: HierarchyNode) -> _Circle:
    circle = _Circle(node=node)
    circle.children = [_build(child) for child in node.children]
    if not circle.children:
        circle.r = math.sqrt(max(0.0, node.value))
    return circle


def _post_order(circle: _Circle) -> Iterator[_Circle]:
    for child in circle.children:
        yield from _post_order(child)
    yield circle


def _pack_children(circle: _Circle, pad: float, rand: Callable[[], float]) -> None:
    if not circle.children:
        return
    for child in circle.children:
        child.r += pad
    e = pack_siblings(circle.children, rand)
    for child in circle.children:
        child.r -= pad
    circle.r = e + pad


def pack(root: HierarchyNode, config: PackConfig | None = None) -> list[PackedCircle]:
    """Lay out the hierarchy as nested circles inside the configured canvas.

    Returns circles in pre-order (root first). An empty or all-zero tree
    yields a single zero-radius root circle at the canvas centre.
    """
    config = config or PackConfig()
    dx, dy = float(config.width), float(config.height)
    tree = _build(root)
    tree.x, tree.y = dx / 2, dy / 2

    rand = lcg()
    # first pass with half padding to estimate the root radius, then again
    # with padding expressed in the final canvas units
    for circle in _post_order(tree):
        _pack_children(circle, config.padding * 0.5, rand)
    if tree.r > 0:
        k_pad = tree.r / min(dx, dy)
        for circle in _post_order(tree):
            _pack_children(circle, config.padding * k_pad, rand)

    k = min(dx, dy) / (2 * tree.r) if tree.r > 0 else 0.0
    out: list[PackedCircle] = []

    def emit(circle: _Circle, parent: _Circle | None, parent_id: str | None) -> None:
        circle.r *= k
        if parent is not None:
            circle.x = parent.x + k * circle.x
            circle.y = parent.y + k * circle.y
        node = circle.node
        cid = node.name if parent_id is None else f"{parent_id}{PATH_SEP}{node.name}"
        out.append(PackedCircle(
            id=cid, name=node.name, depth=node.depth, value=node.value,
            x=circle.x, y=circle.y, r=circle.r,
            is_leaf=not circle.children, parent_id=parent_id,
        ))
        for child in circle.children:
            emit(child, circle, cid)

    emit(tree, None, None)
    logger.debug("Packed %d circles (root r=%.1f)", len(out), out[0].r)
    return out
