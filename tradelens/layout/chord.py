"""Chord layout: supplier -> recipient flows as arcs around a circle.

Angles are radians measured clockwise from twelve o'clock, so a point at
angle ``a`` on radius ``r`` sits at ``(r sin a, -r cos a)`` about the centre.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from tradelens.layout.network import top_k
from tradelens.models import TradeRecord

logger = logging.getLogger(__name__)

TAU = 2 * math.pi
HALF_PI = math.pi / 2
MAJOR_SUPPLIERS = ("United States", "Russia", "China")


@dataclass(frozen=True)
class ChordEnd:
    index: int
    start_angle: float
    end_angle: float
    value: float


@dataclass(frozen=True)
class ChordGroup:
    index: int
    name: str
    start_angle: float
    end_angle: float
    value: float


@dataclass(frozen=True)
class Chord:
    source: ChordEnd
    target: ChordEnd


@dataclass(frozen=True)
class ChordLayout:
    names: tuple[str, ...]
    groups: tuple[ChordGroup, ...]
    chords: tuple[Chord, ...]

    @property
    def empty(self) -> bool:
        return not self.chords


def build_chord_matrix(
    records: Iterable[TradeRecord],
    year: int | None,
    top_k_recipients: int = 5,
    always_include: Sequence[str] = MAJOR_SUPPLIERS,
) -> tuple[list[str], list[list[float]]]:
    """Square supplier -> recipient matrix over the sorted set of names.

    Each supplier contributes its top-K recipients for the year (ties
    alphabetical). ``always_include`` names are present even without flows.
    """
    flows: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for r in records:
        if r.recipient is None or r.value_missing or not r.supplier:
            continue
        if year is not None and r.year != year:
            continue
        flows[r.supplier][r.recipient] += r.value

    pairs: dict[tuple[str, str], float] = {}
    names = set(always_include)
    for supplier, recipients in flows.items():
        positive = {k: v for k, v in recipients.items() if v > 0}
        for recipient, value in top_k(positive, top_k_recipients):
            pairs[(supplier, recipient)] = value
            names.update((supplier, recipient))

    ordered = sorted(names)
    index = {name: i for i, name in enumerate(ordered)}
    matrix = [[0.0] * len(ordered) for _ in ordered]
    for (s, t), value in pairs.items():
        matrix[index[s]][index[t]] = value
    return ordered, matrix


def chord_layout(
    names: Sequence[str],
    matrix: Sequence[Sequence[float]],
    pad_angle: float = 0.05,
) -> ChordLayout:
    """Undirected chord layout; subgroups within each group sorted descending."""
    n = len(matrix)
    if len(names) != n or any(len(row) != n for row in matrix):
        raise ValueError("Chord matrix must be square and match names")

    group_sums = [sum(float(v) for v in row) for row in matrix]
    total = sum(group_sums)
    k = max(0.0, TAU - pad_angle * n) / total if total > 0 else 0.0
    dx = pad_angle if k else (TAU / n if n else 0.0)

    pending: dict[tuple[int, int], dict[str, ChordEnd | None]] = {}
    groups: list[ChordGroup] = []
    x = 0.0
    for i in range(n):
        x0 = x
        subgroups = [j for j in range(n) if matrix[i][j] or matrix[j][i]]
        # stable descending sort by the outgoing value
        subgroups.sort(key=lambda j: -matrix[i][j])
        for j in subgroups:
            value = float(matrix[i][j])
            end = ChordEnd(index=i, start_angle=x, end_angle=x + value * k, value=value)
            x = end.end_angle
            key = (min(i, j), max(i, j))
            slot = pending.setdefault(key, {"source": None, "target": None})
            if i < j:
                slot["source"] = end
            else:
                slot["target"] = end
                if i == j:
                    slot["source"] = end
        groups.append(ChordGroup(index=i, name=names[i], start_angle=x0, end_angle=x, value=group_sums[i]))
        x += dx

    chords = []
    for key in sorted(pending):
        slot = pending[key]
        source, target = slot["source"], slot["target"]
        if source is None or target is None:
            continue
        if source.value < target.value:
            source, target = target, source
        chords.append(Chord(source=source, target=target))
    return ChordLayout(names=tuple(names), groups=tuple(groups), chords=tuple(chords))


# --- Path generators ---


def _polar(r: float, angle: float, center: tuple[float, float]) -> tuple[float, float]:
    a = angle - HALF_PI
    return center[0] + r * math.cos(a), center[1] + r * math.sin(a)


def _fmt(p: tuple[float, float]) -> str:
    return f"{p[0]:.3f},{p[1]:.3f}"


def arc_path(
    start: float,
    end: float,
    inner: float,
    outer: float,
    center: tuple[float, float] = (0.0, 0.0),
) -> str:
    """Annular sector between two angles."""
    span = end - start
    if span <= 0:
        return ""
    if span >= TAU - 1e-9:
        # full ring: two half arcs per radius
        mid = start + math.pi
        return (
            f"M{_fmt(_polar(outer, start, center))}"
            f"A{outer:.3f},{outer:.3f} 0 1 1 {_fmt(_polar(outer, mid, center))}"
            f"A{outer:.3f},{outer:.3f} 0 1 1 {_fmt(_polar(outer, start, center))}"
            f"M{_fmt(_polar(inner, start, center))}"
            f"A{inner:.3f},{inner:.3f} 0 1 0 {_fmt(_polar(inner, mid, center))}"
            f"A{inner:.3f},{inner:.3f} 0 1 0 {_fmt(_polar(inner, start, center))}Z"
        )
    large = 1 if span > math.pi else 0
    return (
        f"M{_fmt(_polar(outer, start, center))}"
        f"A{outer:.3f},{outer:.3f} 0 {large} 1 {_fmt(_polar(outer, end, center))}"
        f"L{_fmt(_polar(inner, end, center))}"
        f"A{inner:.3f},{inner:.3f} 0 {large} 0 {_fmt(_polar(inner, start, center))}Z"
    )


def ribbon_path(chord: Chord, radius: float, center: tuple[float, float] = (0.0, 0.0)) -> str:
    """Two arcs on the inner radius joined by quadratic curves through the centre."""
    s, t = chord.source, chord.target
    cx, cy = center

    def arc_to(start: float, end: float) -> str:
        large = 1 if end - start > math.pi else 0
        return f"A{radius:.3f},{radius:.3f} 0 {large} 1 {_fmt(_polar(radius, end, center))}"

    parts = [f"M{_fmt(_polar(radius, s.start_angle, center))}", arc_to(s.start_angle, s.end_angle)]
    if (s.start_angle, s.end_angle) != (t.start_angle, t.end_angle):
        parts.append(f"Q{cx:.3f},{cy:.3f} {_fmt(_polar(radius, t.start_angle, center))}")
        parts.append(arc_to(t.start_angle, t.end_angle))
    parts.append(f"Q{cx:.3f},{cy:.3f} {_fmt(_polar(radius, s.start_angle, center))}Z")
    return "".join(parts)
