"""Parallel-coordinate layout: one axis per dimension, one polyline per record."""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from tradelens.config import ParallelConfig
from tradelens.models import TradeRecord
from tradelens.scales import ScaleSpec, extent, linear, point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dimension:
    """A record field drawn as one vertical axis.

    ``domain`` fixes the order of a categorical axis; otherwise values appear
    in first-seen order.
    """
    name: str
    kind: str = "continuous"  # or "categorical"
    domain: tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        if self.kind not in ("continuous", "categorical"):
            raise ValueError(f"Unknown dimension kind: {self.kind!r}")


DEFAULT_DIMENSIONS = (
    Dimension("supplier", "categorical"),
    Dimension("recipient", "categorical"),
    Dimension("year"),
    Dimension("value"),
)


@dataclass(frozen=True)
class AxisScale:
    dimension: Dimension
    x: float
    scale: ScaleSpec
    ticks: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Polyline:
    id: str
    record: TradeRecord
    points: tuple[tuple[float, float], ...]
    key: str = field(default="")


def rank_recipients(records: Iterable[TradeRecord], n: int) -> list[str]:
    """Top-n recipients by aggregate value; ties alphabetical.

    Records flagged ``value_missing`` contribute nothing to the ranking.
    """
    totals: dict[str, float] = defaultdict(float)
    for r in records:
        if r.recipient is None:
            continue
        totals.setdefault(r.recipient, 0.0)
        if not r.value_missing:
            totals[r.recipient] += r.value
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return [name for name, _ in ranked[:n]]


def top_n(records: Iterable[TradeRecord], n: int) -> list[TradeRecord]:
    """Records whose recipient is among the top-n, in input order."""
    records = list(records)
    keep = set(rank_recipients(records, n))
    return [r for r in records if r.recipient in keep]


def _value(record: TradeRecord, dim: Dimension) -> Any:
    return getattr(record, dim.name)


def axis_scales(
    records: Sequence[TradeRecord],
    dimensions: Sequence[Dimension],
    config: ParallelConfig | None = None,
) -> list[AxisScale]:
    """One y scale per dimension, placed along a point scale of dimension names."""
    config = config or ParallelConfig()
    m = config.margin
    y_range = (config.height - m, m)
    xs = point([d.name for d in dimensions], (m, config.width - m))

    axes = []
    for dim in dimensions:
        if dim.kind == "categorical":
            domain = dim.domain or tuple(
                dict.fromkeys(v for v in (_value(r, dim) for r in records) if v is not None)
            )
            scale = point(domain, y_range)
            ticks = tuple(domain)
        else:
            ext = extent(_value(r, dim) for r in records)
            scale = linear(ext, y_range)
            ticks = ext or ()
        axes.append(AxisScale(dimension=dim, x=xs(dim.name), scale=scale, ticks=ticks))
    return axes


def polylines(records: Sequence[TradeRecord], axes: Sequence[AxisScale]) -> list[Polyline]:
    """Per record, the path visiting each axis at the mapped value.

    Records with a value outside a categorical axis' declared domain are
    skipped.
    """
    lines = []
    for i, r in enumerate(records):
        points = []
        for axis in axes:
            y = axis.scale(_value(r, axis.dimension))
            if y is None:
                break
            points.append((axis.x, y))
        else:
            lines.append(Polyline(
                id=f"{r.supplier}->{r.recipient}@{r.year}#{i}",
                record=r,
                points=tuple(points),
                key=r.recipient or r.supplier,
            ))
    return lines


def parallel_layout(
    records: Iterable[TradeRecord],
    dimensions: Sequence[Dimension] = DEFAULT_DIMENSIONS,
    config: ParallelConfig | None = None,
) -> tuple[list[AxisScale], list[Polyline]]:
    """Top-N filter, then axes and polylines."""
    config = config or ParallelConfig()
    selected = top_n(records, config.top_n)
    axes = axis_scales(selected, dimensions, config)
    lines = polylines(selected, axes)
    logger.debug("Parallel layout: %d axes, %d lines", len(axes), len(lines))
    return axes, lines
