"""Scale factory: pure mapping functions for color, radius and position.

Every builder accepts degenerate input (empty, all-equal or all-zero values)
and returns a constant default instead of failing.
"""

import logging
import math
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import matplotlib
from matplotlib.colors import Normalize, to_hex

from tradelens.config import ScaleConfig

logger = logging.getLogger(__name__)

# --- Palettes ---

SEQUENTIAL_CMAP = "YlOrRd"
CATEGORICAL_CMAP = "tab10"


def palette_colors(name: str) -> list[str]:
    """Hex colors of a listed matplotlib colormap."""
    return [to_hex(c) for c in matplotlib.colormaps[name].colors]


CATEGORICAL_PALETTE = palette_colors(CATEGORICAL_CMAP)

FALLBACK_COLOR = "#cccccc"


@dataclass(frozen=True)
class ScaleSpec:
    """A domain, a range and the mapping between them."""
    kind: str
    domain: tuple[Any, ...]
    range: tuple[Any, ...]
    fn: Callable[[Any], Any]
    degenerate: bool = False

    def __call__(self, value: Any) -> Any:
        return self.fn(value)


def extent(values: Iterable[float]) -> tuple[float, float] | None:
    """(min, max) of the finite values, or None if there are none."""
    finite = [float(v) for v in values if v is not None and math.isfinite(float(v))]
    if not finite:
        return None
    return min(finite), max(finite)


def _is_degenerate(domain: tuple[float, float] | None) -> bool:
    if domain is None:
        return True
    lo, hi = domain
    return hi <= lo


# --- Numeric scales ---


def linear(
    domain: tuple[float, float] | None,
    range_: tuple[float, float],
    clamp: bool = False,
) -> ScaleSpec:
    r0, r1 = range_
    if _is_degenerate(domain):
        mid = (r0 + r1) / 2
        return ScaleSpec("linear", tuple(domain or ()), range_, lambda _v: mid, degenerate=True)

    d0, d1 = domain

    def fn(v: float) -> float:
        t = (float(v) - d0) / (d1 - d0)
        if clamp:
            t = min(1.0, max(0.0, t))
        return r0 + t * (r1 - r0)

    return ScaleSpec("linear", domain, range_, fn)


def sqrt_radius(domain: tuple[float, float] | None, range_: tuple[float, float]) -> ScaleSpec:
    """Square-root scale: area, not radius, tracks the value.

    Degenerate domains return the minimum radius for every input.
    """
    r0, r1 = range_
    if _is_degenerate(domain) or domain[1] <= 0:
        return ScaleSpec("sqrt", tuple(domain or ()), range_, lambda _v: r0, degenerate=True)

    d0, d1 = max(0.0, domain[0]), domain[1]
    s0, s1 = math.sqrt(d0), math.sqrt(d1)
    if s1 == s0:
        return ScaleSpec("sqrt", domain, range_, lambda _v: r0, degenerate=True)

    def fn(v: float) -> float:
        v = max(0.0, float(v))
        t = (math.sqrt(v) - s0) / (s1 - s0)
        return r0 + min(1.0, max(0.0, t)) * (r1 - r0)

    return ScaleSpec("sqrt", (d0, d1), range_, fn)


def point(
    items: Sequence[Hashable],
    range_: tuple[float, float],
    padding: float = 0.0,
) -> ScaleSpec:
    """Evenly spaced positions for a discrete domain, in declared order.

    A single item sits at the middle of the range. Unknown items map to None.
    """
    items = list(dict.fromkeys(items))
    r0, r1 = range_
    reverse = r1 < r0
    start, stop = (r1, r0) if reverse else (r0, r1)
    n = len(items)
    step = (stop - start) / max(1.0, n - 1 + padding * 2)
    start += (stop - start - step * (n - 1)) * 0.5
    positions = [start + step * i for i in range(n)]
    if reverse:
        positions.reverse()
    lookup = dict(zip(items, positions))
    return ScaleSpec("point", tuple(items), range_, lookup.get, degenerate=n == 0)


# --- Color scales ---


def sequential_color(
    domain: tuple[float, float] | None,
    cmap: str = SEQUENTIAL_CMAP,
) -> ScaleSpec:
    """Continuous color scale over a matplotlib colormap; values outside the domain clip."""
    colormap = matplotlib.colormaps[cmap]
    if _is_degenerate(domain):
        mid = to_hex(colormap(0.5))
        return ScaleSpec("sequential", tuple(domain or ()), (cmap,), lambda _v: mid, degenerate=True)

    norm = Normalize(vmin=domain[0], vmax=domain[1], clip=True)
    return ScaleSpec(
        "sequential",
        domain,
        (cmap,),
        lambda v: to_hex(colormap(float(norm(float(v))))),
    )


def categorical_color(
    keys: Iterable[Hashable],
    palette: Sequence[str] = CATEGORICAL_PALETTE,
    reserved: dict[str, str] | None = None,
) -> ScaleSpec:
    """Ordinal color scale where reserved keys keep fixed colors.

    Reserved colors are never drawn from the palette, so the same supplier
    has the same color in every view regardless of which other keys appear.
    """
    reserved = reserved or {}
    keys = list(dict.fromkeys(keys))
    lookup: dict[Hashable, str] = {}
    i = 0
    for key in keys:
        if key in reserved:
            lookup[key] = reserved[key]
        else:
            lookup[key] = palette[i % len(palette)]
            i += 1
    return ScaleSpec(
        "categorical",
        tuple(keys),
        tuple(palette),
        lambda k: lookup.get(k, reserved.get(k, FALLBACK_COLOR)),
        degenerate=not keys,
    )


class ScaleBuilder:
    """Binds the configured ranges to the pure scale functions."""

    def __init__(self, config: ScaleConfig | None = None) -> None:
        self.config = config or ScaleConfig()

    def radius(self, values: Iterable[float], max_radius: float | None = None) -> ScaleSpec:
        ext = extent(values)
        hi = max_radius if max_radius is not None else self.config.max_radius
        domain = (0.0, ext[1]) if ext else None
        return sqrt_radius(domain, (self.config.min_radius, hi))

    def symbol(self, values: Iterable[float], range_: tuple[float, float]) -> ScaleSpec:
        ext = extent(values)
        return sqrt_radius((0.0, ext[1]) if ext else None, range_)

    def stroke(self, values: Iterable[float]) -> ScaleSpec:
        ext = extent(values)
        domain = (0.0, ext[1]) if ext else None
        return linear(domain, (self.config.min_stroke, self.config.max_stroke), clamp=True)

    def position(self, values: Iterable[float], range_: tuple[float, float]) -> ScaleSpec:
        return linear(extent(values), range_)

    def sequential(self, values: Iterable[float]) -> ScaleSpec:
        ext = extent(values)
        return sequential_color((0.0, ext[1]) if ext else None)

    def categorical(self, keys: Iterable[Hashable], palette: Sequence[str] = CATEGORICAL_PALETTE) -> ScaleSpec:
        return categorical_color(keys, palette, reserved=self.config.reserved_colors)
