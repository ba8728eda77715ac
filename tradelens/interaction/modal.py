"""Click-to-drill detail modal."""

import logging
from collections import defaultdict
from collections.abc import Iterable

from tradelens.interaction.tooltip import Rect
from tradelens.models import DetailRow, ModalContent, TradeRecord

logger = logging.getLogger(__name__)


def _fmt_number(value: float) -> str:
    return f"{value:,.0f}" if value == int(value) else f"{value:,.2f}"


def record_detail(
    entity_id: str,
    records: Iterable[TradeRecord],
    year: int | None = None,
    category: str | None = None,
) -> ModalContent | None:
    """Structured detail for one country: per-category quantity, suppliers and status.

    Returns None when the country has no records for the selection.
    """
    matching = [
        r for r in records
        if entity_id in (r.recipient, r.supplier)
        and (year is None or r.year == year)
        and (category is None or r.category == category)
    ]
    if not matching:
        return None

    quantities: dict[str, float] = defaultdict(float)
    suppliers: dict[str, set[str]] = defaultdict(set)
    statuses: dict[str, set[str]] = defaultdict(set)
    for r in matching:
        key = r.category or "All"
        quantities[key] += r.value
        if r.supplier and r.supplier != entity_id:
            suppliers[key].add(r.supplier)
        if r.status:
            statuses[key].add(r.status)

    rows = [
        {
            "category": key,
            "quantity": quantities[key],
            "suppliers": ", ".join(sorted(suppliers[key])),
            "status": ", ".join(sorted(statuses[key])),
        }
        for key in sorted(quantities, key=lambda k: (-quantities[k], k))
    ]
    summary = [DetailRow(label="Country", value=entity_id)]
    if year is not None:
        summary.append(DetailRow(label="Year", value=str(year)))
    if category is not None:
        summary.append(DetailRow(label="Category", value=category))
    summary.append(DetailRow(label="Total", value=_fmt_number(sum(quantities.values()))))
    return ModalContent(entity_id=entity_id, title=entity_id, summary=summary, rows=rows)


class ModalSurface:
    """At most one open modal. While open it consumes every click."""

    def __init__(self, container: Rect, width: float = 480.0, height: float = 360.0) -> None:
        self.container = container
        w = min(width, container.width)
        h = min(height, container.height)
        self.rect = Rect(
            container.x + (container.width - w) / 2,
            container.y + (container.height - h) / 2,
            w, h,
        )
        self.content: ModalContent | None = None

    @property
    def is_open(self) -> bool:
        return self.content is not None

    def open(self, content: ModalContent) -> None:
        self.content = content
        logger.debug("Modal opened for %s", content.entity_id)

    def close(self) -> None:
        if self.content is not None:
            logger.debug("Modal closed for %s", self.content.entity_id)
        self.content = None

    def handle_click(self, x: float, y: float) -> bool:
        """Returns True when the click was consumed by the modal.

        A click outside the modal's bounds closes it; either way the click
        never reaches the chart underneath.
        """
        if not self.is_open:
            return False
        if not self.rect.contains_point(x, y):
            self.close()
        return True
