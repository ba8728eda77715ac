"""Render session: the resources shared by every mounted view."""

import logging

from tradelens.config import TooltipConfig
from tradelens.interaction.tooltip import Rect, TooltipSurface
from tradelens.scheduler import FrameScheduler

logger = logging.getLogger(__name__)


class RenderSession:
    """Owns the single tooltip surface and the frame scheduler.

    Views ``acquire`` on mount and ``release`` on unmount. The tooltip is
    created on the first acquire and destroyed when the last holder releases.
    """

    def __init__(
        self,
        container: Rect,
        tooltip_config: TooltipConfig | None = None,
        scheduler: FrameScheduler | None = None,
    ) -> None:
        self.container = container
        self.tooltip_config = tooltip_config or TooltipConfig()
        self.scheduler = scheduler or FrameScheduler()
        self._tooltip: TooltipSurface | None = None
        self._holders: set[str] = set()
        self.tooltips_created = 0

    @property
    def refcount(self) -> int:
        return len(self._holders)

    @property
    def tooltip(self) -> TooltipSurface | None:
        return self._tooltip

    def acquire(self, holder: str) -> TooltipSurface:
        if holder in self._holders:
            raise ValueError(f"{holder!r} already holds this session")
        if self._tooltip is None:
            self._tooltip = TooltipSurface(self.container, self.tooltip_config)
            self.tooltips_created += 1
            logger.debug("Tooltip surface created")
        self._holders.add(holder)
        return self._tooltip

    def release(self, holder: str) -> None:
        if holder not in self._holders:
            raise ValueError(f"{holder!r} does not hold this session")
        self._holders.discard(holder)
        if self._tooltip is not None:
            self._tooltip.hide(owner=holder)
        if not self._holders:
            self._tooltip = None
            logger.debug("Tooltip surface destroyed")
