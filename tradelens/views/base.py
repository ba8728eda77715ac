"""Base class for visualization instances.

A view owns exactly one ViewState between ``mount`` and ``unmount``. Its
derived entities live in a DerivedGraph keyed on the record set and the
ViewState filter fields, so changing the year recomputes only what reads the
year.
"""

import abc
import itertools
import logging
from typing import Any, ClassVar

from tradelens.config import Config
from tradelens.errors import DataLoadError, RenderError
from tradelens.geo.zoom import ZoomTransform
from tradelens.interaction.modal import ModalSurface, record_detail
from tradelens.interaction.session import RenderSession
from tradelens.interaction.tooltip import TooltipSurface
from tradelens.layout.hierarchy import filter_records
from tradelens.loading import LoadCoordinator, LoadOutcome
from tradelens.models import ModalContent, TooltipContent, TradeRecord, ViewState, ViewStatus
from tradelens.normalizer.base import BaseNormalizer, NormalizationResult
from tradelens.pipeline import DerivedGraph
from tradelens.scales import ScaleBuilder
from tradelens.scene import Placeholder, Scene

logger = logging.getLogger(__name__)

_ids = itertools.count(1)

LOADING_MESSAGE = "Loading..."


def fmt_value(value: float) -> str:
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"


class BaseView(abc.ABC):
    kind: ClassVar[str] = "view"
    zoomable: ClassVar[bool] = False
    draggable: ClassVar[bool] = False

    def __init__(self, config: Config | None = None, view_id: str | None = None) -> None:
        self.config = config or Config()
        self.view_id = view_id or f"{self.kind}-{next(_ids)}"
        self.scales = ScaleBuilder(self.config.scales)
        self.state: ViewState | None = None
        self.status = ViewStatus.LOADING
        self.message: str | None = None
        self.session: RenderSession | None = None
        self.tooltip: TooltipSurface | None = None
        self.modal: ModalSurface | None = None
        self.scene: Scene | None = None
        self.normalization: NormalizationResult | None = None
        self.payload: Any = None

        self.graph = DerivedGraph()
        self.graph.set_input("records", [])
        self.graph.set_input("year", None)
        self.graph.set_input("category", None)
        self.graph.define("filtered", filter_records, ("records", "year", "category"))
        self.define_derived(self.graph)

    # --- Subclass hooks ---

    @property
    @abc.abstractmethod
    def size(self) -> tuple[float, float]:
        ...

    @abc.abstractmethod
    def make_normalizer(self) -> BaseNormalizer:
        ...

    def define_derived(self, graph: DerivedGraph) -> None:
        """Register view-specific derived entities."""

    @abc.abstractmethod
    def build_scene(self) -> Scene:
        """Draw the current selection. Raises RenderError when nothing is drawable."""

    def tooltip_content(self, entity_id: str) -> TooltipContent | None:
        return None

    def detail_for(self, entity_id: str) -> ModalContent | None:
        return record_detail(entity_id, self.records, self.graph.get("year"), self.graph.get("category"))

    def filter_year(self) -> int | None:
        """Year used when no year is selected."""
        years = self.years()
        return years[-1] if years else None

    # --- Lifecycle ---

    @property
    def mounted(self) -> bool:
        return self.state is not None

    def mount(self, session: RenderSession) -> None:
        if self.mounted:
            raise RuntimeError(f"{self.view_id} is already mounted")
        self.session = session
        self.state = ViewState(
            selected_year=self.graph.get("year"),
            selected_category=self.graph.get("category"),
        )
        self.tooltip = session.acquire(self.view_id)
        self.modal = ModalSurface(session.container)
        logger.debug("Mounted %s", self.view_id)

    def unmount(self) -> None:
        if not self.mounted:
            return
        self.stop()
        assert self.session is not None
        self.session.release(self.view_id)
        self.state = None
        self.tooltip = None
        self.modal = None
        self.scene = None
        self.session = None
        logger.debug("Unmounted %s", self.view_id)

    def stop(self) -> None:
        """Cancel any running animation."""

    def require_state(self) -> ViewState:
        if self.state is None:
            raise RuntimeError(f"{self.view_id} is not mounted")
        return self.state

    # --- Data ---

    @property
    def records(self) -> list[TradeRecord]:
        return self.graph.get("records")

    def years(self) -> list[int]:
        return sorted({r.year for r in self.records})

    def categories(self) -> list[str]:
        return sorted({r.category for r in self.records if r.category})

    def set_payload(self, payload: Any) -> NormalizationResult:
        self.payload = payload
        return self.set_normalized(self.make_normalizer().normalize(payload))

    def set_normalized(self, result: NormalizationResult) -> NormalizationResult:
        self.normalization = result
        if not result.ok:
            self.status = ViewStatus.ERROR
            self.message = result.issues[0].message if result.issues else "Unusable data"
            self.graph.set_input("records", [])
            return result
        self.graph.set_input("records", list(result.records))
        self.status = ViewStatus.READY if result.records else ViewStatus.EMPTY
        self.message = None
        if self.graph.get("year") is None:
            default = self.filter_year()
            if default is not None:
                self.select_year(default)
        logger.info("%s: %d records (%d issues)", self.view_id, len(result.records), len(result.issues))
        if result.unmapped:
            logger.debug("%s: not a known country: %s", self.view_id, ", ".join(sorted(result.unmapped)))
        return result

    def set_error(self, error: DataLoadError) -> None:
        self.status = ViewStatus.ERROR
        self.message = str(error)

    async def load(self, coordinator: LoadCoordinator, key: str) -> LoadOutcome:
        """Fetch and normalize; a load superseded by a newer one changes nothing."""
        self.status = ViewStatus.LOADING
        return await coordinator.load(key, on_result=self.set_payload, on_error=self.set_error)

    # --- Selection ---

    def select_year(self, year: int | None) -> None:
        self.graph.set_input("year", year)
        if self.state is not None:
            self.state.selected_year = year
        self.on_selection_changed()

    def select_category(self, category: str | None) -> None:
        self.graph.set_input("category", category)
        if self.state is not None:
            self.state.selected_category = category
        self.on_selection_changed()

    def on_selection_changed(self) -> None:
        if self.modal is not None:
            self.modal.close()
        if self.state is not None:
            self.state.active_modal = None

    # --- Rendering ---

    def render(self) -> Scene:
        """Scene for the current selection; never raises RenderError."""
        self.require_state()
        w, h = self.size
        if self.status is ViewStatus.ERROR:
            scene: Scene = Placeholder(w, h, message=self.message or "Failed to load data")
        elif self.status is ViewStatus.LOADING:
            scene = Placeholder(w, h, message=LOADING_MESSAGE)
        else:
            try:
                scene = self.build_scene()
            except RenderError as e:
                logger.info("%s: %s", self.view_id, e)
                scene = Placeholder(w, h)
        self.scene = scene
        return scene

    # --- Interaction hooks used by the controller ---

    def on_click(self, entity_id: str | None) -> bool:
        """Default drill-down: open the detail modal for the clicked entity."""
        state = self.require_state()
        if entity_id is None or self.modal is None:
            return False
        detail = self.detail_for(entity_id)
        if detail is None:
            return False
        self.modal.open(detail)
        state.active_modal = detail
        return True

    def drag_start(self, entity_id: str, point: tuple[float, float]) -> bool:
        return False

    def drag_move(self, entity_id: str, point: tuple[float, float]) -> None:
        pass

    def drag_end(self, entity_id: str) -> None:
        pass

    @property
    def zoom_extent(self) -> tuple[float, float]:
        return (1.0, 8.0)

    def set_zoom(self, transform: ZoomTransform) -> None:
        state = self.require_state()
        state.zoom_transform = transform
