"""Configuration loading for tradelens."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class NormalizerConfig(BaseModel):
    min_year: int = 1950
    max_year: int = 2023
    # Extra alias spellings merged on top of the built-in table
    aliases: dict[str, str] = Field(default_factory=dict)


class ScaleConfig(BaseModel):
    min_radius: float = 5.0
    max_radius: float = 20.0
    min_stroke: float = 1.0
    max_stroke: float = 6.0
    reserved_colors: dict[str, str] = Field(default_factory=lambda: {
        "United States": "#4682B4",
        "Russia": "#DC143C",
        "China": "#FFDB58",
    })


class MapConfig(BaseModel):
    width: int = 1220
    height: int = 550
    center: tuple[float, float] = (0.0, 20.0)
    scale: float = 130.0
    zoom_extent: tuple[float, float] = (1.0, 8.0)
    symbol_min_radius: float = 0.0
    symbol_max_radius: float = 50.0


class FlowConfig(BaseModel):
    width: int = 1200
    height: int = 900
    center: tuple[float, float] = (0.0, 0.0)
    scale: float = 150.0
    # screen point the center lands on; default is (width / 2, height / 1.5)
    translate: tuple[float, float] = (600.0, 600.0)
    zoom_extent: tuple[float, float] = (1.0, 8.0)
    top_k: int = 5
    stroke_range: tuple[float, float] = (1.0, 4.0)
    recipient_radius: float = 3.0
    top_recipient_radius: float = 6.0
    top_recipient_color: str = "#8A2BE2"
    land_color: str = "#c0c0c0"


class LineConfig(BaseModel):
    width: int = 875
    height: int = 550
    margin_top: float = 60.0
    margin_right: float = 100.0
    margin_bottom: float = 60.0
    margin_left: float = 100.0
    top_n: int = 10
    # millions in the source tables, billions on the chart
    value_scale: float = 0.001
    stroke_width: float = 3.25
    dot_radius: float = 5.5
    tick_years: int = 10
    default_exporters: list[str] = Field(default_factory=lambda: ["United States", "China", "Russia"])
    default_importers: list[str] = Field(default_factory=lambda: ["China", "India"])


class ForceConfig(BaseModel):
    width: int = 1200
    height: int = 820
    top_k: int = 5
    link_distance: float = 100.0
    link_strength: float = 0.3
    charge_strength: float = -100.0
    theta: float = 0.9
    distance_min: float = 1.0
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    alpha_restart: float = 0.3
    zoom_extent: tuple[float, float] = (0.5, 5.0)


class PackConfig(BaseModel):
    width: int = 1000
    height: int = 770
    padding: float = 10.0
    transition_ms: float = 750.0


class TreemapConfig(BaseModel):
    width: int = 900
    height: int = 840
    padding: float = 2.0
    top_n: int = 20


class ParallelConfig(BaseModel):
    width: int = 1000
    height: int = 700
    margin: float = 50.0
    top_n: int = 10
    chord_top_k: int = 5
    chord_pad_angle: float = 0.05
    chord_size: int = 700


class TooltipConfig(BaseModel):
    offset_x: float = 15.0
    offset_y: float = 15.0
    width: float = 300.0
    height: float = 100.0


class SchedulerConfig(BaseModel):
    frame_ms: float = 16.0
    max_frames: int = 10_000


class Config(BaseModel):
    data_dir: str = "data"
    output_dir: str = "output"
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    scales: ScaleConfig = Field(default_factory=ScaleConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    flow: FlowConfig = Field(default_factory=FlowConfig)
    line: LineConfig = Field(default_factory=LineConfig)
    force: ForceConfig = Field(default_factory=ForceConfig)
    pack: PackConfig = Field(default_factory=PackConfig)
    treemap: TreemapConfig = Field(default_factory=TreemapConfig)
    parallel: ParallelConfig = Field(default_factory=ParallelConfig)
    tooltip: TooltipConfig = Field(default_factory=TooltipConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    @property
    def resolved_data_dir(self) -> Path:
        """Resolve data_dir relative to project root."""
        p = Path(self.data_dir)
        if p.is_absolute():
            return p
        return _project_root() / p

    @property
    def resolved_output_dir(self) -> Path:
        p = Path(self.output_dir).expanduser()
        if p.is_absolute():
            return p
        return _project_root() / p


def _project_root() -> Path:
    """Return the tradelens project root directory."""
    return Path(__file__).parent.parent


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML file. Falls back to defaults if file missing."""
    if config_path is None:
        config_path = _project_root() / "config.yaml"

    if config_path.exists():
        raw: dict[str, Any] = yaml.safe_load(config_path.read_text()) or {}
        return Config(**raw)

    return Config()
