"""CLI entry point for tradelens."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from tradelens.config import Config, load_config
from tradelens.errors import DataLoadError
from tradelens.interaction.tooltip import Rect
from tradelens.interaction.session import RenderSession
from tradelens.loading import FileDataSource, LoadCoordinator, LoadOutcome
from tradelens.output.raster import write_png
from tradelens.output.svg import write_svg
from tradelens.scene import Scene
from tradelens.views.base import BaseView
from tradelens.views.map import GeoView
from tradelens.views.network import NetworkView
from tradelens.views.registry import VIEWS

logger = logging.getLogger(__name__)


async def _load(view: BaseView, data: Path, world: Path | None) -> LoadOutcome:
    source = FileDataSource(data.parent)
    if world is not None and isinstance(view, GeoView):
        view.set_world(await source.fetch(str(world.resolve())))
    return await view.load(LoadCoordinator(source), data.name)


def render_view(
    kind: str,
    data: Path,
    config: Config,
    year: int | None = None,
    category: str | None = None,
    world: Path | None = None,
) -> Scene:
    """Load, mount and render one view, running any layout animation to rest.

    Raises DataLoadError when the dataset or world file cannot be read.
    """
    view = VIEWS[kind](config)
    w, h = view.size
    session = RenderSession(Rect(0, 0, w, h), config.tooltip)
    view.mount(session)
    try:
        outcome = asyncio.run(_load(view, data, world))
        if outcome.error is not None:
            raise outcome.error
        if year is not None:
            view.select_year(year)
        if category is not None:
            view.select_category(category)
        if isinstance(view, NetworkView):
            view.settle()
        return view.render()
    finally:
        view.unmount()


def main() -> None:
    parser = argparse.ArgumentParser(description="TradeLens")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command")

    render_parser = sub.add_parser("render", help="Render a view to a static file")
    render_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    render_parser.add_argument("view", choices=sorted(VIEWS), help="Visualization kind")
    render_parser.add_argument("data", type=Path, help="Path to a .json or .csv dataset")
    render_parser.add_argument("--year", type=int, default=None, help="Year to show (default: latest)")
    render_parser.add_argument("--category", type=str, default=None, help="Restrict to one category")
    render_parser.add_argument(
        "--world", type=Path, default=None,
        help="GeoJSON country boundaries (map and flow views)",
    )
    render_parser.add_argument("--format", choices=("svg", "png"), default="svg", help="Output format")
    render_parser.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output file. Defaults to <output_dir>/<view>.<format>",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "render":
        try:
            scene = render_view(
                args.view, args.data, config,
                year=args.year, category=args.category, world=args.world,
            )
        except DataLoadError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        out = args.output or config.resolved_output_dir / f"{args.view}.{args.format}"
        if args.format == "png":
            write_png(scene, out)
        else:
            write_svg(scene, out)
        if scene.is_placeholder:
            print(f"No data for this selection; wrote placeholder to {out}")
        else:
            print(f"Output: {out}")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
