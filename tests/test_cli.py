"""Tests for the render command."""

import json
import sys

import pytest

from tradelens import cli
from tradelens.errors import DataLoadError
from tradelens.scene import CircleMark, LineMark, PathMark


@pytest.fixture()
def data_dir(tmp_path, nested_payload, transfer_rows, world):
    (tmp_path / "suppliers.json").write_text(json.dumps(nested_payload))
    (tmp_path / "transfers.json").write_text(json.dumps(transfer_rows))
    (tmp_path / "world.json").write_text(json.dumps(world))
    return tmp_path


class TestRenderView:
    def test_network_settles(self, data_dir, config):
        scene = cli.render_view("network", data_dir / "suppliers.json", config)
        assert not scene.is_placeholder
        assert len([m for m in scene.marks if isinstance(m, CircleMark)]) == 6

    def test_map_with_world(self, data_dir, config):
        scene = cli.render_view(
            "map", data_dir / "transfers.json", config, year=2020, world=data_dir / "world.json",
        )
        assert {m.entity_id for m in scene.marks if isinstance(m, PathMark)} == {"Japan", "India", "Egypt"}

    def test_line_chart_from_csv(self, tmp_path, config):
        path = tmp_path / "suppliers.csv"
        path.write_text("supplier,2019,2020\nUnited States,10000,9000\nRussia,5000,3000\n")
        scene = cli.render_view("line", path, config)
        assert {m.entity_id for m in scene.marks if isinstance(m, LineMark) and m.entity_id} == {"United States", "Russia"}

    def test_flow_needs_supplier_shapes(self, data_dir, config):
        scene = cli.render_view("flow", data_dir / "suppliers.json", config, world=data_dir / "world.json")
        assert scene.is_placeholder

    def test_empty_selection_is_placeholder(self, data_dir, config):
        scene = cli.render_view("chord", data_dir / "suppliers.json", config, year=1999)
        assert scene.is_placeholder

    def test_missing_world_raises(self, data_dir, config):
        with pytest.raises(DataLoadError):
            cli.render_view("map", data_dir / "transfers.json", config, world=data_dir / "nope.json")


class TestMain:
    def _run(self, monkeypatch, *argv):
        monkeypatch.setattr(sys, "argv", ["tradelens", *argv])
        cli.main()

    def test_render_svg(self, monkeypatch, data_dir, capsys):
        out = data_dir / "out" / "net.svg"
        self._run(monkeypatch, "--config", str(data_dir / "none.yaml"),
                  "render", "network", str(data_dir / "suppliers.json"), "-o", str(out))
        assert out.read_text().startswith("<svg")
        assert f"Output: {out}" in capsys.readouterr().out

    def test_render_png(self, monkeypatch, data_dir):
        out = data_dir / "parallel.png"
        self._run(monkeypatch, "--config", str(data_dir / "none.yaml"),
                  "render", "parallel", str(data_dir / "suppliers.json"), "--format", "png", "-o", str(out))
        assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_placeholder_notice(self, monkeypatch, data_dir, capsys):
        out = data_dir / "chord.svg"
        self._run(monkeypatch, "--config", str(data_dir / "none.yaml"),
                  "render", "chord", str(data_dir / "suppliers.json"), "--year", "1999", "-o", str(out))
        assert "placeholder" in capsys.readouterr().out
        assert "No data for this selection" in out.read_text()

    def test_missing_data_exits(self, monkeypatch, data_dir, capsys):
        with pytest.raises(SystemExit) as exc:
            self._run(monkeypatch, "--config", str(data_dir / "none.yaml"),
                      "render", "network", str(data_dir / "missing.json"), "-o", str(data_dir / "x.svg"))
        assert exc.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_no_command_prints_help(self, monkeypatch, capsys):
        self._run(monkeypatch)
        assert "usage" in capsys.readouterr().out
