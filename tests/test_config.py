"""Tests for config loading."""

from pathlib import Path

from tradelens.config import Config, load_config


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config == Config()
        assert config.force.top_k == 5
        assert config.scales.reserved_colors["Russia"] == "#DC143C"

    def test_partial_override(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "output_dir: /tmp/tradelens-out\n"
            "force:\n"
            "  top_k: 3\n"
            "normalizer:\n"
            "  aliases:\n"
            "    Burma: Myanmar\n"
        )
        config = load_config(path)
        assert config.force.top_k == 3
        assert config.force.link_distance == 100.0
        assert config.normalizer.aliases == {"Burma": "Myanmar"}
        assert config.resolved_output_dir == Path("/tmp/tradelens-out")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == Config()

    def test_relative_dirs_resolve_to_absolute(self):
        config = Config(data_dir="data")
        assert config.resolved_data_dir.name == "data"
        assert config.resolved_data_dir.is_absolute()

    def test_shipped_config_loads(self):
        config = load_config()
        assert config.map.center == (0.0, 20.0)
        assert config.flow.stroke_range == (1.0, 4.0)
        assert config.line.default_importers == ["China", "India"]
