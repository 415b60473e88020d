"""Tests for content source configuration."""

from pathlib import Path
from unittest.mock import MagicMock

from discovery.models import Category, SourceType
from discovery.sources import get_categories, get_source, list_sources, load_sources
from util.errors import UpstreamUnavailable

CONFIG = """
sources:
  - id: 1
    name: "Low"
    type: "video"
    api_url: "https://low.example.com/?ac=detail"
    priority: 1
  - id: 2
    name: "High"
    type: "video"
    api_url: "https://high.example.com/?ac=detail"
    priority: 10
    categories:
      - id: 5
        name: "Drama"
  - id: 3
    name: "Disabled"
    type: "video"
    api_url: "https://off.example.com/?ac=detail"
    priority: 50
    active: false
  - id: 4
    name: "Books"
    type: "novel"
    api_url: "https://books.example.com/?ac=detail"
    priority: 10
  - name: "Broken, no id"
    api_url: "https://broken.example.com/"
"""


def _write_config(tmp_path: Path) -> Path:
    config_file = tmp_path / "sources.yaml"
    config_file.write_text(CONFIG)
    return config_file


class TestLoadSources:
    def test_loads_valid_entries(self, tmp_path: Path):
        sources = load_sources(_write_config(tmp_path))

        assert [s.id for s in sources] == [1, 2, 3, 4]
        assert sources[1].categories == [Category(id="5", name="Drama")]
        assert sources[2].active is False
        assert sources[3].type == SourceType.NOVEL

    def test_missing_file(self, tmp_path: Path):
        assert load_sources(tmp_path / "nope.yaml") == []

    def test_env_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("DISCOVERY_SOURCES_PATH", str(_write_config(tmp_path)))

        assert len(load_sources()) == 4


class TestListSources:
    def test_active_sorted_by_priority_then_id(self, tmp_path: Path):
        sources = list_sources(config_path=_write_config(tmp_path))

        assert [s.id for s in sources] == [2, 4, 1]

    def test_filter_by_type(self, tmp_path: Path):
        sources = list_sources(SourceType.VIDEO, config_path=_write_config(tmp_path))

        assert [s.id for s in sources] == [2, 1]

    def test_get_source_skips_inactive(self, tmp_path: Path):
        config = _write_config(tmp_path)

        assert get_source(1, config).name == "Low"
        assert get_source(3, config) is None
        assert get_source(99, config) is None


class TestGetCategories:
    def test_preset_categories_win(self, tmp_path: Path):
        source = get_source(2, _write_config(tmp_path))
        client = MagicMock()

        assert get_categories(source, client) == [Category(id="5", name="Drama")]
        client.list_categories.assert_not_called()

    def test_falls_back_to_upstream(self, tmp_path: Path):
        source = get_source(1, _write_config(tmp_path))
        client = MagicMock()
        client.list_categories.return_value = [Category(id="1", name="Movies")]

        assert get_categories(source, client) == [Category(id="1", name="Movies")]
        client.list_categories.assert_called_once_with(source.api_url)

    def test_upstream_failure_gives_empty(self, tmp_path: Path):
        source = get_source(1, _write_config(tmp_path))
        client = MagicMock()
        client.list_categories.side_effect = UpstreamUnavailable("down")

        assert get_categories(source, client) == []
