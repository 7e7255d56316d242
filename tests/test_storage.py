import json

import pytest

from sitegraph import crawl
from sitegraph.crawler.stats import StatsCollector
from sitegraph.crawler.storage import Storage

from conftest import FakeAdapter


def test_storage_writes_outputs(tmp_path, config):
    storage = Storage(tmp_path / "out")
    rows = [{"full_url": "https://example.com", "status": "visited"}, {"full_url": "https://example.com/a"}]

    assert storage.save_links(rows) == 2
    storage.save_crawl_config(config)
    stats = StatsCollector()
    stats.finish()
    storage.save_crawl_stats(stats)

    assert json.loads(storage.links_path.read_text(encoding="utf-8")) == rows
    lines = storage.links_jsonl_path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["full_url"] for line in lines] == ["https://example.com", "https://example.com/a"]
    assert json.loads(storage.crawl_config_path.read_text(encoding="utf-8"))["max_depth"] == 2
    assert "links_by_status" in json.loads(storage.crawl_stats_path.read_text(encoding="utf-8"))
    assert storage.paths["links"] == str(storage.links_path)
    assert not list(storage.output_dir.glob("*.tmp"))


class TestCli:
    def test_build_config_from_flags(self):
        args = crawl.parse_args(
            [
                "--seed",
                "https://example.com",
                "--max_depth",
                "1",
                "--backend",
                "selenium",
                "--exclude",
                "/private/",
                "--path_prefix",
                "/docs",
                "--no_refetch_parents",
            ]
        )
        config = crawl.build_config(args)
        assert config.max_depth == 1
        assert config.backend.value == "selenium"
        assert config.exclude_patterns == ["/private/"]
        assert config.allowed_path_prefixes == ["/docs"]
        assert config.refetch_parent_anchors is False

    def test_missing_seed_is_a_config_error(self):
        with pytest.raises(ValueError):
            crawl.build_config(crawl.parse_args([]))

    def test_run_exports_links(self, tmp_path, config, scenario_pages, monkeypatch):
        monkeypatch.setattr(
            "sitegraph.crawler.scheduler.create_adapter",
            lambda cfg: FakeAdapter(cfg, scenario_pages),
        )
        result = crawl.run(config, tmp_path, only_visited=True)

        assert result["exported"] == 2
        exported = json.loads((tmp_path / "links.json").read_text(encoding="utf-8"))
        assert [row["path"] for row in exported] == ["/", "/about"]
        assert result["stats"]["links_total"] == 3
