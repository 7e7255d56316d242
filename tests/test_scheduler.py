import dataclasses
from unittest.mock import MagicMock

import pytest

from sitegraph.crawler.fetcher import RequestsAdapter
from sitegraph.crawler.frontier import LinkTable
from sitegraph.crawler.link import Link
from sitegraph.crawler.parsers import LinkExtractor
from sitegraph.crawler.scheduler import Crawler, traverse
from sitegraph.crawler.types import LinkStatus, MetaKey

from conftest import HTML, page


ROOT = "https://example.com/"


def run(config, adapter, **kwargs):
    crawler = Crawler(config, adapter=adapter, **kwargs)
    crawler.traverse()
    return crawler


class TestScenario:
    def test_depth_two_site(self, config, scenario_pages, make_adapter):
        adapter = make_adapter(config, scenario_pages)
        crawler = run(config, adapter)

        links = crawler.links
        assert len(links) == 3

        root = links[ROOT]
        about = links["https://example.com/about"]
        contact = links["https://example.com/contact"]

        assert root.crawl_depth == 0
        assert root.status == LinkStatus.VISITED
        assert root.get_meta_info(MetaKey.TITLE) == "Home"

        assert about.crawl_depth == 1
        assert about.status == LinkStatus.VISITED
        assert about.parent_url == "https://example.com"
        assert about.get_meta_info(MetaKey.H1_CONTENTS) == ["About"]

        assert contact.crawl_depth == 2
        assert contact.status == LinkStatus.UNVISITED
        assert contact.parent_url == "https://example.com/about"

        # The back-link from /about folds into the root record.
        assert root.get_meta_info(MetaKey.ORIGINAL_URLS) == ["/"]
        assert root.get_meta_info(MetaKey.LINKS_TEXT) == "Home"

        assert adapter.document_calls == ["https://example.com", "https://example.com/about"]

    def test_deeper_limit_visits_next_level(self, config, scenario_pages, make_adapter):
        config = dataclasses.replace(config, max_depth=3)
        crawler = run(config, make_adapter(config, scenario_pages))
        contact = crawler.links["https://example.com/contact"]
        assert contact.status == LinkStatus.VISITED
        assert contact.crawl_depth == 2

    def test_depth_zero_only_visits_root(self, config, scenario_pages, make_adapter):
        config = dataclasses.replace(config, max_depth=0)
        crawler = run(config, make_adapter(config, scenario_pages))
        assert crawler.links[ROOT].status == LinkStatus.VISITED
        assert crawler.links["https://example.com/about"].status == LinkStatus.UNVISITED

    def test_stats(self, config, scenario_pages, make_adapter):
        crawler = run(config, make_adapter(config, scenario_pages))
        stats = crawler.stats.to_json()
        assert stats["links_total"] == 3
        assert stats["links_by_status"]["visited"] == 2
        assert stats["links_by_status"]["unvisited"] == 1
        assert stats["counters"]["header_probes"] == 2
        assert stats["counters"]["document_fetches"] == 2
        assert stats["merge_outcomes"] == {"inserted": 2, "merged": 1}
        assert stats["pages_without_h1"] == 1
        assert stats["finished_at"] is not None


class TestErrors:
    def test_http_error_is_recorded(self, config, make_adapter):
        pages = {ROOT: (200, HTML, page('<a href="/missing">Gone</a>'))}
        crawler = run(config, make_adapter(config, pages))
        missing = crawler.links["https://example.com/missing"]
        assert missing.status == LinkStatus.VISITED_WITH_ERROR
        assert missing.status_code == 404
        assert missing.error_info == 404
        assert missing.get_meta_info(MetaKey.TITLE) is None

    def test_unexpected_error_uses_sentinel_code(self, config, make_adapter):
        pages = {
            ROOT: (200, HTML, page('<a href="/broken">Broken</a>')),
            "https://example.com/broken": (200, HTML, RuntimeError("boom")),
        }
        crawler = run(config, make_adapter(config, pages))
        broken = crawler.links["https://example.com/broken"]
        assert broken.status == LinkStatus.VISITED_WITH_ERROR
        assert broken.status_code == 500
        assert broken.error_info == "boom"
        assert crawler.stats.to_json()["errors_by_code"] == {"unexpected": 1}

    def test_root_failure_does_not_raise(self, config, make_adapter):
        crawler = run(config, make_adapter(config, {}))
        assert crawler.links[ROOT].status == LinkStatus.VISITED_WITH_ERROR
        assert len(crawler.links) == 1

    def test_errors_on_rejected_links_are_suppressed(self, config, make_adapter):
        pages = {ROOT: (200, HTML, page('<a href="/missing">Gone</a>'))}

        def policy(link):
            return link.status != LinkStatus.TRYING or link.path != "/missing"

        crawler = run(config, make_adapter(config, pages), filter_policy=policy)
        missing = crawler.links["https://example.com/missing"]
        assert missing.status == LinkStatus.SHOULD_NOT_VISIT
        assert missing.error_info is None
        assert "https://example.com/missing" not in crawler.get_links()


class TestFiltering:
    def test_excluded_links_and_their_children_are_hidden(self, config, make_adapter):
        config = dataclasses.replace(config, max_depth=3, exclude_patterns=[r"/private/"])
        pages = {
            ROOT: (200, HTML, page('<a href="/private/secret">S</a><a href="/public">P</a>')),
            "https://example.com/private/secret": (200, HTML, page('<a href="/private/deeper">D</a>')),
            "https://example.com/public": (200, HTML, page("<p>ok</p>")),
        }
        adapter = make_adapter(config, pages)
        crawler = run(config, adapter)

        secret = crawler.links["https://example.com/private/secret"]
        assert secret.status == LinkStatus.SHOULD_NOT_VISIT
        assert "https://example.com/private/deeper" not in crawler.links
        assert all("/private/" not in url for url in adapter.header_calls)

        exported = [row["full_url"] for row in crawler.get_links_array()]
        assert exported == ["https://example.com", "https://example.com/public"]

    def test_non_crawlable_links(self, config, make_adapter):
        pages = {ROOT: (200, HTML, page('<a href="mailto:hi@example.com">Mail</a>'))}
        crawler = run(config, make_adapter(config, pages))
        mail = crawler.links["mailto:hi@example.com"]
        assert mail.status == LinkStatus.SHOULD_NOT_VISIT
        assert mail.status_code is None


class TestDedup:
    def test_equivalent_urls_collapse(self, config, make_adapter):
        pages = {
            ROOT: (
                200,
                HTML,
                page(
                    '<a href="/b?x=1&amp;y=2">1</a>'
                    '<a href="/b?y=2&amp;x=1">2</a>'
                    '<a href="/c">3</a>'
                    '<a href="/c/#top">4</a>'
                    '<a href="HTTPS://EXAMPLE.COM/c">5</a>'
                ),
            ),
        }
        crawler = run(config, make_adapter(config, pages))
        assert crawler.links.keys() == [ROOT, "https://example.com/b?x=1&y=2", "https://example.com/c"]
        c = crawler.links["https://example.com/c"]
        assert c.get_meta_info(MetaKey.ORIGINAL_URLS) == ["/c/#top", "HTTPS://EXAMPLE.COM/c"]
        assert c.get_meta_info(MetaKey.LINKS_TEXT) == "5"

    def test_query_variant_of_known_page_leaves_it_untouched(self, config, make_adapter):
        config = dataclasses.replace(config, max_depth=3)
        pages = {
            ROOT: (200, HTML, page('<a href="/a">Section A</a>')),
            "https://example.com/a": (200, HTML, page('<a href="/a?sort=desc">Sort newest</a>')),
        }
        crawler = run(config, make_adapter(config, pages))

        section = crawler.links["https://example.com/a"]
        assert section.get_meta_info(MetaKey.LINKS_TEXT) == "Section A"
        assert section.get_meta_info(MetaKey.HREF) == "/a"
        assert section.get_meta_info(MetaKey.ORIGINAL_URLS) is None
        assert "https://example.com/a?sort=desc" not in crawler.links
        assert crawler.stats.to_json()["merge_outcomes"]["skipped_near_duplicate"] == 1

    def test_near_duplicates_on_one_page_are_skipped(self, config, make_adapter):
        pages = {ROOT: (200, HTML, page('<a href="/list?page=1">1</a><a href="/list?page=2">2</a>'))}
        crawler = run(config, make_adapter(config, pages))
        assert "https://example.com/list?page=2" not in crawler.links
        assert crawler.stats.to_json()["merge_outcomes"]["skipped_near_duplicate"] == 1

    def test_first_seen_depth_wins(self, config, make_adapter):
        config = dataclasses.replace(config, max_depth=3)
        pages = {
            ROOT: (200, HTML, page('<a href="/a">A</a><a href="/b">B</a>')),
            "https://example.com/a": (200, HTML, page('<a href="/b">B again</a><a href="/c">C</a>')),
            "https://example.com/b": (200, HTML, page("<p>b</p>")),
            "https://example.com/c": (200, HTML, page('<a href="/a">A again</a>')),
        }
        adapter = make_adapter(config, pages)
        crawler = run(config, adapter)

        assert crawler.links["https://example.com/b"].crawl_depth == 1
        assert crawler.links["https://example.com/c"].crawl_depth == 2
        assert crawler.links["https://example.com/a"].crawl_depth == 1
        assert adapter.document_calls.count("https://example.com/a") == 1


def test_visit_records_depth_on_the_table_record(config, make_adapter):
    crawler = Crawler(config, adapter=make_adapter(config, {}))
    held = crawler.links.add(Link("https://example.com/x"))

    visited = crawler.visit(Link("https://example.com/x/"), 2)

    assert visited is held
    assert held.crawl_depth == 2
    assert held.status == LinkStatus.VISITED_WITH_ERROR


def test_external_and_non_html_are_not_fetched(config, make_adapter):
    pages = {
        ROOT: (200, HTML, page('<a href="https://other.org/x">Out</a><a href="/report.pdf">PDF</a>')),
        "https://other.org/x": (200, HTML, page("<p>external</p>")),
        "https://example.com/report.pdf": (200, "application/pdf", ""),
    }
    adapter = make_adapter(config, pages)
    crawler = run(config, adapter)

    external = crawler.links["https://other.org/x"]
    pdf = crawler.links["https://example.com/report.pdf"]
    assert external.status == LinkStatus.VISITED
    assert pdf.status == LinkStatus.VISITED
    assert pdf.content_type == "application/pdf"
    assert adapter.document_calls == ["https://example.com"]


def test_get_links_array_only_visited(config, scenario_pages, make_adapter):
    crawler = run(config, make_adapter(config, scenario_pages))
    rows = crawler.get_links_array(include_only_visited=True)
    assert [row["path"] for row in rows] == ["/", "/about"]
    assert rows[1]["status"] == "visited"
    assert rows[1]["crawl_depth"] == 1
    assert rows[1]["meta_info"]["title"] == "About"
    assert len(crawler.get_links_array()) == 3


class ClearingExtractor(LinkExtractor):
    def extract(self, document, page_link, **kwargs):
        extracted = super().extract(document, page_link, **kwargs)
        for item in extracted:
            item.link.set_meta_info(MetaKey.HREF, None)
            item.link.set_meta_info(MetaKey.LINKS_TEXT, None)
        return extracted


class TestParentRefetch:
    def test_missing_anchor_data_is_filled_from_parent(self, config, scenario_pages, make_adapter):
        adapter = make_adapter(config, scenario_pages)
        crawler = run(config, adapter, link_extractor=ClearingExtractor())

        about = crawler.links["https://example.com/about"]
        assert about.get_meta_info(MetaKey.HREF) == "/about"
        assert about.get_meta_info(MetaKey.LINKS_TEXT) == "About us"
        assert adapter.document_calls.count("https://example.com") == 2

    def test_refetch_can_be_disabled(self, config, scenario_pages, make_adapter):
        config = dataclasses.replace(config, refetch_parent_anchors=False)
        adapter = make_adapter(config, scenario_pages)
        crawler = run(config, adapter, link_extractor=ClearingExtractor())

        assert crawler.links["https://example.com/about"].get_meta_info(MetaKey.HREF) is None
        assert adapter.document_calls.count("https://example.com") == 1

    def test_refetch_is_skipped_when_anchor_data_is_present(self, config, scenario_pages, make_adapter):
        adapter = make_adapter(config, scenario_pages)
        run(config, adapter)
        assert adapter.document_calls.count("https://example.com") == 1


def test_logger_receives_context(config, scenario_pages, make_adapter):
    logger = MagicMock()
    run(config, make_adapter(config, scenario_pages), logger=logger)
    assert logger.log.called
    contexts = [call.kwargs["extra"]["crawl_context"] for call in logger.log.call_args_list]
    assert {"url": "https://example.com/about", "depth": 1, "children": 2} in contexts


def test_adapter_ownership(config, make_adapter):
    injected = make_adapter(config, {})
    with Crawler(config, adapter=injected):
        pass
    assert injected.closed is False

    crawler = Crawler(config)
    assert isinstance(crawler.adapter, RequestsAdapter)
    crawler.close()


def test_module_traverse(scenario_pages, make_adapter, config):
    adapter = make_adapter(config, scenario_pages)
    table = traverse("https://example.com", max_depth=2, adapter=adapter)
    assert isinstance(table, LinkTable)
    assert len(table) == 3


def test_module_traverse_rejects_bad_depth():
    with pytest.raises(ValueError):
        traverse("https://example.com", max_depth=-1)
