import pytest

from sitegraph.crawler.config import CrawlConfig
from sitegraph.crawler.document import Document
from sitegraph.crawler.fetcher import FetchAdapter, HTTPStatusError
from sitegraph.crawler.types import HeaderResult
from sitegraph.crawler.url import canonical_key


HTML = "text/html; charset=utf-8"


def page(body, title="Page"):
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


class FakeAdapter(FetchAdapter):
    """In-memory site: canonical key -> (status, content type, html or exception)."""

    def __init__(self, config, pages):
        super().__init__(config)
        self.pages = {canonical_key(url): value for url, value in pages.items()}
        self.header_calls = []
        self.document_calls = []
        self.closed = False

    def _lookup(self, url):
        return self.pages.get(canonical_key(url), (404, "text/html", ""))

    def fetch_headers(self, url):
        self.header_calls.append(url)
        status, content_type, _ = self._lookup(url)
        if status >= 400:
            raise HTTPStatusError(url, status, "Not Found" if status == 404 else "Error")
        return HeaderResult(status_code=status, status_text="OK", content_type=content_type, final_url=url)

    def fetch_document(self, url):
        self.document_calls.append(url)
        status, _, body = self._lookup(url)
        if isinstance(body, Exception):
            raise body
        if status >= 400:
            raise HTTPStatusError(url, status)
        return Document.from_html(body, url=url)

    def close(self):
        self.closed = True


@pytest.fixture
def config():
    return CrawlConfig(seed_url="https://example.com", max_depth=2)


@pytest.fixture
def scenario_pages():
    return {
        "https://example.com/": (200, HTML, page('<a href="/about">About us</a>', title="Home")),
        "https://example.com/about": (
            200,
            HTML,
            page('<h1>About</h1><a href="/contact">Contact</a> <a href="/">Home</a>', title="About"),
        ),
        "https://example.com/contact": (200, HTML, page("<p>mail us</p>", title="Contact")),
    }


@pytest.fixture
def make_adapter():
    def factory(config, pages):
        return FakeAdapter(config, pages)

    return factory
