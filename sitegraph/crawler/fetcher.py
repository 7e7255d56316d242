"""Fetch adapters: lightweight requests backend and selenium browser backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import time

import requests
from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.firefox.options import Options as FirefoxOptions
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .config import CrawlConfig
from .constants import HEAD_FALLBACK_STATUS_CODES
from .document import Document
from .types import FetchBackend, HeaderResult


LOGGER = logging.getLogger(__name__)


class FetchError(Exception):
    """Base class for failures raised by fetch adapters."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class HTTPStatusError(FetchError):
    """The server answered with an HTTP error status (>= 400)."""

    def __init__(self, url: str, status_code: int, status_text: str = "") -> None:
        super().__init__(url, f"HTTP {status_code} {status_text}".strip() + f" for {url}")
        self.status_code = status_code
        self.status_text = status_text


class TransportError(FetchError):
    """The request failed before an HTTP status was received."""


class FetchAdapter(ABC):
    """Fetch-and-parse adapter consumed by the scheduler.

    Header probes always go over plain HTTP, since a browser does not expose
    status codes; subclasses decide how full documents are materialized.
    """

    backend: FetchBackend

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._session: requests.Session | None = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            session = requests.Session()
            session.headers.update(self.config.headers())
            session.verify = self.config.verify_tls
            self._session = session
        return self._session

    def fetch_headers(self, url: str) -> HeaderResult:
        """Probe URL status and content type without downloading the body."""

        try:
            response = self.session.head(
                url,
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
            )
            if response.status_code in HEAD_FALLBACK_STATUS_CODES:
                LOGGER.debug("HEAD refused with %s for %s, retrying with GET", response.status_code, url)
                response.close()
                response = self.session.get(
                    url,
                    timeout=self.config.timeout_seconds,
                    allow_redirects=True,
                    stream=True,
                )
                response.close()
        except requests.RequestException as exc:
            raise TransportError(url, f"{exc.__class__.__name__}: {exc}") from exc

        status_text = response.reason or ""
        if response.status_code >= 400:
            raise HTTPStatusError(url, response.status_code, status_text)

        return HeaderResult(
            status_code=response.status_code,
            status_text=status_text,
            content_type=response.headers.get("Content-Type"),
            final_url=response.url or url,
        )

    @abstractmethod
    def fetch_document(self, url: str) -> Document:
        """Fetch URL and return a queryable document."""

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "FetchAdapter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RequestsAdapter(FetchAdapter):
    """Download pages with requests and parse them with BeautifulSoup/lxml."""

    backend = FetchBackend.REQUESTS

    def fetch_document(self, url: str) -> Document:
        started = time.perf_counter()
        try:
            response = self.session.get(
                url,
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise TransportError(url, f"{exc.__class__.__name__}: {exc}") from exc

        if response.status_code >= 400:
            raise HTTPStatusError(url, response.status_code, response.reason or "")

        LOGGER.debug(
            "Fetched %s (%s) in %d ms",
            url,
            response.status_code,
            int((time.perf_counter() - started) * 1000),
        )
        body = response.content if response.content is not None else b""
        return Document.from_html(body, url=response.url or url)


class SeleniumAdapter(FetchAdapter):
    """Render pages in a headless browser before parsing them.

    The browser is started lazily on the first document fetch and reused for
    the rest of the run.
    """

    backend = FetchBackend.SELENIUM

    def __init__(self, config: CrawlConfig) -> None:
        super().__init__(config)
        self._driver = None

    def fetch_document(self, url: str) -> Document:
        try:
            driver = self._get_or_create_driver()
        except RuntimeError as exc:
            raise TransportError(url, f"Failed to initialize selenium driver: {exc}") from exc

        started = time.perf_counter()
        try:
            driver.set_page_load_timeout(max(1, int(self.config.timeout_seconds)))
            driver.get(url)

            wait_seconds = self.config.selenium_wait_seconds
            if self.config.selenium_wait_selector:
                WebDriverWait(driver, wait_seconds or self.config.timeout_seconds).until(
                    EC.presence_of_element_located((By.CSS_SELECTOR, self.config.selenium_wait_selector))
                )
            elif wait_seconds:
                # Settling time for pages that hydrate after the load event.
                time.sleep(wait_seconds)

            final_url = driver.current_url or url
            page_source = driver.page_source or ""
        except WebDriverException as exc:
            raise TransportError(url, f"{exc.__class__.__name__}: {exc}") from exc

        LOGGER.debug(
            "Rendered %s in %d ms",
            url,
            int((time.perf_counter() - started) * 1000),
        )
        return Document.from_html(page_source, url=final_url)

    def close(self) -> None:
        super().close()
        if self._driver is None:
            return
        try:
            self._driver.quit()
        except WebDriverException as exc:
            LOGGER.warning("Failed to quit selenium driver cleanly: %s", exc)
        finally:
            self._driver = None

    def _get_or_create_driver(self):
        if self._driver is not None:
            return self._driver

        errors: list[str] = []

        # Try Chrome first.
        try:
            chrome_options = ChromeOptions()
            chrome_options.add_argument("--headless=new")
            chrome_options.add_argument("--disable-gpu")
            chrome_options.add_argument("--no-sandbox")
            chrome_options.add_argument("--disable-dev-shm-usage")
            chrome_options.add_argument(f"--user-agent={self.config.user_agent}")
            self._driver = webdriver.Chrome(options=chrome_options)
            return self._driver
        except WebDriverException as exc:
            errors.append(f"Chrome: {exc}")

        # Fallback to Firefox.
        try:
            firefox_options = FirefoxOptions()
            firefox_options.add_argument("-headless")
            firefox_options.set_preference("general.useragent.override", self.config.user_agent)
            self._driver = webdriver.Firefox(options=firefox_options)
            return self._driver
        except WebDriverException as exc:
            errors.append(f"Firefox: {exc}")

        raise RuntimeError("; ".join(errors) or "No usable Selenium driver found")


_ADAPTERS: dict[FetchBackend, type[FetchAdapter]] = {
    FetchBackend.REQUESTS: RequestsAdapter,
    FetchBackend.SELENIUM: SeleniumAdapter,
}


def create_adapter(config: CrawlConfig, backend: FetchBackend | str | None = None) -> FetchAdapter:
    """Build the adapter for `backend` (defaults to `config.backend`)."""

    selected = FetchBackend(backend) if backend is not None else config.backend
    return _ADAPTERS[selected](config)


__all__ = [
    "FetchAdapter",
    "FetchError",
    "HTTPStatusError",
    "RequestsAdapter",
    "SeleniumAdapter",
    "TransportError",
    "create_adapter",
]
