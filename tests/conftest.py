# ABOUTME: Shared fixtures: synthetic listing pages and an in-memory site standing in for the browser
# ABOUTME: Lets the collection engine and CLI run end to end without network or Chromium

from datetime import UTC, datetime, timedelta
from html import escape

import pytest

import listing_audit.config
from listing_audit.core.models import PageSnapshot
from listing_audit.extraction.base import ExtractionTimeout, NavigationFailure

BASE_TIME = datetime(2025, 10, 19, 12, 0, 0, tzinfo=UTC)


def age_label(minutes_ago: int) -> str:
    """Timestamp attribute in the listing's "<ISO> <unix seconds>" shape."""
    moment = BASE_TIME - timedelta(minutes=minutes_ago)
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')} {int(moment.timestamp())}"


def millis(minutes_ago: int) -> int:
    return int((BASE_TIME - timedelta(minutes=minutes_ago)).timestamp() * 1000)


def listing_item(
    title: str | None = "Item",
    age: str | None = None,
    age_text: str | None = "1 minute ago",
    score: str | None = "10 points",
    author: str | None = "alice",
    href: str | None = "item?id=1",
) -> dict:
    return {"title": title, "age": age, "age_text": age_text, "score": score, "author": author, "href": href}


def make_listing_html(items: list[dict]) -> str:
    """Render items the way the listing lays them out: an item row followed by a metadata row."""
    rows = []
    for index, item in enumerate(items, start=1):
        title = ""
        if item["title"] is not None:
            href = f' href="{escape(item["href"])}"' if item["href"] else ""
            title = f'<span class="titleline"><a{href}>{escape(item["title"])}</a></span>'

        meta = []
        if item["score"] is not None:
            meta.append(f'<span class="score">{escape(item["score"])}</span> by')
        if item["author"] is not None:
            meta.append(f'<a class="hnuser" href="user?id={escape(item["author"])}">{escape(item["author"])}</a>')
        if item["age_text"] is not None or item["age"] is not None:
            title_attr = f' title="{escape(item["age"])}"' if item["age"] is not None else ""
            meta.append(f'<span class="age"{title_attr}><a>{escape(item["age_text"] or "")}</a></span>')

        rows.append(f'<tr class="athing" id="{index}"><td class="title">{title}</td></tr>')
        rows.append(f'<tr><td class="subtext">{" ".join(meta)}</td></tr>')
        rows.append('<tr class="spacer"></tr>')

    return f"<html><body><table>{''.join(rows)}</table></body></html>"


def descending_pages(page_sizes: list[int], start_minutes: int = 0) -> list[str]:
    """Pages whose items get strictly older from the first page to the last."""
    pages = []
    minutes = start_minutes
    for size in page_sizes:
        items = []
        for _ in range(size):
            items.append(listing_item(title=f"Story {minutes}", age=age_label(minutes), href=f"item?id={minutes}"))
            minutes += 1
        pages.append(make_listing_html(items))
    return pages


class FakeListingSite:
    """In-memory page provider and paginator serving prepared HTML pages."""

    def __init__(
        self,
        pages: list[str],
        items_appear: bool = True,
        fail_advance: bool = False,
        base_url: str = "https://news.example.com/newest",
        settle_ms: int = 0,
    ):
        self.pages = pages
        self.items_appear = items_appear
        self.fail_advance = fail_advance
        self.base_url = base_url
        self.settle_ms = settle_ms
        self.index = 0
        self.loaded_urls: list[str] = []
        self.selector_waits: list[tuple[str, int]] = []
        self.snapshots_taken = 0
        self.advances = 0
        self.quiescence_waits: list[tuple[int, int]] = []
        self.closed = False

    async def __aenter__(self) -> "FakeListingSite":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def load(self, url: str) -> None:
        self.loaded_urls.append(url)
        self.index = 0

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        self.selector_waits.append((selector, timeout_ms))
        if not self.items_appear:
            raise ExtractionTimeout(f"No elements matching '{selector}' appeared within {timeout_ms} ms")

    async def extract_all(self) -> PageSnapshot:
        self.snapshots_taken += 1
        return PageSnapshot(url=f"{self.base_url}?p={self.index + 1}", html=self.pages[self.index])

    async def has_next(self) -> bool:
        return self.index < len(self.pages) - 1

    async def advance(self) -> None:
        if self.fail_advance:
            raise NavigationFailure("Failed to open the next page: net::ERR_CONNECTION_RESET")
        self.advances += 1
        self.index += 1

    async def wait_for_quiescence(self, quiet_ms: int, timeout_ms: int) -> None:
        self.quiescence_waits.append((quiet_ms, timeout_ms))
        if timeout_ms < self.settle_ms:
            raise NavigationFailure(f"Page did not settle within {timeout_ms} ms")


class EventRecorder:
    """Progress sink that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]

    def of_kind(self, kind: str) -> list:
        return [event for event in self.events if event.kind == kind]


@pytest.fixture
def events() -> EventRecorder:
    return EventRecorder()


@pytest.fixture(autouse=True)
def fresh_config():
    """Drop the cached global config so environment changes never leak between tests."""
    yield
    listing_audit.config._config_instance = None
