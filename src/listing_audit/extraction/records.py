# ABOUTME: Parses listing page snapshots into normalized Record objects
# ABOUTME: Derives an integer sort key from each record's timestamp label, falling back to 0

from datetime import UTC, datetime
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from dateutil import parser as dateutil_parser

from listing_audit.core.models import NO_SCORE, UNKNOWN_AUTHOR, ListingSelectors, PageSnapshot, Record
from listing_audit.utils.logging import get_logger

logger = get_logger(__name__)


def _to_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return int(moment.timestamp() * 1000)


def parse_sort_key(age_raw: str | None) -> int:
    """Convert a timestamp label into milliseconds since the epoch.

    Tries ISO-8601 on the whole label, then on its first token (labels such as
    ``"2025-10-19T08:15:02 1760861702"``), then a general date parser. Naive
    values are read as UTC. Anything unparsable yields 0.
    """
    if not age_raw or not age_raw.strip():
        return 0

    text = age_raw.strip()
    candidates = [text]
    first_token = text.split()[0]
    if first_token != text:
        candidates.append(first_token)

    try:
        for candidate in candidates:
            try:
                return _to_millis(datetime.fromisoformat(candidate))
            except ValueError:
                continue

        return _to_millis(dateutil_parser.parse(text))
    except (ValueError, OverflowError, OSError):
        logger.debug("Unparsable timestamp, using sort key 0", age_raw=text)
        return 0


def _text(element: Tag | None) -> str:
    return element.get_text(strip=True) if element is not None else ""


class RecordExtractor:
    """Extracts records from a listing page snapshot.

    Each item container holds the title link; the element right after it holds
    the metadata (score, age, author). Items without a title or an age are
    dropped, missing score and author fall back to sentinels.
    """

    def __init__(self, selectors: ListingSelectors | None = None):
        self.selectors = selectors or ListingSelectors()

    def extract(self, snapshot: PageSnapshot) -> list[Record]:
        soup = BeautifulSoup(snapshot.html, "html.parser")
        items = soup.select(self.selectors.item)

        records: list[Record] = []
        for item in items:
            record = self._extract_item(item, snapshot.url)
            if record is not None:
                records.append(record)

        logger.debug(
            "Extracted records from page",
            url=snapshot.url,
            items=len(items),
            records=len(records),
            skipped=len(items) - len(records),
        )
        return records

    def _extract_item(self, item: Tag, page_url: str) -> Record | None:
        title_element = item.select_one(self.selectors.title)
        metadata = item.find_next_sibling()

        score_element = age_element = author_element = None
        if isinstance(metadata, Tag):
            score_element = metadata.select_one(self.selectors.score)
            age_element = metadata.select_one(self.selectors.age)
            author_element = metadata.select_one(self.selectors.author)

        if title_element is None or age_element is None:
            return None

        title = _text(title_element)
        # Precise attribute first, display text otherwise
        age_raw = str(age_element.get("title") or "").strip() or _text(age_element)
        if not title or not age_raw:
            return None

        href = title_element.get("href")
        url = urljoin(page_url, str(href)) if href else None

        return Record(
            title=title,
            url=url,
            author=_text(author_element) or UNKNOWN_AUTHOR,
            score_text=_text(score_element) or NO_SCORE,
            age_raw=age_raw,
            sort_key=parse_sort_key(age_raw),
        )
