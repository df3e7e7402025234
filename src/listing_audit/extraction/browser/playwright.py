# ABOUTME: Playwright-backed page provider and paginator for live listing sites
# ABOUTME: Owns one Chromium session per run and translates driver errors into collection errors

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from listing_audit.core.models import ListingSelectors, PageSnapshot
from listing_audit.extraction.base import ExtractionTimeout, NavigationFailure
from listing_audit.utils.logging import get_logger

# Playwright's "networkidle" means no connections for this long
NETWORK_IDLE_MS = 500


class PlaywrightListingSession:
    """Chromium session implementing both the PageProvider and Paginator capabilities.

    Use as an async context manager; the browser is closed on exit whether the run
    succeeded or not.
    """

    def __init__(
        self,
        selectors: ListingSelectors | None = None,
        headless: bool = True,
        load_attempts: int = 3,
        navigation_timeout_ms: int = 30_000,
    ):
        """Initialize the session.

        Args:
            selectors: Selector set; only the next-page selector is used here
            headless: Whether to run the browser without a window
            load_attempts: Attempts for the initial page load
            navigation_timeout_ms: Timeout for a single page load
        """
        self.selectors = selectors or ListingSelectors()
        self.headless = headless
        self.load_attempts = load_attempts
        self.navigation_timeout_ms = navigation_timeout_ms
        self.logger = get_logger(__name__)

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None

    async def __aenter__(self) -> "PlaywrightListingSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            context = await self._browser.new_context()
            self._page = await context.new_page()
        except BaseException:
            await self.close()
            raise
        self.logger.info("Browser session started", headless=self.headless)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self._page = None
        self.logger.info("Browser closed")

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session not started")
        return self._page

    async def load(self, url: str) -> None:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.load_attempts),
                wait=wait_exponential(multiplier=0.5, max=5),
                retry=retry_if_exception_type(PlaywrightError),
                reraise=True,
            ):
                with attempt:
                    self.logger.debug("Loading page", url=url, attempt=attempt.retry_state.attempt_number)
                    await self.page.goto(url, timeout=self.navigation_timeout_ms)
        except PlaywrightError as e:
            self.logger.error("Page load failed", url=url, attempts=self.load_attempts, error=str(e))
            raise NavigationFailure(f"Failed to load {url}: {e}") from e

        self.logger.info("Page loaded", url=url)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ExtractionTimeout(f"No elements matching '{selector}' appeared within {timeout_ms} ms") from e
        except PlaywrightError as e:
            raise NavigationFailure(f"Page became unavailable while waiting for '{selector}': {e}") from e

    async def extract_all(self) -> PageSnapshot:
        return PageSnapshot(url=self.page.url, html=await self.page.content())

    async def has_next(self) -> bool:
        try:
            return await self.page.locator(self.selectors.next_page).count() > 0
        except PlaywrightError as e:
            raise NavigationFailure(f"Failed to look for the next page link: {e}") from e

    async def advance(self) -> None:
        try:
            await self.page.locator(self.selectors.next_page).first.click()
        except PlaywrightError as e:
            raise NavigationFailure(f"Failed to open the next page: {e}") from e

    async def wait_for_quiescence(self, quiet_ms: int, timeout_ms: int) -> None:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationFailure(f"Page did not settle within {timeout_ms} ms") from e

        if quiet_ms > NETWORK_IDLE_MS:
            await self.page.wait_for_timeout(quiet_ms - NETWORK_IDLE_MS)
