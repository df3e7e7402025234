# ABOUTME: Capability protocols for page loading, pagination and progress reporting
# ABOUTME: Defines the fatal error hierarchy raised by collaborators and the collection engine

from collections.abc import Awaitable
from typing import Protocol

from listing_audit.core.models import PageSnapshot, ProgressEvent


class PageProvider(Protocol):
    """Protocol for a loaded page the engine can wait on and snapshot. Implementations
    wrap a rendering engine; tests use synthetic in-memory pages."""

    async def load(self, url: str) -> None:
        """Navigate to the given URL.

        Raises:
            NavigationFailure: If the page cannot be loaded
        """
        ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        """Block until at least one element matches the selector.

        Raises:
            ExtractionTimeout: If nothing matches within timeout_ms
        """
        ...

    async def extract_all(self) -> PageSnapshot:
        """Return a snapshot of the currently loaded page."""
        ...


class Paginator(Protocol):
    """Protocol for moving from the current listing page to the next one."""

    async def has_next(self) -> bool:
        """Return True when a next-page affordance is present."""
        ...

    async def advance(self) -> None:
        """Activate the next-page affordance.

        Raises:
            NavigationFailure: If the page cannot be advanced
        """
        ...

    async def wait_for_quiescence(self, quiet_ms: int, timeout_ms: int) -> None:
        """Wait until the network has been idle for quiet_ms, bounded by timeout_ms.

        Raises:
            NavigationFailure: If the page never settles
        """
        ...


class ProgressSink(Protocol):
    """Receiver of progress events. May return an awaitable, which the engine awaits."""

    def __call__(self, event: ProgressEvent) -> Awaitable[None] | None: ...


class CollectionError(Exception):
    """Base class for errors that abort a collection run."""

    pass


class ExtractionTimeout(CollectionError):
    """Raised when listing items never appear on the page."""

    pass


class NavigationFailure(CollectionError):
    """Raised when loading or advancing a page fails."""

    pass


class RunCancelled(CollectionError):
    """Raised when a run is cancelled between loop iterations."""

    pass
