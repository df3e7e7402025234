# ABOUTME: Collection-validation engine driving the fetch/extract/paginate loop to a target count
# ABOUTME: Audits newest-first ordering of the collected records and builds the validation report

import asyncio
import inspect
import time
from collections.abc import Callable, Sequence

from listing_audit.core.models import (
    BatchEvent,
    CollectionState,
    EnginePhase,
    ErrorEvent,
    ListingSelectors,
    ProgressEvent,
    Record,
    ResultEvent,
    SortViolation,
    StatusEvent,
    StopReason,
    ValidationReport,
)
from listing_audit.extraction.base import NavigationFailure, PageProvider, Paginator, ProgressSink, RunCancelled
from listing_audit.extraction.records import RecordExtractor
from listing_audit.utils.logging import get_logger, log_engine_step

DEFAULT_TARGET_COUNT = 100

logger = get_logger(__name__)


def audit_order(records: Sequence[Record]) -> list[SortViolation]:
    """Find every adjacent pair where the earlier record is older than the next one.

    Equal sort keys are accepted in either order. Positions are 1-based indices
    of the earlier record, in ascending order.
    """
    violations = []
    for i in range(len(records) - 1):
        current, following = records[i], records[i + 1]
        if current.sort_key < following.sort_key:
            violations.append(SortViolation(position=i + 1, current=current, next=following))
    return violations


def build_report(state: CollectionState, violations: Sequence[SortViolation]) -> ValidationReport:
    return ValidationReport(
        is_sorted=not violations,
        total_collected=len(state.records),
        violations=tuple(violations),
        records=tuple(state.records),
        pages_visited=state.page_index,
        stop_reason=state.stop_reason or StopReason.TARGET_REACHED,
    )


async def _emit(sink: ProgressSink | None, event: ProgressEvent) -> None:
    if sink is None:
        return
    result = sink(event)
    if inspect.isawaitable(result):
        await result


class CollectionEngine:
    """Harvests records page by page until the target count is met, then audits their order.

    The engine owns no browser: page access and pagination go through the injected
    collaborators, and progress goes to an optional sink. All accumulation lives in
    a CollectionState created per call, so one engine can serve independent runs.
    """

    def __init__(
        self,
        page_provider: PageProvider,
        paginator: Paginator,
        extractor: RecordExtractor | None = None,
        *,
        selectors: ListingSelectors | None = None,
        selector_timeout_ms: int = 10_000,
        quiet_ms: int = 500,
        quiescence_timeout_ms: int = 30_000,
        run_deadline_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.page_provider = page_provider
        self.paginator = paginator
        self.selectors = selectors or (extractor.selectors if extractor else ListingSelectors())
        self.extractor = extractor or RecordExtractor(self.selectors)
        self.selector_timeout_ms = selector_timeout_ms
        self.quiet_ms = quiet_ms
        self.quiescence_timeout_ms = quiescence_timeout_ms
        self.run_deadline_seconds = run_deadline_seconds
        self.clock = clock

    async def collect(
        self,
        target_count: int = DEFAULT_TARGET_COUNT,
        on_progress: ProgressSink | None = None,
        *,
        start_url: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ValidationReport:
        """Run one collection and return its validation report.

        Args:
            target_count: Number of records to collect
            on_progress: Sink receiving status, batch, result and error events
            start_url: Page to load first; when None the provider's current page is used
            cancel_event: Checked between pages; when set the run aborts

        Returns:
            The validation report over whatever was collected

        Raises:
            ExtractionTimeout: If listing items never appear on a page
            NavigationFailure: If the first load or a pagination step fails
            RunCancelled: If cancel_event was set
        """
        if target_count < 1:
            raise ValueError(f"target_count must be at least 1, got {target_count}")

        state = CollectionState(target_count=target_count)
        deadline = self.clock() + self.run_deadline_seconds if self.run_deadline_seconds is not None else None

        try:
            if start_url is not None:
                state.phase = EnginePhase.LOADING
                await _emit(on_progress, StatusEvent(message="Starting listing validation...", percent=0))
                await self.page_provider.load(start_url)
                await _emit(on_progress, StatusEvent(message="Listing page loaded", percent=5))

            while not state.is_complete:
                if cancel_event is not None and cancel_event.is_set():
                    raise RunCancelled(f"Run cancelled after {len(state.records)} records")

                if deadline is not None and self.clock() >= deadline:
                    logger.warning("Run deadline reached", collected=len(state.records), target=target_count)
                    state.stop_reason = StopReason.DEADLINE_REACHED
                    break

                await self._collect_page(state, on_progress)
                if state.is_complete:
                    break

                if not await self._advance_page(state, deadline):
                    if state.stop_reason is None:
                        logger.info("No more pages available", collected=len(state.records), target=target_count)
                        state.stop_reason = StopReason.SOURCE_EXHAUSTED
                    break

            state.phase = EnginePhase.AUDITING
            await _emit(on_progress, StatusEvent(message="Validating record order...", percent=80))

            report = build_report(state, audit_order(state.records))
            state.phase = EnginePhase.DONE

            logger.info(
                "Validation complete",
                is_sorted=report.is_sorted,
                total_collected=report.total_collected,
                violations=report.violation_count,
                stop_reason=report.stop_reason.value,
            )
            await _emit(on_progress, ResultEvent(report=report))
            return report

        except Exception as e:
            failed_in = state.phase
            state.phase = EnginePhase.FAILED
            logger.error(
                "Collection run failed",
                phase=failed_in.value,
                page_index=state.page_index,
                collected=len(state.records),
                error=str(e),
                error_type=type(e).__name__,
            )
            await _emit(on_progress, ErrorEvent(message=str(e)))
            raise

    @log_engine_step("collect_page")
    async def _collect_page(self, state: CollectionState, on_progress: ProgressSink | None) -> list[Record]:
        state.phase = EnginePhase.LOADING
        await _emit(on_progress, StatusEvent(message=f"Loading page {state.page_index}...", percent=state.percent))

        await self.page_provider.wait_for_selector(self.selectors.item, self.selector_timeout_ms)

        state.phase = EnginePhase.EXTRACTING
        snapshot = await self.page_provider.extract_all()
        batch = self.extractor.extract(snapshot)[: state.remaining]
        state.records.extend(batch)

        logger.info("Collected records", page_index=state.page_index, added=len(batch), total=len(state.records))
        await _emit(
            on_progress, BatchEvent(collected=len(state.records), total=state.target_count, new_records=batch)
        )
        return batch

    @log_engine_step("advance_page")
    async def _advance_page(self, state: CollectionState, deadline: float | None) -> bool:
        state.phase = EnginePhase.PAGINATING
        if not await self.paginator.has_next():
            return False

        await self.paginator.advance()

        timeout_ms = self.quiescence_timeout_ms
        capped = False
        if deadline is not None:
            remaining_ms = int((deadline - self.clock()) * 1000)
            # A zero timeout means "wait forever" to browser drivers
            if remaining_ms <= 0:
                return self._stop_at_deadline(state)
            if remaining_ms < timeout_ms:
                timeout_ms, capped = remaining_ms, True

        try:
            await self.paginator.wait_for_quiescence(self.quiet_ms, timeout_ms)
        except NavigationFailure:
            if not capped:
                raise
            return self._stop_at_deadline(state)

        state.page_index += 1
        return True

    def _stop_at_deadline(self, state: CollectionState) -> bool:
        logger.warning(
            "Run deadline reached while paginating", collected=len(state.records), target=state.target_count
        )
        state.stop_reason = StopReason.DEADLINE_REACHED
        return False


async def collect(
    target_count: int,
    page_provider: PageProvider,
    paginator: Paginator,
    on_progress: ProgressSink | None = None,
    **options,
) -> ValidationReport:
    """Collect up to target_count records and audit their order.

    Keyword options other than start_url and cancel_event configure the engine.
    """
    run_options = {key: options.pop(key) for key in ("start_url", "cancel_event") if key in options}
    engine = CollectionEngine(page_provider, paginator, **options)
    return await engine.collect(target_count, on_progress, **run_options)
