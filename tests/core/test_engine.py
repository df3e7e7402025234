# ABOUTME: Tests for the collection engine loop against an in-memory listing site
# ABOUTME: Covers target truncation, early exhaustion, fatal errors, cancellation and the run deadline

import asyncio
import itertools
from unittest.mock import AsyncMock

import pytest
from conftest import FakeListingSite, age_label, descending_pages, listing_item, make_listing_html

from listing_audit.core.engine import CollectionEngine, collect
from listing_audit.core.models import BatchEvent, ResultEvent, StatusEvent, StopReason
from listing_audit.extraction.base import ExtractionTimeout, NavigationFailure, RunCancelled
from listing_audit.extraction.records import RecordExtractor


class TestCollectionLoop:
    """Test paging through the listing until the target is met"""

    @pytest.mark.asyncio
    async def test_target_reached_across_three_pages(self, events):
        site = FakeListingSite(descending_pages([40, 40, 170]))
        engine = CollectionEngine(site, site)

        report = await engine.collect(100, events)

        assert report.total_collected == 100
        assert len(report.records) == 100
        assert report.is_sorted is True
        assert report.violations == ()
        assert report.stop_reason == StopReason.TARGET_REACHED
        assert report.pages_visited == 3
        assert site.snapshots_taken == 3
        assert site.advances == 2
        assert [len(batch.new_records) for batch in events.of_kind("batch")] == [40, 40, 20]

    @pytest.mark.asyncio
    async def test_batch_is_truncated_in_extracted_order(self):
        site = FakeListingSite(descending_pages([30, 30]))
        engine = CollectionEngine(site, site)

        report = await engine.collect(45)

        assert report.total_collected == 45
        assert report.records[-1].title == "Story 44"
        assert site.advances == 1

    @pytest.mark.asyncio
    async def test_no_pagination_once_target_is_met(self):
        site = FakeListingSite(descending_pages([30, 30]))
        engine = CollectionEngine(site, site)

        report = await engine.collect(30)

        assert report.total_collected == 30
        assert site.advances == 0
        assert site.quiescence_waits == []

    @pytest.mark.asyncio
    async def test_source_exhausted_before_target(self, events):
        site = FakeListingSite(descending_pages([40]))
        engine = CollectionEngine(site, site)

        report = await engine.collect(100, events)

        assert report.total_collected == 40
        assert report.stop_reason == StopReason.SOURCE_EXHAUSTED
        assert report.is_sorted is True
        assert site.snapshots_taken == 1
        assert site.advances == 0
        assert events.kinds[-1] == "result"
        assert "error" not in events.kinds

    @pytest.mark.asyncio
    async def test_empty_pages_still_paginate(self):
        empty = make_listing_html([])
        site = FakeListingSite([empty, *descending_pages([10])])
        engine = CollectionEngine(site, site)

        report = await engine.collect(5)

        assert report.total_collected == 5
        assert site.advances == 1

    @pytest.mark.asyncio
    async def test_waits_for_items_with_configured_timeout(self):
        site = FakeListingSite(descending_pages([5]))
        engine = CollectionEngine(site, site, selector_timeout_ms=2_500)

        await engine.collect(5)

        assert site.selector_waits == [(".athing", 2_500)]

    @pytest.mark.asyncio
    async def test_waits_for_quiescence_after_each_advance(self):
        site = FakeListingSite(descending_pages([10, 10, 10]))
        engine = CollectionEngine(site, site, quiet_ms=750, quiescence_timeout_ms=20_000)

        await engine.collect(30)

        assert site.quiescence_waits == [(750, 20_000), (750, 20_000)]

    @pytest.mark.asyncio
    async def test_start_url_is_loaded_first(self, events):
        site = FakeListingSite(descending_pages([10]))
        engine = CollectionEngine(site, site)

        await engine.collect(10, events, start_url="https://news.example.com/newest")

        assert site.loaded_urls == ["https://news.example.com/newest"]
        statuses = events.of_kind("status")
        assert [status.percent for status in statuses[:2]] == [0, 5]

    @pytest.mark.asyncio
    async def test_target_count_must_be_positive(self):
        site = FakeListingSite(descending_pages([10]))
        engine = CollectionEngine(site, site)

        with pytest.raises(ValueError, match="at least 1"):
            await engine.collect(0)

        assert site.selector_waits == []


class TestOrderingAcrossPages:
    """Test audit results over collections spanning several pages"""

    @pytest.mark.asyncio
    async def test_violation_at_page_boundary(self):
        first = make_listing_html([listing_item(title=f"A{i}", age=age_label(10 + i)) for i in range(3)])
        # Newer than the last item of the first page
        second = make_listing_html([listing_item(title=f"B{i}", age=age_label(i)) for i in range(3)])
        site = FakeListingSite([first, second])

        report = await CollectionEngine(site, site).collect(6)

        assert report.is_sorted is False
        assert [violation.position for violation in report.violations] == [3]
        assert report.violations[0].current.title == "A2"
        assert report.violations[0].next.title == "B0"

    @pytest.mark.asyncio
    async def test_unparsable_age_is_kept_and_sorts_oldest(self):
        html = make_listing_html(
            [
                listing_item(title="Newest", age=age_label(1)),
                listing_item(title="Mystery", age=None, age_text="sometime"),
                listing_item(title="Older", age=age_label(5)),
            ]
        )
        site = FakeListingSite([html])

        report = await CollectionEngine(site, site).collect(3)

        assert [record.title for record in report.records] == ["Newest", "Mystery", "Older"]
        assert report.records[1].sort_key == 0
        assert [violation.position for violation in report.violations] == [2]

    @pytest.mark.asyncio
    async def test_items_missing_title_or_age_never_collected(self):
        html = make_listing_html(
            [
                listing_item(title="One", age=age_label(1)),
                listing_item(title=None, age=age_label(2)),
                listing_item(title="No age", age=None, age_text=None),
                listing_item(title="Two", age=age_label(3)),
            ]
        )
        site = FakeListingSite([html])

        report = await CollectionEngine(site, site).collect(10)

        assert [record.title for record in report.records] == ["One", "Two"]


class TestProgressEvents:
    """Test the events sent to the progress sink"""

    @pytest.mark.asyncio
    async def test_event_sequence_for_two_pages(self, events):
        site = FakeListingSite(descending_pages([10, 10]))

        await CollectionEngine(site, site).collect(20, events)

        assert events.kinds == ["status", "batch", "status", "batch", "status", "result"]

    @pytest.mark.asyncio
    async def test_status_and_batch_contents(self, events):
        site = FakeListingSite(descending_pages([10, 10]))

        report = await CollectionEngine(site, site).collect(20, events)

        loading = events.events[0]
        assert isinstance(loading, StatusEvent)
        assert loading.message == "Loading page 1..."
        assert loading.percent == 5

        second_loading = events.events[2]
        assert second_loading.message == "Loading page 2..."
        assert second_loading.percent == pytest.approx(40)

        batches = events.of_kind("batch")
        assert all(isinstance(batch, BatchEvent) for batch in batches)
        assert [(batch.collected, batch.total) for batch in batches] == [(10, 20), (20, 20)]

        auditing = events.events[-2]
        assert auditing.message == "Validating record order..."
        assert auditing.percent == 80

        result = events.events[-1]
        assert isinstance(result, ResultEvent)
        assert result.report == report

    @pytest.mark.asyncio
    async def test_async_sink_is_awaited(self):
        site = FakeListingSite(descending_pages([5]))
        sink = AsyncMock()

        await CollectionEngine(site, site).collect(5, sink)

        assert sink.await_count == 4

    @pytest.mark.asyncio
    async def test_runs_without_sink(self):
        site = FakeListingSite(descending_pages([5]))

        report = await CollectionEngine(site, site).collect(5)

        assert report.total_collected == 5


class TestFatalErrors:
    """Test runs that abort without producing a report"""

    @pytest.mark.asyncio
    async def test_selector_never_appears(self, events):
        site = FakeListingSite(descending_pages([10]), items_appear=False)

        with pytest.raises(ExtractionTimeout):
            await CollectionEngine(site, site).collect(100, events)

        assert events.kinds == ["status", "error"]
        assert ".athing" in events.events[-1].message
        assert site.snapshots_taken == 0

    @pytest.mark.asyncio
    async def test_navigation_failure_on_advance(self, events):
        site = FakeListingSite(descending_pages([10, 10]), fail_advance=True)

        with pytest.raises(NavigationFailure, match="next page"):
            await CollectionEngine(site, site).collect(20, events)

        assert events.kinds == ["status", "batch", "error"]
        assert "result" not in events.kinds

    @pytest.mark.asyncio
    async def test_navigation_failure_on_initial_load(self, events):
        site = FakeListingSite(descending_pages([10]))
        site.load = AsyncMock(side_effect=NavigationFailure("Failed to load https://news.example.com/newest"))

        with pytest.raises(NavigationFailure):
            await CollectionEngine(site, site).collect(10, events, start_url="https://news.example.com/newest")

        assert events.kinds == ["status", "error"]


class TestCancellationAndDeadline:
    """Test bounded shutdown between loop iterations"""

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, events):
        site = FakeListingSite(descending_pages([10]))
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(RunCancelled):
            await CollectionEngine(site, site).collect(10, events, cancel_event=cancel)

        assert events.kinds == ["error"]
        assert site.selector_waits == []

    @pytest.mark.asyncio
    async def test_cancel_between_pages(self):
        site = FakeListingSite(descending_pages([10, 10, 10]))
        cancel = asyncio.Event()

        def sink(event):
            if event.kind == "batch":
                cancel.set()

        with pytest.raises(RunCancelled, match="after 10 records"):
            await CollectionEngine(site, site).collect(30, sink, cancel_event=cancel)

        assert site.snapshots_taken == 1

    @pytest.mark.asyncio
    async def test_deadline_stops_collection_with_partial_report(self):
        site = FakeListingSite(descending_pages([30, 30, 30]))
        ticks = itertools.count(0, 6)
        engine = CollectionEngine(site, site, run_deadline_seconds=10, clock=lambda: next(ticks))

        report = await engine.collect(90)

        assert report.stop_reason == StopReason.DEADLINE_REACHED
        assert report.total_collected == 30
        assert site.snapshots_taken == 1

    @pytest.mark.asyncio
    async def test_quiescence_wait_is_capped_by_deadline(self):
        site = FakeListingSite(descending_pages([30, 30]))
        ticks = iter([0.0, 1.0, 8.0, 9.0])
        engine = CollectionEngine(
            site, site, run_deadline_seconds=10, quiescence_timeout_ms=30_000, clock=lambda: next(ticks)
        )

        await engine.collect(60)

        assert site.quiescence_waits == [(500, 2_000)]

    @pytest.mark.asyncio
    async def test_deadline_passed_before_settle_wait_keeps_records(self, events):
        site = FakeListingSite(descending_pages([30, 30]), settle_ms=1)
        ticks = iter([0.0, 1.0, 11.0])
        engine = CollectionEngine(site, site, run_deadline_seconds=10, clock=lambda: next(ticks))

        report = await engine.collect(60, events)

        assert report.stop_reason == StopReason.DEADLINE_REACHED
        assert report.total_collected == 30
        assert report.pages_visited == 1
        assert site.quiescence_waits == []
        assert "error" not in events.kinds
        assert events.kinds[-1] == "result"

    @pytest.mark.asyncio
    async def test_capped_settle_timeout_ends_at_deadline(self, events):
        site = FakeListingSite(descending_pages([30, 30]), settle_ms=5_000)
        ticks = iter([0.0, 1.0, 8.0])
        engine = CollectionEngine(site, site, run_deadline_seconds=10, clock=lambda: next(ticks))

        report = await engine.collect(60, events)

        assert report.stop_reason == StopReason.DEADLINE_REACHED
        assert report.total_collected == 30
        assert site.quiescence_waits == [(500, 2_000)]
        assert "error" not in events.kinds

    @pytest.mark.asyncio
    async def test_uncapped_settle_timeout_is_fatal(self, events):
        site = FakeListingSite(descending_pages([30, 30]), settle_ms=60_000)
        ticks = itertools.count(0, 1)
        engine = CollectionEngine(site, site, run_deadline_seconds=300, clock=lambda: next(ticks))

        with pytest.raises(NavigationFailure, match="did not settle within 30000 ms"):
            await engine.collect(60, events)

        assert events.kinds[-1] == "error"
        assert "result" not in events.kinds


class TestCollectFunction:
    """Test the module-level entry point"""

    @pytest.mark.asyncio
    async def test_collect_passes_options(self, events):
        site = FakeListingSite(descending_pages([15]))

        report = await collect(
            10,
            site,
            site,
            events,
            extractor=RecordExtractor(),
            selector_timeout_ms=1_000,
            start_url="https://news.example.com/newest",
        )

        assert report.total_collected == 10
        assert site.loaded_urls == ["https://news.example.com/newest"]
        assert site.selector_waits == [(".athing", 1_000)]
        assert events.kinds[-1] == "result"
