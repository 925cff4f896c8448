"""
Tests for the Processor: each dequeued identifier ends as exactly one of
saved, skipped or failed.
"""

import pytest
from unittest.mock import AsyncMock

from jobpipeline.cache.redis_cache import QUEUE_KEY
from jobpipeline.core.exceptions import AuthFailedError, GatewayUnavailableError
from jobpipeline.pipeline.processor import MIN_ITEM_DELAY, Outcome, Processor
from jobpipeline.pipeline.progress import ProgressReporter
from tests.fakes import FakePages

SAVED_ID = "4000000200"
MISSING_ID = "4000000201"
CONFLICT_ID = "4000000202"


@pytest.fixture
def detail_pages(load_fixture):
    valid = load_fixture("job_detail_en.html")
    return {
        SAVED_ID: valid,
        MISSING_ID: load_fixture("job_not_found.html"),
        CONFLICT_ID: valid,
    }


@pytest.fixture
def make_processor(data_service, captured_at):
    def _make(pages, **kwargs):
        kwargs.setdefault("sleep", AsyncMock())
        return Processor(data_service, pages, clock=lambda: captured_at, **kwargs)
    return _make


async def fill_queue(data_service, identifiers):
    for identifier in identifiers:
        await data_service.enqueue(identifier)


@pytest.mark.unit
class TestQueueConsumption:

    async def test_saved_failed_and_skipped(self, data_service, fake_cache, fake_gateway, detail_pages, make_processor):
        await fill_queue(data_service, [SAVED_ID, MISSING_ID, CONFLICT_ID])
        fake_gateway.conflict_ids.add(CONFLICT_ID)
        pages = FakePages(detail_pages=detail_pages)

        result = await make_processor(pages).run()

        assert (result.saved, result.skipped, result.failed) == (1, 1, 1)
        assert result.stop_reason == "queue_empty"
        assert await data_service.queue_size() == 0
        assert fake_cache.values[f"job_exists:{SAVED_ID}"] == "true"
        assert fake_cache.values[f"job_exists:{CONFLICT_ID}"] == "true"
        assert f"job_exists:{MISSING_ID}" not in fake_cache.values
        assert pages.detail_requests == [SAVED_ID, MISSING_ID, CONFLICT_ID]

    async def test_saved_posting_payload(self, data_service, fake_gateway, detail_pages, make_processor):
        await fill_queue(data_service, [SAVED_ID])

        await make_processor(FakePages(detail_pages=detail_pages)).run()

        payload = fake_gateway.postings[SAVED_ID]
        assert payload.title == "Senior Go Developer"
        assert payload.posted_date.isoformat() == "2025-01-06"
        assert payload.work_type == "Hybrid"
        assert fake_gateway.companies["Acme Robotics"].company_id == payload.company_id

    async def test_company_created_once(self, data_service, fake_gateway, detail_pages, make_processor):
        second = "4000000203"
        detail_pages[second] = detail_pages[SAVED_ID]
        await fill_queue(data_service, [SAVED_ID, second])

        result = await make_processor(FakePages(detail_pages=detail_pages)).run()

        assert result.saved == 2
        assert fake_gateway.count("create_company") == 1

    async def test_navigation_timeout_counts_as_failed(self, data_service, make_processor):
        await fill_queue(data_service, [SAVED_ID])

        result = await make_processor(FakePages()).run()

        assert result.failed == 1
        assert await data_service.queue_size() == 0

    async def test_known_posting_is_skipped_without_create(self, data_service, fake_gateway, detail_pages, make_processor):
        fake_gateway.existing_ids.add(SAVED_ID)
        await fill_queue(data_service, [SAVED_ID])

        result = await make_processor(FakePages(detail_pages=detail_pages)).run()

        assert result.skipped == 1
        assert fake_gateway.count("create_posting") == 0

    async def test_saved_without_description_is_flagged(self, data_service, make_processor):
        bare = (
            '<h1 class="topcard__title">Data Engineer</h1>'
            '<a class="topcard__org-name-link" href="https://www.linkedin.com/company/acme">Acme Robotics</a>'
        )
        await fill_queue(data_service, [SAVED_ID, MISSING_ID])
        pages = FakePages(detail_pages={SAVED_ID: bare, MISSING_ID: bare})

        result = await make_processor(pages).run()

        assert result.saved == 2
        assert result.rescrape_ids == [SAVED_ID, MISSING_ID]

    async def test_full_posting_is_not_flagged(self, data_service, detail_pages, make_processor):
        await fill_queue(data_service, [SAVED_ID])

        result = await make_processor(FakePages(detail_pages=detail_pages)).run()

        assert result.rescrape_ids == []

    async def test_empty_queue(self, make_processor):
        result = await make_processor(FakePages()).run()

        assert result.processed == 0
        assert result.stop_reason == "queue_empty"


@pytest.mark.unit
class TestLimitsAndPacing:

    async def test_limit(self, data_service, fake_cache, detail_pages, make_processor):
        await fill_queue(data_service, [SAVED_ID, MISSING_ID, CONFLICT_ID])

        result = await make_processor(FakePages(detail_pages=detail_pages)).run(limit=2)

        assert result.processed == 2
        assert result.stop_reason == "limit_reached"
        assert fake_cache.queued(QUEUE_KEY) == [CONFLICT_ID]

    async def test_sleeps_between_items_only(self, data_service, detail_pages, make_processor):
        await fill_queue(data_service, [SAVED_ID, MISSING_ID, CONFLICT_ID])
        sleep = AsyncMock()

        await make_processor(FakePages(detail_pages=detail_pages), item_delay=2.0, sleep=sleep).run()

        assert sleep.await_count == 2
        sleep.assert_awaited_with(2.0)

    def test_delay_has_a_floor(self, data_service):
        processor = Processor(data_service, FakePages(), item_delay=0)

        assert processor.item_delay == MIN_ITEM_DELAY

    async def test_reporter_counts(self, data_service, fake_gateway, detail_pages, make_processor):
        await fill_queue(data_service, [SAVED_ID, MISSING_ID, CONFLICT_ID])
        fake_gateway.conflict_ids.add(CONFLICT_ID)
        reporter = ProgressReporter(3, "Process", enabled=False)

        await make_processor(FakePages(detail_pages=detail_pages), reporter=reporter).run()

        snapshot = reporter.snapshot()
        assert (snapshot.saved, snapshot.skipped, snapshot.failed) == (1, 1, 1)


@pytest.mark.unit
class TestFatalErrors:

    async def test_backend_outage_propagates(self, data_service, fake_cache, fake_gateway, detail_pages, make_processor):
        await fill_queue(data_service, [SAVED_ID])
        fake_gateway.unavailable = True

        with pytest.raises(GatewayUnavailableError):
            await make_processor(FakePages(detail_pages=detail_pages)).run()

        assert fake_cache.queued(QUEUE_KEY) == [SAVED_ID]

    async def test_lost_login_propagates(self, data_service, make_processor):
        pages = FakePages()

        async def redirected(identifier):
            raise AuthFailedError("Session was redirected to the login page")

        pages.detail_page = redirected

        with pytest.raises(AuthFailedError):
            await make_processor(pages).process_one(SAVED_ID, f"https://www.linkedin.com/jobs/view/{SAVED_ID}/")

    async def test_process_one_outcome(self, detail_pages, make_processor):
        processor = make_processor(FakePages(detail_pages=detail_pages))

        outcome = await processor.process_one(SAVED_ID, f"https://www.linkedin.com/jobs/view/{SAVED_ID}/")

        assert outcome is Outcome.SAVED
