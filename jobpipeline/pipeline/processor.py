"""
Processor

Consumes the work queue: render each job detail page, extract a posting
record and commit it through the data service. Every dequeued identifier
ends as exactly one of saved, skipped or failed. Failed identifiers are
not requeued; an identifier interrupted by a fatal error goes back to the
queue.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from jobpipeline.core.exceptions import (
    AlreadyExistsError,
    ExtractionEmptyError,
    PipelineException,
)
from jobpipeline.pipeline.progress import ProgressReporter
from jobpipeline.scrapers.extractor import extract_posting, is_not_found_page
from jobpipeline.scrapers.linkedin import LinkedInPages
from jobpipeline.services.data_service import DataService
from jobpipeline.utils.logger import LoggerMixin, log_error, log_scraping_activity

MIN_ITEM_DELAY = 0.5


class Outcome(Enum):
    """Terminal state of one dequeued identifier."""
    SAVED = "saved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ProcessingResult:
    """Counters for one processing run."""

    saved: int = 0
    skipped: int = 0
    failed: int = 0
    stop_reason: str = ""
    # Saved without a description; eligible for a later re-scrape
    rescrape_ids: List[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.saved + self.skipped + self.failed

    def record(self, outcome: Outcome) -> None:
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Processor(LoggerMixin):
    """Consumer half of the pipeline."""

    def __init__(
        self,
        data_service: DataService,
        pages: LinkedInPages,
        reporter: Optional[ProgressReporter] = None,
        item_delay: float = MIN_ITEM_DELAY,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ) -> None:
        self.data_service = data_service
        self.pages = pages
        self.reporter = reporter
        self.item_delay = max(item_delay, MIN_ITEM_DELAY)
        self._clock = clock
        self._sleep = sleep
        self.rescrape_ids: List[str] = []

    async def run(self, limit: int = 0) -> ProcessingResult:
        """
        Process queued identifiers until the queue is empty or ``limit``
        identifiers have been handled (0 means no limit).

        Raises:
            PipelineException: Only fatal errors (backend or queue unreachable,
                lost login) escape; everything else is counted as failed
        """
        result = ProcessingResult()
        self.rescrape_ids = result.rescrape_ids
        self.logger.info("Starting processing", limit=limit)

        while True:
            if limit and result.processed >= limit:
                result.stop_reason = "limit_reached"
                break

            item = await self.data_service.dequeue()
            if item is None:
                result.stop_reason = "queue_empty"
                break

            if result.processed:
                await self._sleep(self.item_delay)

            identifier, url = item
            try:
                outcome = await self.process_one(identifier, url)
            except PipelineException:
                await self._requeue(identifier)
                raise
            result.record(outcome)

            if self.reporter:
                if outcome is Outcome.SAVED:
                    self.reporter.record_saved()
                elif outcome is Outcome.SKIPPED:
                    self.reporter.record_skipped()
                else:
                    self.reporter.record_failed()

        self.logger.info(
            "Processing finished",
            stop_reason=result.stop_reason,
            saved=result.saved,
            skipped=result.skipped,
            failed=result.failed,
            rescrape=len(result.rescrape_ids),
        )
        return result

    async def _requeue(self, identifier: str) -> None:
        """Return an in-flight identifier to the queue before a fatal error escapes."""
        try:
            await self.data_service.enqueue(identifier)
        except PipelineException as e:
            log_error(e, {"stage": "process", "job_id": identifier, "action": "requeue"})
        else:
            self.logger.warning("Returned in-flight job to the queue", job_id=identifier)

    async def process_one(self, identifier: str, url: str) -> Outcome:
        """Render, extract and commit a single posting."""
        try:
            html = await self.pages.detail_page(identifier)
            if is_not_found_page(html):
                raise ExtractionEmptyError(identifier)

            record = extract_posting(html, url, self._clock())
            await self.data_service.commit(record)

        except AlreadyExistsError:
            log_scraping_activity("process", "skipped", job_id=identifier, url=url)
            return Outcome.SKIPPED

        except PipelineException as e:
            if e.fatal:
                raise
            log_error(e, {"stage": "process", "job_id": identifier, "url": url})
            return Outcome.FAILED

        log_scraping_activity(
            "process",
            "saved",
            job_id=identifier,
            url=url,
            title=record.title,
            company=record.company_name,
        )
        if record.needs_rescrape:
            self.rescrape_ids.append(identifier)
            self.logger.warning("Saved without a description", job_id=identifier)
        return Outcome.SAVED
