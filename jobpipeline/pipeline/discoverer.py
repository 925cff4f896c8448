"""
Discoverer

Walks LinkedIn search results page by page and queues identifiers the
backend does not hold yet.

Pagination is driven by ``urls_seen``, the number of result URLs LinkedIn
has shown so far, not by how many of them were new. Every request uses
``start = urls_seen``, so an offset is never requested twice even when most
of a page is already known.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional

from jobpipeline.core.exceptions import BrowserError, PipelineException
from jobpipeline.pipeline.progress import ProgressReporter
from jobpipeline.scrapers.base import MAX_SEARCH_PAGES
from jobpipeline.scrapers.linkedin import LinkedInPages
from jobpipeline.scrapers.parsing import extract_identifier
from jobpipeline.services.data_service import DataService
from jobpipeline.utils.logger import LoggerMixin, log_error, log_scraping_activity


@dataclass
class DiscoveryResult:
    """Outcome of one discovery run."""

    urls_seen: int = 0
    pages: int = 0
    queued: int = 0
    known: int = 0
    duplicates: int = 0
    errors: int = 0
    stop_reason: str = ""


class Discoverer(LoggerMixin):
    """Producer half of the pipeline."""

    def __init__(
        self,
        data_service: DataService,
        pages: LinkedInPages,
        reporter: Optional[ProgressReporter] = None,
        max_pages: int = MAX_SEARCH_PAGES,
        page_delay: float = 0.0
    ) -> None:
        self.data_service = data_service
        self.pages = pages
        self.reporter = reporter
        self.max_pages = max_pages
        self.page_delay = page_delay

    async def run(
        self,
        keywords: str,
        location: str,
        target: int,
        start_from: Optional[int] = None
    ) -> DiscoveryResult:
        """
        Queue up to ``target`` new identifiers.

        Args:
            keywords: Search keywords
            location: Search location
            target: Number of newly queued identifiers to stop at; 0 means
                run until results or the page cap run out
            start_from: Explicit result offset; defaults to the current
                queue size so a restarted run continues where it stopped

        Returns:
            DiscoveryResult: Counters and the reason the run stopped
        """
        result = DiscoveryResult()
        if start_from is None:
            result.urls_seen = await self.data_service.queue_size()
        else:
            result.urls_seen = start_from

        self.logger.info(
            "Starting discovery",
            keywords=keywords,
            location=location,
            target=target,
            start=result.urls_seen,
        )

        while True:
            if target and result.queued >= target:
                result.stop_reason = "target_reached"
                break
            if result.pages >= self.max_pages:
                result.stop_reason = "page_cap"
                break

            if result.pages and self.page_delay:
                await asyncio.sleep(self.page_delay)

            try:
                urls = await self.pages.search_page(keywords, location, result.urls_seen)
            except BrowserError as e:
                log_error(e, {"stage": "discover", "start": result.urls_seen})
                result.stop_reason = "navigation_error"
                break

            result.pages += 1
            if self.reporter:
                self.reporter.set_page(result.pages)

            if not urls:
                result.stop_reason = "no_more_results"
                break

            result.urls_seen += len(urls)
            await self._queue_new(urls, result)

            log_scraping_activity(
                "discover",
                "page_done",
                page=result.pages,
                found=len(urls),
                urls_seen=result.urls_seen,
                queued=result.queued,
            )

        self.logger.info(
            "Discovery finished",
            stop_reason=result.stop_reason,
            pages=result.pages,
            urls_seen=result.urls_seen,
            queued=result.queued,
            known=result.known,
            duplicates=result.duplicates,
        )
        return result

    async def _queue_new(self, urls: List[str], result: DiscoveryResult) -> None:
        for url in urls:
            identifier = extract_identifier(url)
            if identifier is None:
                self.logger.debug("Skipping URL without job ID", url=url)
                continue

            try:
                if await self.data_service.posting_known_for_discovery(identifier):
                    result.known += 1
                    continue
                added = await self.data_service.enqueue(identifier)
            except PipelineException as e:
                if e.fatal:
                    raise
                log_error(e, {"stage": "discover", "job_id": identifier})
                result.errors += 1
                continue

            if added:
                result.queued += 1
                if self.reporter:
                    self.reporter.record_queued()
            else:
                result.duplicates += 1
