"""
Pipeline Runner

Wires settings, the data service and a logged-in browser session together
and runs discovery, processing or both. The browser and the connections
are closed on every exit path.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Tuple

from jobpipeline.core.config import Settings
from jobpipeline.pipeline.discoverer import Discoverer, DiscoveryResult
from jobpipeline.pipeline.processor import Processor, ProcessingResult
from jobpipeline.pipeline.progress import ProgressReporter
from jobpipeline.scrapers.base import ScrapingConfig
from jobpipeline.scrapers.browser import BrowserDriver
from jobpipeline.scrapers.linkedin import LinkedInPages
from jobpipeline.services.data_service import DataService
from jobpipeline.utils.logger import get_logger, log_performance_metric

logger = get_logger(__name__)


@dataclass
class PipelineRunner:
    """Runs pipeline stages over one data service and one browser session."""

    data_service: DataService
    pages: LinkedInPages
    config: ScrapingConfig
    show_progress: bool = True

    async def discover(
        self,
        keywords: str,
        location: str,
        total_jobs: int,
        start_from: Optional[int] = None
    ) -> DiscoveryResult:
        reporter = ProgressReporter(total_jobs, "Discover", unit="queued", enabled=self.show_progress)
        discoverer = Discoverer(
            self.data_service,
            self.pages,
            reporter=reporter,
            page_delay=self.config.delay_between_requests,
        )
        async with reporter.ticking():
            result = await discoverer.run(keywords, location, total_jobs, start_from=start_from)
        reporter.finish()
        log_performance_metric("discover_duration", reporter.snapshot().elapsed_seconds, pages=result.pages)
        return result

    async def process(self, limit: int = 0) -> ProcessingResult:
        target = limit or await self.data_service.queue_size()
        reporter = ProgressReporter(target, "Process", unit="saved", enabled=self.show_progress)
        processor = Processor(
            self.data_service,
            self.pages,
            reporter=reporter,
            item_delay=self.config.item_delay,
        )
        async with reporter.ticking():
            result = await processor.run(limit=limit)
        reporter.finish()
        log_performance_metric("process_duration", reporter.snapshot().elapsed_seconds, processed=result.processed)
        return result

    async def scrape(
        self,
        keywords: str,
        location: str,
        total_jobs: int
    ) -> Tuple[DiscoveryResult, ProcessingResult]:
        """Discover ``total_jobs`` identifiers, then process as many."""
        discovery = await self.discover(keywords, location, total_jobs)
        processing = await self.process(limit=total_jobs)
        return discovery, processing


@asynccontextmanager
async def open_data_service(
    settings: Settings,
    warm_up: bool = False,
    require_backend: bool = True
) -> AsyncIterator[DataService]:
    """
    Connect to Redis and the backend.

    Maintenance commands that only touch Redis pass ``require_backend=False``.

    Raises:
        ConfigMissingError: Backend URL or API key is not configured
        QueueUnavailableError: Redis is unreachable
    """
    if require_backend:
        settings.require_pipeline()

    data_service = DataService.from_settings(settings)
    try:
        await data_service.cache.ping()
        if warm_up:
            await data_service.warm_up()
        yield data_service
    finally:
        await data_service.close()


@asynccontextmanager
async def open_pipeline(settings: Settings, show_progress: bool = True) -> AsyncIterator[PipelineRunner]:
    """Data service with a warmed cache plus a logged-in browser session."""
    config = ScrapingConfig(delay_between_requests=settings.DELAY_BETWEEN_REQUESTS)
    if settings.CONCURRENT_WORKERS > 1:
        logger.warning("CONCURRENT_WORKERS is ignored, running a single worker", requested=settings.CONCURRENT_WORKERS)

    async with open_data_service(settings, warm_up=True) as data_service:
        async with BrowserDriver.from_settings(settings, config) as driver:
            pages = LinkedInPages(driver)
            await pages.authenticate()
            yield PipelineRunner(data_service, pages, config, show_progress=show_progress)
