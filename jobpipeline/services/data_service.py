"""
Data Service

Facade over the Redis cache and the backend gateway. Owns the read-through
existence checks, company resolution, write-through commit, the work queue
protocol and cache warm-up. The pipeline talks only to this class.
"""

from typing import Any, Dict, Optional, Tuple
from datetime import datetime, timezone

from pydantic import ValidationError

from jobpipeline.cache.redis_cache import QUEUE_KEY, ExistenceKind, RedisCache
from jobpipeline.core.config import Settings
from jobpipeline.core.exceptions import (
    AlreadyExistsError,
    ExtractionEmptyError,
    PipelineException,
)
from jobpipeline.schemas.company import Company
from jobpipeline.schemas.job import JobCreate, JobPosting
from jobpipeline.scrapers.base import PostingRecord, WorkType, build_job_url
from jobpipeline.services.gateway import BackendGateway
from jobpipeline.utils.logger import get_logger, log_error

logger = get_logger(__name__)

COMPANY_ENTITY = "company"

CACHE_PREFIXES = ("job_exists:", "company_exists:", "company:name:")


def to_job_create(record: PostingRecord) -> JobCreate:
    """Build the backend payload for a record whose company is resolved."""
    captured_at = record.captured_at or datetime.now(timezone.utc)
    posted_at = record.posted_at or captured_at
    return JobCreate(
        linkedin_job_id=int(record.identifier),
        title=record.title,
        company_id=record.company_id,
        location=record.location,
        description=record.description,
        apply_url=record.apply_url,
        posted_date=posted_at.date(),
        applicants=record.applicants,
        work_type=record.work_type.value if record.work_type is not WorkType.UNSPECIFIED else None,
        skills=sorted(record.skills) if record.skills else None,
        job_post_closed_date=captured_at if record.is_closed else None,
    )


class DataService:
    """Read-through/write-through store for the pipeline."""

    def __init__(
        self,
        cache: RedisCache,
        gateway: BackendGateway,
        queue_key: str = QUEUE_KEY
    ) -> None:
        self.cache = cache
        self.gateway = gateway
        self.queue_key = queue_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "DataService":
        return cls(RedisCache.from_settings(settings), BackendGateway.from_settings(settings))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.gateway.close()
        await self.cache.close()

    # Existence

    async def posting_known(self, identifier: str) -> bool:
        """
        Whether the backend holds this posting. Cache first, then the
        gateway; both answers are cached.
        """
        cached = await self.cache.get_existence(ExistenceKind.POSTING, identifier)
        if cached.known:
            return cached.exists

        exists = await self.gateway.posting_exists(identifier)
        await self.cache.set_existence(ExistenceKind.POSTING, identifier, exists)
        return exists

    async def posting_known_for_discovery(self, identifier: str) -> bool:
        """
        Discovery-time variant of ``posting_known`` that caches only positive
        answers. A negative answer here means "not committed yet" and would
        soon be wrong.
        """
        cached = await self.cache.get_existence(ExistenceKind.POSTING, identifier)
        if cached.known and cached.exists:
            return True

        exists = await self.gateway.posting_exists(identifier)
        if exists:
            await self.cache.set_existence(ExistenceKind.POSTING, identifier, True)
        return exists

    async def forget_posting(self, identifier: str) -> None:
        """Drop the cached existence fact for one posting."""
        await self.cache.invalidate_existence(ExistenceKind.POSTING, identifier)

    # Companies

    async def ensure_company(self, name: str, image_url: Optional[str] = None) -> int:
        """
        Resolve a company name to its backend ID, creating it on first sight.

        Returns:
            int: Backend company ID
        """
        cached = await self.cache.get_entity(COMPANY_ENTITY, name)
        if cached is not None:
            try:
                return Company.model_validate(cached).company_id
            except ValidationError:
                logger.warning("Discarding malformed cached company", company=name)

        hint = await self.cache.get_existence(ExistenceKind.COMPANY, name)
        if hint.known and hint.exists:
            logger.debug("Company known to exist, fetching record", company=name)

        existing = await self.gateway.company_exists(name)
        if existing.exists and existing.company is not None:
            await self._remember_company(existing.company)
            return existing.company.company_id

        company = await self.gateway.create_company(name, image_url)
        logger.info("Created company", company=name, company_id=company.company_id)
        await self._remember_company(company)
        return company.company_id

    async def _remember_company(self, company: Company) -> None:
        await self.cache.set_entity(COMPANY_ENTITY, company.name, company.model_dump(mode="json"))
        await self.cache.set_existence(ExistenceKind.COMPANY, company.name, True)

    # Commit

    async def commit(self, record: PostingRecord) -> Optional[JobPosting]:
        """
        Persist a posting through the gateway.

        Raises:
            AlreadyExistsError: The posting is already stored (cached fact,
                fresh lookup or 409 from the backend)
            ExtractionEmptyError: The record has no title or no company
        """
        if not record.title or not record.company_name:
            raise ExtractionEmptyError(record.identifier)

        if await self.posting_known(record.identifier):
            raise AlreadyExistsError(record.identifier)

        record.company_id = await self.ensure_company(record.company_name, record.company_image_url)

        try:
            posting = await self.gateway.create_posting(to_job_create(record))
        except AlreadyExistsError:
            await self.cache.set_existence(ExistenceKind.POSTING, record.identifier, True)
            raise

        await self.cache.set_existence(ExistenceKind.POSTING, record.identifier, True)
        return posting

    # Queue

    async def enqueue(self, identifier: str) -> bool:
        """Queue an identifier. Returns False when it was already queued."""
        return await self.cache.list_push_unique(self.queue_key, identifier)

    async def dequeue(self) -> Optional[Tuple[str, str]]:
        """Pop the oldest identifier and its detail URL, or None when empty."""
        identifier = await self.cache.list_pop(self.queue_key)
        if identifier is None:
            return None
        return identifier, build_job_url(identifier)

    async def queue_size(self) -> int:
        return await self.cache.list_length(self.queue_key)

    # Maintenance

    async def warm_up(self) -> Dict[str, int]:
        """
        Preload positive existence facts for every stored posting and company.
        Failures are logged and leave the cache as it was.
        """
        summary = {"postings": 0, "companies": 0}

        try:
            identifiers = await self.gateway.list_all_posting_ids()
            summary["postings"] = await self.cache.set_existence_many(ExistenceKind.POSTING, identifiers)
        except PipelineException as e:
            log_error(e, {"operation": "warm_up", "kind": "postings"})

        try:
            names = await self.gateway.list_all_company_names()
            summary["companies"] = await self.cache.set_existence_many(ExistenceKind.COMPANY, names)
        except PipelineException as e:
            log_error(e, {"operation": "warm_up", "kind": "companies"})

        logger.info("Cache warm-up finished", **summary)
        return summary

    async def clear_cache(self) -> Dict[str, int]:
        """Empty the queue and remove all existence facts and cached companies."""
        queued = await self.queue_size()
        await self.cache.clear_list(self.queue_key)

        summary = {"queue": queued}
        for prefix in CACHE_PREFIXES:
            summary[prefix.rstrip(":").replace(":", "_")] = await self.cache.clear_prefix(prefix)

        logger.info("Cache cleared", **summary)
        return summary

    async def stats(self) -> Dict[str, Any]:
        stats = await self.cache.stats()
        stats["queue_size"] = await self.queue_size()
        return stats
