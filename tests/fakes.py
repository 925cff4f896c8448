"""
In-memory doubles for the cache, the backend gateway and the LinkedIn page
flows. They keep the same key layout and error behaviour as the real
classes so pipeline scenarios can be checked without Redis, HTTP or Chrome.
"""

from typing import Any, Dict, List, Optional, Set

from jobpipeline.cache.redis_cache import (
    ExistenceKind,
    ExistenceResult,
    UNKNOWN,
    entity_key,
    existence_key,
)
from jobpipeline.core.exceptions import (
    AlreadyExistsError,
    GatewayUnavailableError,
    NavigationTimeoutError,
)
from jobpipeline.schemas.company import Company, CompanyExistsResponse
from jobpipeline.schemas.job import JobCreate, JobPosting
from jobpipeline.scrapers.base import build_job_url


class FakeCache:
    """Dict-backed stand-in for ``RedisCache``."""

    def __init__(self) -> None:
        self.values: Dict[str, str] = {}
        self.entities: Dict[str, Dict[str, Any]] = {}
        self.lists: Dict[str, List[str]] = {}
        self.closed = False

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        self.closed = True

    async def get_existence(self, kind: ExistenceKind, key: str) -> ExistenceResult:
        value = self.values.get(existence_key(kind, key))
        if value is None:
            return UNKNOWN
        return ExistenceResult(exists=value == "true", known=True)

    async def set_existence(self, kind: ExistenceKind, key: str, exists: bool, ttl: Optional[int] = None) -> None:
        self.values[existence_key(kind, key)] = "true" if exists else "false"

    async def set_existence_many(self, kind: ExistenceKind, keys, exists: bool = True, ttl: Optional[int] = None) -> int:
        count = 0
        for key in keys:
            await self.set_existence(kind, str(key), exists)
            count += 1
        return count

    async def invalidate_existence(self, kind: ExistenceKind, key: str) -> None:
        self.values.pop(existence_key(kind, key), None)

    async def get_entity(self, kind: str, key: str) -> Optional[Dict[str, Any]]:
        return self.entities.get(entity_key(kind, key))

    async def set_entity(self, kind: str, key: str, record: Dict[str, Any], ttl: Optional[int] = None) -> None:
        self.entities[entity_key(kind, key)] = dict(record)

    async def list_push_unique(self, list_key: str, value: str) -> bool:
        queue = self.lists.setdefault(list_key, [])
        if value in queue:
            return False
        queue.insert(0, value)
        return True

    async def list_pop(self, list_key: str) -> Optional[str]:
        queue = self.lists.get(list_key) or []
        if not queue:
            return None
        return queue.pop()

    async def list_length(self, list_key: str) -> int:
        return len(self.lists.get(list_key, []))

    async def clear_list(self, list_key: str) -> None:
        self.lists.pop(list_key, None)

    async def clear_prefix(self, prefix: str, batch_size: int = 500) -> int:
        doomed = [key for key in self.values if key.startswith(prefix)]
        doomed += [key for key in self.entities if key.startswith(prefix)]
        for key in doomed:
            self.values.pop(key, None)
            self.entities.pop(key, None)
        return len(doomed)

    async def stats(self) -> Dict[str, Any]:
        return {"connected": True, "keys": len(self.values) + len(self.entities)}

    def queued(self, list_key: str) -> List[str]:
        """Queue contents in FIFO order (oldest first)."""
        return list(reversed(self.lists.get(list_key, [])))


class FakeGateway:
    """In-memory backend with the gateway's 409 semantics."""

    def __init__(
        self,
        posting_ids: Optional[List[str]] = None,
        company_names: Optional[List[str]] = None
    ) -> None:
        self.postings: Dict[str, JobCreate] = {}
        self.existing_ids: Set[str] = set(posting_ids or [])
        self.companies: Dict[str, Company] = {}
        for name in company_names or []:
            self._add_company(name)
        self.conflict_ids: Set[str] = set()
        self.unavailable = False
        self.calls: List[str] = []
        self.closed = False

    def _add_company(self, name: str, image_url: Optional[str] = None) -> Company:
        company = Company(company_id=len(self.companies) + 1, name=name, image_url=image_url)
        self.companies[name] = company
        return company

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if self.unavailable:
            raise GatewayUnavailableError("Backend unreachable at http://fake")

    def count(self, name: str) -> int:
        return self.calls.count(name)

    async def close(self) -> None:
        self.closed = True

    async def company_exists(self, name: str) -> CompanyExistsResponse:
        self._call("company_exists")
        company = self.companies.get(name)
        return CompanyExistsResponse(exists=company is not None, company=company)

    async def create_company(self, name: str, image_url: Optional[str] = None) -> Company:
        self._call("create_company")
        if name in self.companies:
            return self.companies[name]
        return self._add_company(name, image_url)

    async def list_all_company_names(self) -> List[str]:
        self._call("list_all_company_names")
        return list(self.companies)

    async def posting_exists(self, identifier: str) -> bool:
        self._call("posting_exists")
        return identifier in self.existing_ids or identifier in self.postings

    async def create_posting(self, payload: JobCreate) -> Optional[JobPosting]:
        self._call("create_posting")
        identifier = str(payload.linkedin_job_id)
        if identifier in self.conflict_ids or identifier in self.postings or identifier in self.existing_ids:
            raise AlreadyExistsError(identifier)
        self.postings[identifier] = payload
        return JobPosting(
            job_id=len(self.postings),
            linkedin_job_id=payload.linkedin_job_id,
            title=payload.title,
            company_id=payload.company_id,
        )

    async def list_all_posting_ids(self) -> List[str]:
        self._call("list_all_posting_ids")
        return sorted(self.existing_ids | set(self.postings))


class FakePages:
    """Scripted ``LinkedInPages``: search results by offset, detail HTML by ID."""

    def __init__(
        self,
        search_results: Optional[Dict[int, List[str]]] = None,
        detail_pages: Optional[Dict[str, str]] = None
    ) -> None:
        self.search_results = search_results or {}
        self.detail_pages = detail_pages or {}
        self.failing_starts: Set[int] = set()
        self.search_starts: List[int] = []
        self.detail_requests: List[str] = []
        self.authenticated = False

    async def authenticate(self) -> None:
        self.authenticated = True

    async def search_page(self, keywords: str, location: str, start: int) -> List[str]:
        self.search_starts.append(start)
        if start in self.failing_starts:
            raise NavigationTimeoutError(f"search?start={start}", 15)
        return list(self.search_results.get(start, []))

    async def detail_page(self, identifier: str) -> str:
        self.detail_requests.append(identifier)
        if identifier not in self.detail_pages:
            raise NavigationTimeoutError(build_job_url(identifier), 15)
        return self.detail_pages[identifier]


def job_urls(identifiers) -> List[str]:
    return [build_job_url(str(identifier)) + "?refId=test" for identifier in identifiers]
