"""
Backend Gateway

Stateless async HTTP client for the jobs/companies backend. Every request
carries the shared ``X-API-Key`` header. There is no retry here: callers
own retry policy.
"""

from typing import List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from jobpipeline.core.config import Settings
from jobpipeline.core.exceptions import (
    AlreadyExistsError,
    GatewayResponseError,
    GatewayUnavailableError,
    TransientNetworkError,
)
from jobpipeline.schemas.company import (
    Company,
    CompanyCreate,
    CompanyCreateResponse,
    CompanyExistsResponse,
    CompanyNamesResponse,
)
from jobpipeline.schemas.job import (
    JobCreate,
    JobCreateResponse,
    JobExistsResponse,
    JobIDsResponse,
    JobPosting,
)
from jobpipeline.utils.logger import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

MAX_TIMEOUT_SECONDS = 30.0


class BackendGateway:
    """Typed client for the backend CRUD service."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = MAX_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize the gateway.

        Args:
            base_url: Backend API root, e.g. ``https://host/api``
            api_key: Shared secret sent as ``X-API-Key``
            timeout: Per-request timeout in seconds, capped at 30
            transport: Optional transport override, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.session = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "X-API-Key": api_key,
                "Accept": "application/json",
            },
            timeout=min(timeout, MAX_TIMEOUT_SECONDS),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendGateway":
        return cls(
            settings.API_BASE_URL,
            settings.API_KEY,
            timeout=settings.API_TIMEOUT_SECONDS,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.session.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send one request, translating transport failures into pipeline errors.

        Raises:
            GatewayUnavailableError: The backend refused or never accepted the connection
            TransientNetworkError: Timeout or reset mid-request
        """
        try:
            return await self.session.request(method, path, **kwargs)
        except httpx.ConnectError as e:
            raise GatewayUnavailableError(f"Backend unreachable at {self.base_url}: {e}")
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"{method} {path} timed out: {e}")
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{method} {path} failed: {e}")

    @staticmethod
    def _parse(response: httpx.Response, model: Type[ModelT]) -> ModelT:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise GatewayResponseError(response.status_code, f"invalid response body: {e}")

    @staticmethod
    def _ensure_ok(response: httpx.Response) -> None:
        if not response.is_success:
            raise GatewayResponseError(response.status_code, response.text[:500])

    # Companies

    async def company_exists(self, name: str) -> CompanyExistsResponse:
        response = await self._request("GET", "/companies/exists", params={"name": name})
        self._ensure_ok(response)
        return self._parse(response, CompanyExistsResponse)

    async def create_company(self, name: str, image_url: Optional[str] = None) -> Company:
        """
        Create a company. On 409 the existing company is fetched and returned.
        """
        payload = CompanyCreate(name=name, image_url=image_url or None)
        response = await self._request(
            "POST", "/companies", json=payload.model_dump(exclude_none=True)
        )

        if response.status_code == httpx.codes.CONFLICT:
            logger.debug("Company already exists, fetching existing company", company=name)
            existing = await self.company_exists(name)
            if existing.exists and existing.company is not None:
                return existing.company
            raise GatewayResponseError(
                response.status_code, f"company {name!r} conflicted but could not be fetched"
            )

        self._ensure_ok(response)
        created = self._parse(response, CompanyCreateResponse)
        if not created.success:
            raise GatewayResponseError(response.status_code, created.message or "company creation failed")
        return created.company

    async def list_all_company_names(self) -> List[str]:
        response = await self._request("GET", "/companies/names")
        self._ensure_ok(response)
        parsed = self._parse(response, CompanyNamesResponse)
        if not parsed.success:
            raise GatewayResponseError(response.status_code, "company name listing failed")
        return parsed.company_names

    # Job postings

    async def posting_exists(self, identifier: str) -> bool:
        response = await self._request(
            "GET", "/jobs/exists", params={"linkedin_job_id": identifier}
        )
        self._ensure_ok(response)
        return self._parse(response, JobExistsResponse).exists

    async def create_posting(self, payload: JobCreate) -> Optional[JobPosting]:
        """
        Create a job posting.

        Raises:
            AlreadyExistsError: The backend answered 409 Conflict
        """
        response = await self._request("POST", "/jobs", json=payload.model_dump(mode="json", exclude_none=True))

        if response.status_code == httpx.codes.CONFLICT:
            raise AlreadyExistsError(str(payload.linkedin_job_id))

        self._ensure_ok(response)
        created = self._parse(response, JobCreateResponse)
        if not created.success:
            raise GatewayResponseError(response.status_code, created.message or "job creation failed")
        return created.job_posting

    async def list_all_posting_ids(self) -> List[str]:
        response = await self._request("GET", "/jobs/ids")
        self._ensure_ok(response)
        parsed = self._parse(response, JobIDsResponse)
        if not parsed.success:
            raise GatewayResponseError(response.status_code, "job ID listing failed")
        return [str(job_id) for job_id in parsed.linkedin_job_ids]
