"""
Base Scraper Types

Standardized posting record, scraping configuration and the URL templates
shared by the Discoverer, the Processor and the Extractor.
"""

from typing import FrozenSet, Optional
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlencode


LINKEDIN_BASE_URL = "https://www.linkedin.com"
LOGIN_URL = f"{LINKEDIN_BASE_URL}/login"
SEARCH_URL = f"{LINKEDIN_BASE_URL}/jobs/search/"
JOB_VIEW_URL_TEMPLATE = LINKEDIN_BASE_URL + "/jobs/view/{identifier}/"

PAGE_SIZE = 25
MAX_SEARCH_PAGES = 1000


class WorkType(Enum):
    """Where the work is performed."""
    REMOTE = "Remote"
    HYBRID = "Hybrid"
    ON_SITE = "On-site"
    UNSPECIFIED = ""


@dataclass
class PostingRecord:
    """Normalized job posting extracted from a rendered detail page."""

    identifier: str
    title: str
    company_name: str

    location_raw: str = ""
    location: str = ""
    posted_at: Optional[datetime] = None
    applicants: Optional[int] = None

    description: str = ""
    apply_url: str = ""
    work_type: WorkType = WorkType.UNSPECIFIED
    skills: FrozenSet[str] = field(default_factory=frozenset)

    company_image_url: Optional[str] = None
    is_closed: bool = False
    captured_at: Optional[datetime] = None

    # Resolved by the data service before commit
    company_id: Optional[int] = None

    @property
    def needs_rescrape(self) -> bool:
        """Postings saved without a description are eligible for a later re-scrape."""
        return not self.description


@dataclass
class ScrapingConfig:
    """Deadlines and pacing for browser work."""

    navigation_timeout: float = 15.0
    script_timeout: float = 30.0
    modal_timeout: float = 5.0
    ready_timeout: float = 15.0
    fallback_sleep: float = 3.0
    login_fallback_sleep: float = 2.0
    scroll_pause: float = 1.0

    delay_between_requests: float = 2.0
    min_delay_between_requests: float = 0.5

    @property
    def item_delay(self) -> float:
        return max(self.delay_between_requests, self.min_delay_between_requests)


def build_search_url(keywords: str, location: str, start: int) -> str:
    """Build the search URL for result offset ``start``."""
    params = {"keywords": keywords, "location": location, "start": start}
    return f"{SEARCH_URL}?{urlencode(params)}"


def build_job_url(identifier: str) -> str:
    """Reconstruct the canonical detail URL for an identifier."""
    return JOB_VIEW_URL_TEMPLATE.format(identifier=identifier)
