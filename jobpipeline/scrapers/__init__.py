"""
LinkedIn Scrapers Package

Browser session, page flows and the pure HTML extractor that turns a
rendered job detail page into a posting record.
"""

from .base import (
    PostingRecord,
    ScrapingConfig,
    WorkType,
    build_job_url,
    build_search_url,
)
from .browser import BrowserDriver
from .extractor import extract_job_urls, extract_posting, is_not_found_page
from .linkedin import LinkedInPages
from .parsing import (
    extract_identifier,
    parse_applicants,
    parse_location_info,
    parse_relative_date,
)

__all__ = [
    # Records
    'PostingRecord',
    'ScrapingConfig',
    'WorkType',
    'build_job_url',
    'build_search_url',

    # Browser
    'BrowserDriver',
    'LinkedInPages',

    # Extraction
    'extract_posting',
    'extract_job_urls',
    'is_not_found_page',
    'extract_identifier',
    'parse_applicants',
    'parse_location_info',
    'parse_relative_date',
]
