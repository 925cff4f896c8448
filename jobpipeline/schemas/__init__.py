"""
Pydantic Schemas

Wire models exchanged with the backend service.
"""

from .company import (
    Company,
    CompanyCreate,
    CompanyCreateResponse,
    CompanyExistsResponse,
    CompanyNamesResponse,
)
from .job import (
    JobCreate,
    JobCreateResponse,
    JobExistsResponse,
    JobIDsResponse,
    JobPosting,
)

__all__ = [
    "Company",
    "CompanyCreate",
    "CompanyCreateResponse",
    "CompanyExistsResponse",
    "CompanyNamesResponse",
    "JobCreate",
    "JobCreateResponse",
    "JobExistsResponse",
    "JobIDsResponse",
    "JobPosting",
]
