"""
Job Pydantic Schemas

Wire models for the backend's job posting endpoints.
"""

from typing import Optional, List
from datetime import date, datetime

from pydantic import BaseModel, Field, ConfigDict


class JobCreate(BaseModel):
    """Payload for `POST /jobs`."""

    linkedin_job_id: int = Field(..., description="LinkedIn job ID")
    title: str = Field(..., min_length=1, description="Job title")
    company_id: int = Field(..., description="Backend company ID")
    location: str = Field("", description="Job location")
    description: str = Field("", description="Job description")
    apply_url: str = Field("", description="Apply URL")
    posted_date: date = Field(..., description="Absolute posting date")

    applicants: Optional[int] = Field(None, ge=0, description="Applicant count")
    work_type: Optional[str] = Field(None, description="Remote, Hybrid or On-site")
    skills: Optional[List[str]] = Field(None, description="Required skills")
    job_post_closed_date: Optional[datetime] = Field(
        None, description="When the posting was seen to no longer accept applications"
    )


class JobPosting(BaseModel):
    """A job posting as returned by the backend."""

    model_config = ConfigDict(extra="ignore")

    job_id: Optional[int] = None
    linkedin_job_id: int
    title: str
    company_id: Optional[int] = None


class JobCreateResponse(BaseModel):
    """Response of `POST /jobs`."""

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    message: Optional[str] = None
    job_posting: Optional[JobPosting] = None


class JobExistsResponse(BaseModel):
    """Response of `GET /jobs/exists`."""

    model_config = ConfigDict(extra="ignore")

    exists: bool


class JobIDsResponse(BaseModel):
    """Response of `GET /jobs/ids`."""

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    count: Optional[int] = None
    linkedin_job_ids: List[int] = Field(default_factory=list)
