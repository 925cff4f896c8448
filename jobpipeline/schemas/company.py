"""
Company Pydantic Schemas

Wire models for the backend's company endpoints. `Company` is also the
record serialized into the cache under `company:name:<name>`.
"""

from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict


class Company(BaseModel):
    """A company as stored by the backend."""

    model_config = ConfigDict(extra="ignore")

    company_id: int = Field(..., description="Backend company ID")
    name: str = Field(..., min_length=1, max_length=500, description="Company name")
    image_url: Optional[str] = Field(None, description="Company logo URL")


class CompanyCreate(BaseModel):
    """Schema for creating a new company."""

    name: str = Field(..., min_length=1, max_length=500, description="Company name")
    image_url: Optional[str] = Field(None, description="Company logo URL")


class CompanyExistsResponse(BaseModel):
    """Response of `GET /companies/exists`."""

    model_config = ConfigDict(extra="ignore")

    exists: bool
    company: Optional[Company] = None


class CompanyCreateResponse(BaseModel):
    """Response of `POST /companies`."""

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    message: Optional[str] = None
    company: Company


class CompanyNamesResponse(BaseModel):
    """Response of `GET /companies/names`."""

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    count: Optional[int] = None
    company_names: List[str] = Field(default_factory=list)
