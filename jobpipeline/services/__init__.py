"""
Services Package

Backend gateway and the data service facade used by the pipeline.
"""

from .gateway import BackendGateway
from .data_service import DataService, to_job_create

__all__ = [
    "BackendGateway",
    "DataService",
    "to_job_create",
]
