"""
Pipeline Package

Discover/Process halves of the scraping pipeline, the progress reporter and
the runner that wires them to a browser session.
"""

from .discoverer import Discoverer, DiscoveryResult
from .processor import Outcome, Processor, ProcessingResult
from .progress import ProgressReporter, ProgressSnapshot, format_duration
from .runner import PipelineRunner, open_data_service, open_pipeline

__all__ = [
    "Discoverer",
    "DiscoveryResult",
    "Outcome",
    "Processor",
    "ProcessingResult",
    "ProgressReporter",
    "ProgressSnapshot",
    "format_duration",
    "PipelineRunner",
    "open_data_service",
    "open_pipeline",
]
