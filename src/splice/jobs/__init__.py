"""Remote generation jobs: transport, polling and output cleanup."""

from splice.jobs.base import (
    JobState,
    JobUpdate,
    PollState,
    PredictionJob,
    PredictionStatus,
    UpdateKind,
)
from splice.jobs.client import (
    PredictionAPIError,
    PredictionClient,
    PredictionClientError,
    PredictionTransportError,
    build_request_data,
)
from splice.jobs.output import clean_code_output, extract_output_text
from splice.jobs.poller import GenerationCounter, JobPoller, JobToken

__all__ = [
    "GenerationCounter",
    "JobPoller",
    "JobState",
    "JobToken",
    "JobUpdate",
    "PollState",
    "PredictionAPIError",
    "PredictionClient",
    "PredictionClientError",
    "PredictionJob",
    "PredictionStatus",
    "PredictionTransportError",
    "UpdateKind",
    "build_request_data",
    "clean_code_output",
    "extract_output_text",
]
