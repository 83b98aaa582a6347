"""Data model for remote generation jobs.

A job is created once, then polled until the service reports a terminal
status or the client runs out of attempts. Poll progress is reported to
callers as a stream of ``JobUpdate`` values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class PredictionStatus(Enum):
    """Status values reported by the prediction service."""

    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @classmethod
    def parse(cls, value: Any) -> PredictionStatus | None:
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


class JobState(Enum):
    """Client-side lifecycle of one job invocation."""

    CREATED = "created"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    TRANSPORT_ERROR = "transport_error"
    INVOCATION_FAILED = "invocation_failed"
    NO_ID_RETURNED = "no_id_returned"
    SUPERSEDED = "superseded"

    @property
    def terminal(self) -> bool:
        return self not in (JobState.CREATED, JobState.POLLING)


class UpdateKind(Enum):
    CREATED = "created"
    PARTIAL = "partial"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PredictionJob:
    """One snapshot of a remote job as reported by the service."""

    id: str
    status: PredictionStatus | None = None
    output: Any = None
    error: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping, fallback_id: str = "") -> PredictionJob:
        error = data.get("error") or data.get("detail")
        return cls(
            id=str(data.get("id") or fallback_id),
            status=PredictionStatus.parse(data.get("status")),
            output=data.get("output"),
            error=str(error) if error else None,
        )


@dataclass
class PollState:
    """Per-invocation poll bookkeeping. Never shared between invocations."""

    attempts: int = 0
    last_output_text: str = ""


@dataclass
class JobUpdate:
    """A single item from a job stream."""

    kind: UpdateKind
    state: JobState
    text: str = ""
    error: str = ""
    job_id: str = ""
    attempts: int = 0

    @property
    def terminal(self) -> bool:
        return self.state.terminal
