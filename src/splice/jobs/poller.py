"""Create-then-poll state machine for remote generation jobs.

States: created -> polling -> succeeded | failed | timed_out | transport_error.
The create step can also end the run as invocation_failed or no_id_returned.

Each invocation issues one request at a time: the create call, then one
status poll per interval until a terminal status or the attempt budget is
spent. A failed poll ends the run immediately. It is not retried, even
though the remote job may still be running.

Every failure is reported as the final ``JobUpdate`` of the stream rather
than raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass
from typing import Protocol

from splice.config import JobConfig
from splice.exceptions import (
    JobError,
    JobFailedError,
    JobInvocationError,
    JobTimedOutError,
    NoJobIdError,
    PollTransportError,
)
from splice.jobs.base import (
    JobState,
    JobUpdate,
    PollState,
    PredictionJob,
    PredictionStatus,
    UpdateKind,
)
from splice.jobs.client import build_request_data
from splice.jobs.output import clean_code_output, extract_output_text

logger = logging.getLogger(__name__)

_FAILURE_STATES: dict[type[JobError], JobState] = {
    JobInvocationError: JobState.INVOCATION_FAILED,
    NoJobIdError: JobState.NO_ID_RETURNED,
    PollTransportError: JobState.TRANSPORT_ERROR,
    JobFailedError: JobState.FAILED,
    JobTimedOutError: JobState.TIMED_OUT,
}


class PredictionAPI(Protocol):
    async def create_prediction(self, request_data: dict) -> dict: ...

    async def get_prediction(self, prediction_id: str) -> dict: ...


class GenerationCounter:
    """Hands out job tokens; issuing a new one makes all older ones stale."""

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def next_token(self) -> JobToken:
        self._current += 1
        return JobToken(self, self._current)

    def invalidate(self) -> None:
        """Make every outstanding token stale without starting a new job."""
        self._current += 1


@dataclass(frozen=True)
class JobToken:
    counter: GenerationCounter
    generation: int

    @property
    def stale(self) -> bool:
        return self.counter.current != self.generation


def _is_stale(token: JobToken | None) -> bool:
    return token is not None and token.stale


class JobPoller:
    """Runs one generation job per ``run()`` call and streams its progress."""

    def __init__(self, client: PredictionAPI, job: JobConfig | None = None):
        self._client = client
        self._job = job or JobConfig()

    async def run(
        self,
        prompt: str,
        *,
        token: JobToken | None = None,
    ) -> AsyncGenerator[JobUpdate, None]:
        """Create a job for ``prompt`` and yield updates until it ends.

        Yields one ``created`` update, then a ``partial`` update each time
        the cleaned output changes, then exactly one terminal update
        (``completed`` or ``failed``). When ``token`` goes stale the stream
        stops without a terminal update and its remaining results are
        discarded.
        """
        state = PollState()
        job_id = ""
        try:
            job_id = await self._create(prompt)
            if _is_stale(token):
                logger.info("Job %s superseded before polling started", job_id)
                return
            yield JobUpdate(
                kind=UpdateKind.CREATED,
                state=JobState.CREATED,
                job_id=job_id,
            )
            async for update in self._poll(job_id, state, token):
                yield update
        except JobError as e:
            failure = _FAILURE_STATES.get(type(e), JobState.FAILED)
            logger.warning(
                "Job %s ended as %s after %d poll(s): %s",
                job_id or "<none>", failure.value, state.attempts, e,
            )
            yield JobUpdate(
                kind=UpdateKind.FAILED,
                state=failure,
                text=state.last_output_text,
                error=str(e),
                job_id=job_id,
                attempts=state.attempts,
            )

    async def _create(self, prompt: str) -> str:
        request_data = build_request_data(prompt, self._job)
        try:
            response = await self._client.create_prediction(request_data)
        except Exception as e:
            raise JobInvocationError(f"Failed to create prediction: {e}") from e

        job_id = str(response.get("id") or "") if isinstance(response, Mapping) else ""
        if not job_id:
            raise NoJobIdError("Failed to create prediction: No ID returned")
        logger.info("Prediction created with ID: %s", job_id)
        return job_id

    async def _poll(
        self,
        job_id: str,
        state: PollState,
        token: JobToken | None,
    ) -> AsyncGenerator[JobUpdate, None]:
        budget = self._job.max_poll_attempts
        interval = self._job.poll_interval_seconds

        while state.attempts < budget:
            state.attempts += 1
            try:
                data = await self._client.get_prediction(job_id)
            except Exception as e:
                raise PollTransportError(f"Streaming error: {e}") from e

            if _is_stale(token):
                logger.info("Job %s superseded; discarding poll result", job_id)
                return

            if not isinstance(data, Mapping):
                raise PollTransportError(
                    f"Streaming error: unexpected status payload ({type(data).__name__})"
                )

            job = PredictionJob.from_payload(data, fallback_id=job_id)
            logger.debug(
                "Prediction %s status (attempt %d): %s",
                job_id, state.attempts, job.status.value if job.status else data.get("status"),
            )

            if job.output is not None:
                text = extract_output_text(job.output)
                if text:
                    cleaned = clean_code_output(text)
                    if cleaned != state.last_output_text:
                        state.last_output_text = cleaned
                        yield JobUpdate(
                            kind=UpdateKind.PARTIAL,
                            state=JobState.POLLING,
                            text=cleaned,
                            job_id=job_id,
                            attempts=state.attempts,
                        )

            if job.status is PredictionStatus.SUCCEEDED:
                logger.info("Prediction %s succeeded after %d poll(s)", job_id, state.attempts)
                yield JobUpdate(
                    kind=UpdateKind.COMPLETED,
                    state=JobState.SUCCEEDED,
                    text=state.last_output_text,
                    job_id=job_id,
                    attempts=state.attempts,
                )
                return
            if job.status is PredictionStatus.FAILED:
                raise JobFailedError(job.error or "Prediction failed")
            if job.status is PredictionStatus.CANCELED:
                raise JobFailedError(job.error or "Prediction was canceled")

            if state.attempts < budget:
                await asyncio.sleep(interval)
                if _is_stale(token):
                    logger.info("Job %s superseded while waiting", job_id)
                    return

        raise JobTimedOutError("Timed out waiting for prediction results")
