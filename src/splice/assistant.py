"""Refactor assistant: the command channel between an editor host and jobs.

The host sends a ``RunAnalysis`` command and iterates the resulting events
(``PartialResult`` while the job runs, then ``Completed`` or ``Failed``).
Starting a new analysis, or cancelling, makes the in-flight run stale and
publishes ``job_superseded`` right away. The stale run stops polling and
its results never reach the host.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import dataclass
from pathlib import PurePath

from splice.buffer import EditorBuffer
from splice.config import Config, SettingsStore
from splice.events.bus import Event, EventBus
from splice.events.types import (
    JOB_CREATED,
    JOB_FAILED,
    JOB_PARTIAL_OUTPUT,
    JOB_SUCCEEDED,
    JOB_SUPERSEDED,
    JOB_TIMED_OUT,
    MERGE_APPLIED,
)
from splice.jobs.base import JobState, JobUpdate, UpdateKind
from splice.jobs.client import PredictionClient
from splice.jobs.poller import GenerationCounter, JobPoller, JobToken, PredictionAPI
from splice.merge.orchestrator import MergeDecision, Merger, MergeThresholds

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "AI integration is disabled or missing API token"
EMPTY_CONTENT_MESSAGE = "No file content to analyze"
REWRITE_INSTRUCTION = (
    "Please re-write the code making improvements. Only provide the "
    "refactored code, no explanations or other text."
)


@dataclass(frozen=True)
class RunAnalysis:
    """Request a rewrite of ``content`` (the text of ``file_path``)."""

    file_path: str
    content: str


@dataclass(frozen=True)
class PartialResult:
    job_id: str
    text: str


@dataclass(frozen=True)
class Completed:
    job_id: str
    text: str


@dataclass(frozen=True)
class Failed:
    job_id: str
    message: str
    state: JobState | None = None


AssistantEvent = PartialResult | Completed | Failed


@dataclass
class _ActiveRun:
    token: JobToken
    file_path: str
    job_id: str = ""


def file_name(file_path: str) -> str:
    if not file_path:
        return "untitled"
    return PurePath(file_path).name or "untitled"


def file_extension(file_path: str) -> str:
    """Extension without the dot, or ``""``."""
    if not file_path:
        return ""
    return PurePath(file_path).suffix.lstrip(".")


def build_prompt(file_path: str, content: str) -> str:
    return (
        f"File: {file_name(file_path)}\n"
        "Content:\n"
        f"```{file_extension(file_path)}\n"
        f"{content}\n"
        "```\n\n"
        f"{REWRITE_INSTRUCTION}\n"
    )


class RefactorAssistant:
    """Runs rewrite jobs for an editor and merges the results back.

    Settings are read from the ``SettingsStore`` at the start of each run,
    so edits made through the store apply to the next analysis.
    """

    def __init__(
        self,
        settings: SettingsStore,
        *,
        client: PredictionAPI | None = None,
        bus: EventBus | None = None,
    ):
        self._settings = settings
        self._client = client
        self._bus = bus or EventBus()
        self._generations = GenerationCounter()
        self._last_candidate: str | None = None
        self._active: _ActiveRun | None = None

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def last_candidate(self) -> str | None:
        """Cleaned text of the most recent completed, non-stale run."""
        return self._last_candidate

    def can_analyze(self, content: str) -> tuple[bool, str]:
        assistant = self._settings.config.assistant
        if not assistant.enabled or not assistant.api_token:
            return False, DISABLED_MESSAGE
        if not content:
            return False, EMPTY_CONTENT_MESSAGE
        return True, ""

    def cancel(self) -> None:
        """Make the in-flight run, if any, stale."""
        self._generations.invalidate()
        self._supersede_active()

    async def run_analysis(
        self, command: RunAnalysis,
    ) -> AsyncGenerator[AssistantEvent, None]:
        ok, reason = self.can_analyze(command.content)
        if not ok:
            logger.info("Analysis rejected: %s", reason)
            yield Failed(job_id="", message=reason)
            return

        token = self._generations.next_token()
        self._supersede_active()
        run = _ActiveRun(token=token, file_path=command.file_path)
        self._active = run
        config = self._settings.config
        prompt = build_prompt(command.file_path, command.content)

        client, owned = self._resolve_client(config)
        try:
            poller = JobPoller(client, config.job)
            async with aclosing(poller.run(prompt, token=token)) as updates:
                async for update in updates:
                    if token.stale:
                        break
                    event = self._handle_update(update, run)
                    if event is not None:
                        yield event
        finally:
            if self._active is run:
                self._active = None
            if owned:
                await client.close()

    async def on_buffer_saved(
        self, file_path: str, content: str,
    ) -> AsyncGenerator[AssistantEvent, None]:
        """Analyze after a save when ``analyze_on_save`` is on."""
        if not self._settings.config.assistant.analyze_on_save:
            return
        ok, _ = self.can_analyze(content)
        if not ok:
            return
        async for event in self.run_analysis(RunAnalysis(file_path, content)):
            yield event

    def apply(self, buffer: EditorBuffer, candidate: str | None = None) -> MergeDecision:
        """Merge ``candidate`` (default: the last completed result) into ``buffer``."""
        if candidate is None:
            candidate = self._last_candidate or ""
        source = buffer.read_current_text()
        merger = Merger(MergeThresholds.from_merge_config(self._settings.config.merge))
        decision = merger.decide(source, candidate)
        if decision.text != source:
            buffer.write_text(decision.text)
        self._bus.emit(Event(
            event_type=MERGE_APPLIED,
            job_id="",
            data={
                "strategy": decision.strategy.value,
                "overlap": round(decision.overlap, 4),
                "changed": decision.text != source,
            },
        ))
        return decision

    def _supersede_active(self) -> None:
        run, self._active = self._active, None
        if run is None:
            return
        logger.info("Run for %s superseded (job %s)", run.file_path, run.job_id or "<none>")
        self._bus.emit(Event(
            event_type=JOB_SUPERSEDED,
            job_id=run.job_id,
            data={
                "file_path": run.file_path,
                "generation": run.token.generation,
                "state": JobState.SUPERSEDED.value,
            },
        ))

    def _resolve_client(self, config: Config) -> tuple[PredictionAPI, bool]:
        if self._client is not None:
            return self._client, False
        return PredictionClient.from_config(config.assistant.api_token, config.job), True

    def _handle_update(
        self,
        update: JobUpdate,
        run: _ActiveRun,
    ) -> AssistantEvent | None:
        data = {"file_path": run.file_path, "generation": run.token.generation}
        if update.terminal and self._active is run:
            self._active = None

        if update.kind is UpdateKind.CREATED:
            run.job_id = update.job_id
            self._bus.emit(Event(event_type=JOB_CREATED, job_id=update.job_id, data=data))
            return None

        if update.kind is UpdateKind.PARTIAL:
            self._bus.emit(Event(
                event_type=JOB_PARTIAL_OUTPUT,
                job_id=update.job_id,
                data={**data, "text": update.text, "attempts": update.attempts},
            ))
            return PartialResult(job_id=update.job_id, text=update.text)

        if update.kind is UpdateKind.COMPLETED:
            self._last_candidate = update.text
            self._bus.emit(Event(
                event_type=JOB_SUCCEEDED,
                job_id=update.job_id,
                data={**data, "text": update.text, "attempts": update.attempts},
            ))
            return Completed(job_id=update.job_id, text=update.text)

        event_type = JOB_TIMED_OUT if update.state is JobState.TIMED_OUT else JOB_FAILED
        self._bus.emit(Event(
            event_type=event_type,
            job_id=update.job_id,
            data={**data, "state": update.state.value, "error": update.error},
        ))
        return Failed(job_id=update.job_id, message=update.error, state=update.state)
