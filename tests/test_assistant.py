"""Tests for the refactor assistant command channel."""

from __future__ import annotations

from splice.assistant import (
    DISABLED_MESSAGE,
    EMPTY_CONTENT_MESSAGE,
    Completed,
    Failed,
    PartialResult,
    RefactorAssistant,
    RunAnalysis,
    build_prompt,
    file_extension,
    file_name,
)
from splice.buffer import TextBuffer
from splice.config import AssistantConfig, Config, SettingsStore
from splice.events.bus import EventBus
from splice.events.types import (
    JOB_CREATED,
    JOB_FAILED,
    JOB_PARTIAL_OUTPUT,
    JOB_SUCCEEDED,
    JOB_SUPERSEDED,
    JOB_TIMED_OUT,
    MERGE_APPLIED,
    SETTINGS_CHANGED,
)
from splice.jobs.base import JobState
from splice.merge import MergeStrategy

SOURCE = "a\nb\nc\nd\ne"


def _assistant(config: Config, api, bus: EventBus | None = None) -> RefactorAssistant:
    bus = bus or EventBus()
    return RefactorAssistant(SettingsStore(config, bus), client=api, bus=bus)


async def _events(assistant: RefactorAssistant, content: str = SOURCE, path: str = "app.js"):
    return [e async for e in assistant.run_analysis(RunAnalysis(path, content))]


def _superseded(assistant: RefactorAssistant) -> list:
    return [e for e in assistant.bus.recent_events() if e.event_type == JOB_SUPERSEDED]


class TestPrompt:
    def test_file_name(self):
        assert file_name("/src/app/main.rs") == "main.rs"
        assert file_name("") == "untitled"

    def test_file_extension(self):
        assert file_extension("/src/app/main.rs") == "rs"
        assert file_extension("Makefile") == ""
        assert file_extension("") == ""

    def test_build_prompt_layout(self):
        prompt = build_prompt("/src/util.py", "x = 1")
        assert prompt.startswith("File: util.py\nContent:\n```py\nx = 1\n```\n\n")
        assert "Only provide the refactored code" in prompt

    def test_build_prompt_untitled(self):
        assert build_prompt("", "x").startswith("File: untitled\nContent:\n```\nx\n```")


class TestRunAnalysis:
    async def test_streams_partials_then_completes(self, config, fake_api):
        api = fake_api({"pred-1": [
            {"status": "processing", "output": "a\nb"},
            {"status": "succeeded", "output": "a\nb\nC"},
        ]})
        assistant = _assistant(config, api)
        events = await _events(assistant)

        assert events == [
            PartialResult(job_id="pred-1", text="a\nb"),
            PartialResult(job_id="pred-1", text="a\nb\nC"),
            Completed(job_id="pred-1", text="a\nb\nC"),
        ]
        assert assistant.last_candidate == "a\nb\nC"

    async def test_sends_built_prompt(self, config, fake_api):
        api = fake_api({"pred-1": [{"status": "succeeded", "output": "ok"}]})
        await _events(_assistant(config, api), content="let x = 1;", path="/tmp/a.js")
        sent = api.create_calls[0]["input"]["prompt"]
        assert sent == build_prompt("/tmp/a.js", "let x = 1;")

    async def test_emits_job_lifecycle_events(self, config, fake_api):
        api = fake_api({"pred-1": [
            {"status": "processing", "output": "x"},
            {"status": "succeeded", "output": "x"},
        ]})
        assistant = _assistant(config, api)
        await _events(assistant)

        types = [e.event_type for e in assistant.bus.recent_events()]
        assert types == [JOB_CREATED, JOB_PARTIAL_OUTPUT, JOB_SUCCEEDED]
        assert all(e.job_id == "pred-1" for e in assistant.bus.recent_events())

    async def test_failure_becomes_failed_event(self, config, fake_api):
        api = fake_api({"pred-1": [{"status": "failed", "error": "boom"}]})
        assistant = _assistant(config, api)
        events = await _events(assistant)

        assert events == [Failed(job_id="pred-1", message="boom", state=JobState.FAILED)]
        assert assistant.last_candidate is None
        assert assistant.bus.recent_events()[-1].event_type == JOB_FAILED

    async def test_timeout_emits_timed_out(self, fake_api):
        config = Config(
            assistant=AssistantConfig(enabled=True, api_token="r8_x"),
        )
        store = SettingsStore(config)
        store.update("job", poll_interval_seconds=0.0, max_poll_attempts=2)
        assistant = RefactorAssistant(store, client=fake_api())
        events = [e async for e in assistant.run_analysis(RunAnalysis("a.js", SOURCE))]

        assert events[-1].state is JobState.TIMED_OUT
        assert events[-1].message == "Timed out waiting for prediction results"
        assert assistant.bus.recent_events()[-1].event_type == JOB_TIMED_OUT

    async def test_disabled_assistant_is_rejected(self, fake_api):
        config = Config(assistant=AssistantConfig(enabled=False, api_token="r8_x"))
        api = fake_api()
        events = await _events(_assistant(config, api))

        assert events == [Failed(job_id="", message=DISABLED_MESSAGE)]
        assert api.create_calls == []

    async def test_missing_token_is_rejected(self, fake_api):
        config = Config(assistant=AssistantConfig(enabled=True, api_token=""))
        events = await _events(_assistant(config, fake_api()))
        assert events[0].message == DISABLED_MESSAGE

    async def test_empty_content_is_rejected(self, config, fake_api):
        api = fake_api()
        events = await _events(_assistant(config, api), content="")
        assert events == [Failed(job_id="", message=EMPTY_CONTENT_MESSAGE)]
        assert api.create_calls == []


class TestSuperseding:
    async def test_new_run_makes_older_run_stale(self, config, fake_api):
        api = fake_api({
            "pred-1": [{"status": "processing", "output": "one"}],
            "pred-2": [{"status": "succeeded", "output": "two"}],
        })
        assistant = _assistant(config, api)

        first_run = assistant.run_analysis(RunAnalysis("a.js", SOURCE))
        first = await first_run.__anext__()
        assert first == PartialResult(job_id="pred-1", text="one")

        second = await _events(assistant)
        superseded = _superseded(assistant)
        rest = [e async for e in first_run]

        assert second == [Completed(job_id="pred-2", text="two")]
        assert rest == []
        assert assistant.last_candidate == "two"
        assert [e.job_id for e in superseded] == ["pred-1"]
        assert superseded[0].data["state"] == "superseded"
        types = [e.event_type for e in assistant.bus.recent_events()]
        assert types.count(JOB_SUPERSEDED) == 1
        assert types.count(JOB_SUCCEEDED) == 1

    async def test_superseded_is_published_when_stale_run_is_dropped(self, config, fake_api):
        api = fake_api({
            "pred-1": [{"status": "processing", "output": "one"}],
            "pred-2": [{"status": "succeeded", "output": "two"}],
        })
        assistant = _assistant(config, api)

        dropped = assistant.run_analysis(RunAnalysis("a.js", SOURCE))
        await dropped.__anext__()
        assistant.cancel()

        assert [e.job_id for e in _superseded(assistant)] == ["pred-1"]
        await dropped.aclose()
        assert len(_superseded(assistant)) == 1

    async def test_finished_run_is_not_superseded(self, config, fake_api):
        api = fake_api({
            "pred-1": [{"status": "succeeded", "output": "one"}],
            "pred-2": [{"status": "succeeded", "output": "two"}],
        })
        assistant = _assistant(config, api)

        run = assistant.run_analysis(RunAnalysis("a.js", SOURCE))
        async for event in run:
            if isinstance(event, Completed):
                break
        await run.aclose()
        await _events(assistant)
        assistant.cancel()

        assert _superseded(assistant) == []

    async def test_cancel_stops_in_flight_run(self, config, fake_api):
        api = fake_api({"pred-1": [
            {"status": "processing", "output": "one"},
            {"status": "succeeded", "output": "done"},
        ]})
        assistant = _assistant(config, api)

        run = assistant.run_analysis(RunAnalysis("a.js", SOURCE))
        assert isinstance(await run.__anext__(), PartialResult)
        assistant.cancel()
        rest = [e async for e in run]

        assert rest == []
        assert assistant.last_candidate is None
        assert len(api.poll_calls) == 1


class TestApply:
    def test_apply_merges_candidate_into_buffer(self, config):
        assistant = _assistant(config, api=None)
        buffer = TextBuffer(SOURCE)

        decision = assistant.apply(buffer, "a\nb\nC\nd\ne")

        assert decision.strategy is MergeStrategy.WHOLESALE
        assert buffer.read_current_text() == "a\nb\nC\nd\ne"
        event = assistant.bus.recent_events()[-1]
        assert event.event_type == MERGE_APPLIED
        assert event.data["strategy"] == "wholesale"
        assert event.data["changed"] is True

    async def test_apply_defaults_to_last_candidate(self, config, fake_api):
        api = fake_api({"pred-1": [{"status": "succeeded", "output": "a\nb\nC\nd\ne"}]})
        assistant = _assistant(config, api)
        await _events(assistant)

        buffer = TextBuffer(SOURCE)
        assistant.apply(buffer)
        assert buffer.read_current_text() == "a\nb\nC\nd\ne"

    def test_apply_without_candidate_leaves_buffer(self, config):
        assistant = _assistant(config, api=None)
        buffer = TextBuffer(SOURCE)

        decision = assistant.apply(buffer)

        assert decision.strategy is MergeStrategy.UNCHANGED
        assert buffer.read_current_text() == SOURCE
        assert assistant.bus.recent_events()[-1].data["changed"] is False


class TestSettings:
    async def test_settings_update_applies_to_next_run(self, config, fake_api):
        bus = EventBus()
        store = SettingsStore(config, bus)
        api = fake_api()
        assistant = RefactorAssistant(store, client=api, bus=bus)

        store.update("assistant", enabled=False)
        events = [e async for e in assistant.run_analysis(RunAnalysis("a.js", SOURCE))]

        assert events == [Failed(job_id="", message=DISABLED_MESSAGE)]
        changed = [e for e in bus.recent_events() if e.event_type == SETTINGS_CHANGED]
        assert changed[0].data == {"section": "assistant", "keys": ["enabled"]}

    async def test_save_hook_runs_when_enabled(self, config, fake_api):
        api = fake_api({"pred-1": [{"status": "succeeded", "output": "x"}]})
        assistant = _assistant(config, api)
        events = [e async for e in assistant.on_buffer_saved("a.js", SOURCE)]
        assert events == [Completed(job_id="pred-1", text="x")]

    async def test_save_hook_respects_analyze_on_save(self, fake_api):
        config = Config(assistant=AssistantConfig(
            enabled=True, api_token="r8_x", analyze_on_save=False,
        ))
        api = fake_api()
        assistant = _assistant(config, api)
        events = [e async for e in assistant.on_buffer_saved("a.js", SOURCE)]
        assert events == []
        assert api.create_calls == []

    async def test_save_hook_skips_empty_buffer_quietly(self, config, fake_api):
        api = fake_api()
        events = [e async for e in _assistant(config, api).on_buffer_saved("a.js", "")]
        assert events == []
