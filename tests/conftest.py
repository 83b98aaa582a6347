"""Shared test fixtures for Splice."""

from __future__ import annotations

from pathlib import Path

import pytest

from splice.config import AssistantConfig, Config, JobConfig


class FakePredictionAPI:
    """Scripted stand-in for the prediction service.

    ``scripts`` maps job ids (``pred-1``, ``pred-2``, ...) to the payloads
    returned by successive polls. An ``Exception`` in a script is raised
    instead of returned. Exhausted scripts keep answering ``processing``.
    """

    def __init__(
        self,
        scripts: dict[str, list] | None = None,
        *,
        create_response: dict | None = None,
        create_error: Exception | None = None,
    ):
        self.scripts = {k: list(v) for k, v in (scripts or {}).items()}
        self.create_response = create_response
        self.create_error = create_error
        self.create_calls: list[dict] = []
        self.poll_calls: list[str] = []

    async def create_prediction(self, request_data: dict) -> dict:
        self.create_calls.append(request_data)
        if self.create_error is not None:
            raise self.create_error
        if self.create_response is not None:
            return self.create_response
        return {"id": f"pred-{len(self.create_calls)}", "status": "starting"}

    async def get_prediction(self, prediction_id: str) -> dict:
        self.poll_calls.append(prediction_id)
        script = self.scripts.get(prediction_id, [])
        item = script.pop(0) if script else {"status": "processing"}
        if isinstance(item, Exception):
            raise item
        return {"id": prediction_id, **item}


@pytest.fixture
def fake_api():
    """Factory for scripted prediction APIs."""
    return FakePredictionAPI


@pytest.fixture
def job_config() -> JobConfig:
    """Job settings that poll without waiting."""
    return JobConfig(poll_interval_seconds=0.0, max_poll_attempts=5)


@pytest.fixture
def config(job_config: JobConfig) -> Config:
    """An enabled assistant with a token and a fast poll loop."""
    return Config(
        assistant=AssistantConfig(enabled=True, api_token="r8_testtoken"),
        job=job_config,
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a splice.toml into tmp_path and return its path."""
    path = tmp_path / "splice.toml"
    path.write_text(
        "[assistant]\n"
        "enabled = false\n"
        'api_token = "r8_filetoken1234"\n'
        "\n"
        "[job]\n"
        "poll_interval_seconds = 0\n"
        "max_poll_attempts = 2\n"
    )
    return path
