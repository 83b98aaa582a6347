"""HTTP client for the prediction service.

Thin async wrapper over the two endpoints the job poller needs: create a
prediction and read its current state. Transport and API failures are
wrapped in ``PredictionClientError`` subclasses that keep the original
exception for debugging.
"""

from __future__ import annotations

import logging

import httpx

from splice.config import DEFAULT_BASE_URL, JobConfig
from splice.exceptions import SpliceError

logger = logging.getLogger(__name__)


class PredictionClientError(SpliceError):
    """Base for prediction service call failures."""

    def __init__(self, message: str, original: Exception | None = None):
        super().__init__(message)
        self.original = original


class PredictionTransportError(PredictionClientError):
    """The request never produced a usable HTTP response."""


class PredictionAPIError(PredictionClientError):
    """The service answered with an error status or an unreadable body."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original: Exception | None = None,
    ):
        super().__init__(message, original=original)
        self.status_code = status_code


def build_request_data(prompt: str, job: JobConfig) -> dict:
    """Body for the create-prediction call."""
    return {
        "version": job.model_version,
        "input": {
            "prompt": prompt,
            "system_prompt": job.system_prompt,
            "max_tokens": job.max_tokens,
        },
        "stream": True,
    }


def _token_hint(token: str) -> str:
    return f"{token[:5]}..." if len(token) > 5 else token


class PredictionClient:
    """Creates and reads predictions on a Replicate-style API."""

    def __init__(
        self,
        api_token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_token = api_token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        api_token: str,
        job: JobConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> PredictionClient:
        return cls(
            api_token,
            base_url=job.base_url,
            timeout=job.request_timeout_seconds,
            transport=transport,
        )

    async def create_prediction(self, request_data: dict) -> dict:
        logger.debug(
            "Creating prediction with token %s (version=%s)",
            _token_hint(self._api_token), request_data.get("version"),
        )
        return await self._request("POST", "/predictions", json=request_data)

    async def get_prediction(self, prediction_id: str) -> dict:
        logger.debug("Getting prediction %s", prediction_id)
        return await self._request("GET", f"/predictions/{prediction_id}")

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        headers = {"Authorization": f"Token {self._api_token}"}
        try:
            response = await self._client.request(
                method, path, json=json, headers=headers,
            )
        except httpx.ConnectError as e:
            raise PredictionTransportError(
                f"Cannot connect to prediction API at {self._client.base_url}: {e}",
                original=e,
            ) from e
        except httpx.TimeoutException as e:
            raise PredictionTransportError(
                f"Prediction API request timed out ({method} {path}): {e}",
                original=e,
            ) from e
        except httpx.HTTPError as e:
            raise PredictionTransportError(
                f"Prediction API request failed ({method} {path}): {e}",
                original=e,
            ) from e

        if response.is_error:
            body = response.text[:2000]
            logger.warning("API error: %s - %s", response.status_code, body[:200])
            raise PredictionAPIError(
                f"API error ({response.status_code}): {body}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PredictionAPIError(
                f"Invalid JSON from prediction API: {e}",
                status_code=response.status_code,
                original=e,
            ) from e
        if not isinstance(data, dict):
            raise PredictionAPIError(
                f"Unexpected prediction payload type: {type(data).__name__}",
                status_code=response.status_code,
            )
        return data

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> PredictionClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
