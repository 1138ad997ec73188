"""Novita API adapter.

Thin httpx client for the Novita async job API and its synchronous
image endpoints. Upstream HTTP errors are relayed with their status;
transport failures become 502.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tvorai.models.types import TaskStatusResponse
from tvorai.providers.base import GatewayError, ProviderBase, parse_task_result

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.novita.ai"

T2V_PATH = "/v3/async/kling-2.5-turbo-t2v"
I2V_PATH = "/v3/async/kling-2.5-turbo-i2v"
TASK_RESULT_PATH = "/v3/async/task-result"
T2I_PATH = "/v3/seedream-3-0-txt2img"
MERGE_FACE_PATH = "/v3/merge-face"

SUBMIT_TIMEOUT = 30.0
POLL_TIMEOUT = 20.0


class NovitaProvider(ProviderBase):
    """Provider backed by the Novita HTTP API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize provider.

        Args:
            api_key: Novita bearer token. Empty means not configured.
            base_url: API root.
            timeout: Default timeout for synchronous endpoints, in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.api_key = api_key
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        if not self.api_key:
            raise GatewayError("PROVIDER_NOT_CONFIGURED", 500, "NOVITA_API_KEY is not set")

        try:
            response = self._client.request(
                method,
                path,
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=timeout or self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Novita {path} timed out: {e}")
            raise GatewayError("PROVIDER_TIMEOUT", 502, "Provider did not answer in time") from e
        except httpx.HTTPError as e:
            logger.warning(f"Novita {path} unreachable: {e}")
            raise GatewayError("PROVIDER_UNAVAILABLE", 502, "Provider unreachable") from e

        if response.is_error:
            try:
                details: Any = response.json()
            except ValueError:
                details = response.text[:500]
            logger.error(f"Novita {path} error: {response.status_code} {details}")
            raise GatewayError("PROVIDER_ERROR", response.status_code, details)

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError("INVALID_PROVIDER_RESPONSE", 502, "Provider returned non-JSON") from e

    def _submit(self, path: str, payload: dict[str, Any]) -> str:
        data = self._request("POST", path, json=payload, timeout=SUBMIT_TIMEOUT)
        task_id = data.get("task_id")
        if not task_id:
            raise GatewayError("NO_TASK_ID", 502, "Provider did not return task_id")
        return str(task_id)

    def submit_text_to_video(self, payload: dict[str, Any]) -> str:
        return self._submit(T2V_PATH, payload)

    def submit_image_to_video(self, payload: dict[str, Any]) -> str:
        return self._submit(I2V_PATH, payload)

    def get_task_result(self, task_id: str) -> TaskStatusResponse:
        data = self._request(
            "GET", TASK_RESULT_PATH, params={"task_id": task_id}, timeout=POLL_TIMEOUT
        )
        return parse_task_result(data, task_id)

    def text_to_image(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", T2I_PATH, json=payload)

    def merge_face(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", MERGE_FACE_PATH, json=payload)

    def close(self) -> None:
        self._client.close()
