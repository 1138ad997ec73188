"""Mock provider for demo/testing.

Answers every generation request locally without calling a real
generation API. Job ids are deterministic so the same payload always
maps to the same task.
"""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any

from tvorai.models.types import TaskMeta, TaskStatusResponse
from tvorai.providers.base import ProviderBase

MOCK_MEDIA_HOST = "https://mock.tvorai.invalid"


class MockProvider(ProviderBase):
    """Mock provider that completes every job immediately.

    Set pending_polls to make each task report in_progress for that many
    polls before it succeeds.
    """

    def __init__(self, pending_polls: int = 0):
        self.pending_polls = pending_polls
        self._polls: dict[str, int] = {}
        self._kinds: dict[str, str] = {}
        self.submitted: list[dict[str, Any]] = []

    def _compute_job_id(self, kind: str, payload: dict[str, Any]) -> str:
        """Compute deterministic job ID from the payload."""
        hash_input = f"{kind}:{json.dumps(payload, sort_keys=True, default=str)}"
        return hashlib.sha256(hash_input.encode()).hexdigest()[:16]

    def _submit(self, kind: str, payload: dict[str, Any]) -> str:
        job_id = self._compute_job_id(kind, payload)
        self._kinds[job_id] = kind
        self._polls.setdefault(job_id, 0)
        self.submitted.append({"kind": kind, "payload": payload, "task_id": job_id})
        return job_id

    def submit_text_to_video(self, payload: dict[str, Any]) -> str:
        return self._submit("t2v", payload)

    def submit_image_to_video(self, payload: dict[str, Any]) -> str:
        return self._submit("i2v", payload)

    def get_task_result(self, task_id: str) -> TaskStatusResponse:
        if task_id not in self._kinds:
            return TaskStatusResponse(
                status="failed", reason="Unknown task", meta=TaskMeta(task_id=task_id)
            )

        self._polls[task_id] += 1
        if self._polls[task_id] <= self.pending_polls:
            progress = int(100 * self._polls[task_id] / (self.pending_polls + 1))
            return TaskStatusResponse(
                status="in_progress",
                meta=TaskMeta(progress=progress, eta=5, task_id=task_id),
            )

        return TaskStatusResponse(
            status="success",
            video_url=f"{MOCK_MEDIA_HOST}/videos/{task_id}.mp4",
            meta=TaskMeta(progress=100, eta=0, task_id=task_id),
        )

    def text_to_image(self, payload: dict[str, Any]) -> dict[str, Any]:
        job_id = self._compute_job_id("t2i", payload)
        if payload.get("response_format") == "b64_json":
            return {"binary_data_base64": [base64.b64encode(job_id.encode()).decode()]}
        return {"image_urls": [f"{MOCK_MEDIA_HOST}/images/{job_id}.png"]}

    def merge_face(self, payload: dict[str, Any]) -> dict[str, Any]:
        job_id = self._compute_job_id("merge_face", payload)
        return {
            "image_file": base64.b64encode(job_id.encode()).decode(),
            "image_type": "png",
        }
