"""Base provider interface.

Provider adapters forward generation payloads to the upstream API and
relay its answers. They never touch the ledger or the database.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from tvorai.core.normalize import to_int
from tvorai.models.types import TaskMeta, TaskStatusResponse

TASK_STATUS_SUCCEED = "TASK_STATUS_SUCCEED"
TASK_STATUS_FAILED = "TASK_STATUS_FAILED"


class GatewayError(Exception):
    """Generation request or upstream failure with an HTTP-shaped code."""

    def __init__(self, code: str, status_code: int, detail: Any = None):
        super().__init__(f"{code}: {detail}" if detail else code)
        self.code = code
        self.status_code = status_code
        self.detail = detail

    def to_payload(self) -> dict[str, Any]:
        """Structured error body returned to callers."""
        payload: dict[str, Any] = {"error": self.code}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


def _progress_int(value: Any) -> int:
    """Progress fields are informational; unparseable values read as 0."""
    try:
        return to_int(value) if value is not None else 0
    except ValueError:
        return 0


def parse_task_result(data: dict[str, Any], task_id: str) -> TaskStatusResponse:
    """Normalize an async task-result body into a status response.

    Args:
        data: Decoded JSON from the task-result endpoint.
        task_id: Task being polled.

    Returns:
        TaskStatusResponse with status success, failed, or in_progress.
    """
    task = data.get("task") or {}
    meta = TaskMeta(
        progress=_progress_int(task.get("progress_percent")),
        eta=_progress_int(task.get("eta")),
        task_id=task_id,
    )
    status = task.get("status")

    if status == TASK_STATUS_SUCCEED:
        videos = data.get("videos") or []
        images = data.get("images") or []
        video_url = videos[0].get("video_url") if videos else None
        image_urls = [img.get("image_url") for img in images if img.get("image_url")]
        return TaskStatusResponse(
            status="success",
            video_url=video_url,
            image_urls=image_urls or None,
            meta=meta,
        )

    if status == TASK_STATUS_FAILED:
        return TaskStatusResponse(
            status="failed",
            reason=task.get("reason") or "Model failed",
            meta=meta,
        )

    return TaskStatusResponse(status="in_progress", meta=meta)


class ProviderBase(ABC):
    """Abstract base class for generation providers.

    Async features return a task id to poll; image features answer
    synchronously with the provider's raw JSON body.
    """

    @abstractmethod
    def submit_text_to_video(self, payload: dict[str, Any]) -> str:
        """Start a text-to-video job and return its task id."""
        pass

    @abstractmethod
    def submit_image_to_video(self, payload: dict[str, Any]) -> str:
        """Start an image-to-video job and return its task id."""
        pass

    @abstractmethod
    def get_task_result(self, task_id: str) -> TaskStatusResponse:
        """Poll an async job."""
        pass

    @abstractmethod
    def text_to_image(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Generate images synchronously."""
        pass

    @abstractmethod
    def merge_face(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Merge a face onto a target image synchronously."""
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass
