# src/todo_mirror/remote/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import NotFoundError, TransportError
from ..tasks.task_models import END_OF_LIST_ORDER, NewTask, Task

logger = logging.getLogger(__name__)

COLLECTION_PATH = "/todos"


def _make_timeout(seconds: float) -> httpx.Timeout:
    """Connect is capped lower than read so a dead host fails fast."""
    seconds = max(0.5, float(seconds))
    return httpx.Timeout(seconds, connect=min(seconds, 5.0))


def _describe(exc: httpx.HTTPError) -> str:
    return f"{exc.__class__.__name__}: {exc}".rstrip(": ")


class TodoApiClient:
    """
    Stateless wrapper around the remote /todos collection.

    One request per call, no retries, no batching: the cache decides what a
    failure means. Errors are mapped to the project taxonomy:
    - network problems and non-2xx responses -> TransportError
    - 404 on patch/remove -> NotFoundError

    An httpx.AsyncClient can be injected (tests pass one backed by
    httpx.MockTransport); otherwise one is created and owned by this object.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        if client is None:
            # httpx never retries requests by default; keep it that way.
            client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=_make_timeout(timeout_seconds),
                headers={"Accept": "application/json"},
            )
        self._client = client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- low-level helpers ----

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        task_id: str | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.info("%s %s failed: %s", method, path, _describe(e))
            raise TransportError(f"{method} {path} failed: {_describe(e)}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)

        if response.status_code == 404 and task_id is not None:
            raise NotFoundError(f"task {task_id} not found", task_id=task_id)
        if response.is_error:
            raise TransportError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError("response body is not valid JSON", status_code=response.status_code) from e

    @classmethod
    def _task(cls, response: httpx.Response) -> Task:
        data = cls._json(response)
        if not isinstance(data, dict) or "id" not in data:
            raise TransportError("response is not a task object", status_code=response.status_code)
        return Task.from_json(data)

    # ---- public API ----

    async def list(self) -> list[Task]:
        response = await self._send("GET", COLLECTION_PATH)
        data = self._json(response)
        if not isinstance(data, list):
            raise TransportError("response is not a task array", status_code=response.status_code)
        tasks = [Task.from_json(item) for item in data if isinstance(item, dict) and "id" in item]
        logger.debug("Listed %d tasks", len(tasks))
        return tasks

    async def create(self, new_task: NewTask, *, order: int = END_OF_LIST_ORDER) -> Task:
        body = {
            "title": new_task.title,
            "priority": new_task.priority.value,
            "completed": False,
            "order": int(order),
        }
        response = await self._send("POST", COLLECTION_PATH, json=body)
        task = self._task(response)
        logger.debug("Created task id=%s", task.id)
        return task

    async def patch(self, task_id: str, fields: dict[str, Any]) -> Task:
        path = f"{COLLECTION_PATH}/{task_id}"
        response = await self._send("PUT", path, json=dict(fields), task_id=task_id)
        return self._task(response)

    async def remove(self, task_id: str) -> None:
        path = f"{COLLECTION_PATH}/{task_id}"
        await self._send("DELETE", path, task_id=task_id)
