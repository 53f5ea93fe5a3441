# tests/test_remote_client.py

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from todo_mirror.core.errors import NotFoundError, TransportError
from todo_mirror.remote.client import TodoApiClient
from todo_mirror.tasks.task_models import END_OF_LIST_ORDER, Priority, Task, normalize_for_create

BASE_URL = "http://store.test"

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler, seen: list[httpx.Request] | None = None) -> TodoApiClient:
    def recording(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(recording), base_url=BASE_URL)
    return TodoApiClient(BASE_URL, client=http)


@pytest.mark.asyncio
async def test_list_parses_tasks() -> None:
    seen: list[httpx.Request] = []
    payload = [
        {"id": "1", "title": "A", "completed": True, "priority": "high", "order": 4},
        {"id": "2", "title": "B", "completed": False, "priority": "low"},
    ]
    client = _client(lambda r: httpx.Response(200, json=payload), seen)

    tasks = await client.list()

    assert tasks == [
        Task(id="1", title="A", completed=True, priority=Priority.HIGH, order=4),
        Task(id="2", title="B", completed=False, priority=Priority.LOW, order=0),
    ]
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/todos"


@pytest.mark.asyncio
async def test_create_sends_full_payload_with_sentinel_order() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(201, json={"id": "42", **body})

    client = _client(handler, seen)
    created = await client.create(normalize_for_create(" Write report ", "high"))

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/todos"
    assert json.loads(seen[0].content) == {
        "title": "Write report",
        "priority": "high",
        "completed": False,
        "order": END_OF_LIST_ORDER,
    }
    assert created.id == "42"
    assert created.order == END_OF_LIST_ORDER


@pytest.mark.asyncio
async def test_patch_sends_only_changed_fields() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "7", "title": "A", "completed": True, "order": 0})

    client = _client(handler, seen)
    task = await client.patch("7", {"completed": True})

    assert seen[0].method == "PUT"
    assert seen[0].url.path == "/todos/7"
    assert json.loads(seen[0].content) == {"completed": True}
    assert task.completed is True


@pytest.mark.asyncio
@pytest.mark.parametrize("op", ["patch", "remove"])
async def test_404_on_single_task_is_not_found(op: str) -> None:
    client = _client(lambda r: httpx.Response(404, json={"error": "not found"}))

    with pytest.raises(NotFoundError) as exc_info:
        if op == "patch":
            await client.patch("9", {"title": "x"})
        else:
            await client.remove("9")
    assert exc_info.value.task_id == "9"
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_404_on_collection_is_plain_transport_error() -> None:
    client = _client(lambda r: httpx.Response(404))

    with pytest.raises(TransportError) as exc_info:
        await client.list()
    assert not isinstance(exc_info.value, NotFoundError)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_server_error_is_transport_error() -> None:
    client = _client(lambda r: httpx.Response(500, text="oops"))

    with pytest.raises(TransportError) as exc_info:
        await client.patch("1", {"order": 2})
    assert not isinstance(exc_info.value, NotFoundError)
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_remove_accepts_empty_body() -> None:
    seen: list[httpx.Request] = []
    client = _client(lambda r: httpx.Response(200), seen)

    assert await client.remove("3") is None
    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/todos/3"


@pytest.mark.asyncio
async def test_network_failure_is_transport_error_without_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(TransportError) as exc_info:
        await client.list()
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["not json", '{"items": []}'])
async def test_malformed_list_body_is_transport_error(body: str) -> None:
    client = _client(lambda r: httpx.Response(200, text=body))

    with pytest.raises(TransportError):
        await client.list()


@pytest.mark.asyncio
async def test_injected_client_is_left_open() -> None:
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])), base_url=BASE_URL)
    client = TodoApiClient(BASE_URL, client=http)

    await client.aclose()
    assert not http.is_closed
    await http.aclose()
