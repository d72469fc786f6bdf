"""Shared test fixtures for MSP Lite tests."""

import asyncio
import json

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from msplite.client.backend import BackendClient
from msplite.core.config import AppSettings
from msplite.server.main import create_app
from msplite.session.controller import ScheduleSession

BACKEND_URL = "http://backend.test/api"


# ─── Sample backend data ───

def sample_schedule() -> dict:
    return {
        "ok": True,
        "project": {
            "ProjectId": 1,
            "ProjectName": "Barethi 315MW",
            "projectStartDate": "2025-01-01",
        },
        "version": {"versionNo": 3, "projectFinishDay": 40},
        "tasks": [
            {"TaskId": 1, "TaskName": "Design", "Workstream": "Engineering", "DurationDays": 10,
             "ES": 0, "EF": 10, "TotalFloat": 0, "IsCritical": 1, "Status": "COMPLETED"},
            {"TaskId": 2, "TaskName": "Procure", "Workstream": "Supply", "DurationDays": 15,
             "ES": 10, "EF": 25, "TotalFloat": 0, "IsCritical": True, "Status": "IN_PROGRESS"},
            {"TaskId": 3, "TaskName": "Build", "Workstream": "Construction", "DurationDays": 10,
             "ES": 25, "EF": 35, "TotalFloat": 5, "IsCritical": 0},
            {"TaskId": 4, "TaskName": "Commission", "Workstream": "Construction", "DurationDays": 5,
             "ES": 35, "EF": 40, "TotalFloat": 0, "IsCritical": 1},
        ],
    }


def sample_dependencies() -> list:
    # Mixed casings, one edge without an id, one malformed record
    return [
        {"TaskDependencyId": 10, "PredecessorTaskId": 1, "SuccessorTaskId": 2, "LinkType": "FS", "LagDays": 0},
        {"taskDependencyId": 11, "predecessorTaskId": 2, "successorTaskId": 3, "linkType": "ss", "lagDays": 2},
        {"predecessorId": 3, "successorId": 4},
        {"note": "orphan row"},
    ]


class FakeBackend:
    """In-memory stand-in for the schedule backend, served via httpx.MockTransport."""

    def __init__(self):
        self.schedule = sample_schedule()
        self.deps = sample_dependencies()
        self.calls: list[tuple[str, dict, dict | None]] = []
        self.fail: dict[str, tuple[int, str]] = {}
        self.holds: dict[str, asyncio.Event] = {}
        self.pending: set[str] = set()
        self.next_id = 100

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def hold(self, name: str) -> asyncio.Event:
        event = asyncio.Event()
        self.holds[name] = event
        return event

    async def wait_for(self, name: str) -> None:
        """Yield to the loop until a held request has arrived."""
        for _ in range(1000):
            if name in self.pending:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"{name} never reached the backend")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content) if request.content else None
        self.calls.append((name, dict(request.url.params), body))

        if name in self.holds:
            self.pending.add(name)
            await self.holds[name].wait()
            self.pending.discard(name)

        if name in self.fail:
            status, text = self.fail[name]
            return httpx.Response(status, text=text)

        if name == "getSchedule":
            return httpx.Response(200, json=self.schedule)
        if name == "getDependencies":
            return httpx.Response(200, json={"ok": True, "dependencies": self.deps})
        if name == "recalculate":
            return httpx.Response(200, json={"ok": True})
        if name == "updateTask":
            for task in self.schedule["tasks"]:
                if str(task["TaskId"]) == str(body["taskId"]):
                    task["DurationDays"] = body["durationDays"]
            return httpx.Response(200, json={"ok": True})
        if name == "addDependency":
            self.next_id += 1
            self.deps.append({
                "TaskDependencyId": self.next_id,
                "PredecessorTaskId": int(body["predecessorTaskId"]),
                "SuccessorTaskId": int(body["successorTaskId"]),
                "LinkType": body["linkType"],
                "LagDays": body["lagDays"],
            })
            return httpx.Response(200, json={"ok": True, "taskDependencyId": self.next_id})
        if name == "updateDependency":
            for dep in self.deps:
                if dep.get("TaskDependencyId", dep.get("taskDependencyId")) == body["taskDependencyId"]:
                    dep.pop("linkType", None)
                    dep.pop("lagDays", None)
                    dep["LinkType"] = body["LinkType"]
                    dep["LagDays"] = body["LagDays"]
            return httpx.Response(200, json={"ok": True})
        if name == "deleteDependency":
            self.deps = [
                d for d in self.deps
                if d.get("TaskDependencyId", d.get("taskDependencyId")) != body["taskDependencyId"]
            ]
            return httpx.Response(200, json={"ok": True})
        if name == "createProject":
            self.schedule["project"]["ProjectId"] = 42
            self.schedule["project"]["ProjectName"] = body["projectName"]
            return httpx.Response(200, json={"ok": True, "projectId": 42})

        return httpx.Response(404, json={"ok": False, "error": f"Unknown endpoint {name}"})


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(MSPLITE_API_KEY="test_key", MSPLITE_BACKEND_URL=BACKEND_URL)


@pytest_asyncio.fixture
async def backend_client(backend):
    client = BackendClient(BACKEND_URL, transport=httpx.MockTransport(backend.handler))
    yield client
    await client.disconnect()


@pytest_asyncio.fixture
async def session(backend_client) -> ScheduleSession:
    """A session with project 1 already loaded."""
    s = ScheduleSession(backend_client, project_id="1")
    await s.load()
    return s


@pytest_asyncio.fixture
async def app(settings, backend_client):
    _app = create_app(settings=settings, client=backend_client)
    # ASGITransport does not run the lifespan; load explicitly
    await _app.state.session.load()
    yield _app


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client pointed at the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": "Bearer test_key"},
    ) as c:
        yield c


@pytest_asyncio.fixture
async def unauthed_client(app):
    """Async HTTP client without auth."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
