"""Schedule backend client — the system of record for tasks and dependencies."""

from __future__ import annotations
import json
import logging
import time
from typing import Any

import httpx

from msplite.graph.normalize import to_finite_number

logger = logging.getLogger("msplite.client")

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}

# Where the dependency list may live in a getDependencies response
DEPENDENCY_PAYLOAD_PATHS = (
    ("dependencies",),
    ("deps",),
    ("project", "dependencies"),
    ("project", "deps"),
    ("data",),
)


class BackendError(Exception):
    """Non-OK status, non-JSON body, or a response whose ``ok`` flag is not set."""
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def _require_edge_id(edge_id: Any) -> int | float:
    number = to_finite_number(edge_id)
    if number is None:
        raise BackendError("Invalid TaskDependencyId (API is not returning it).")
    return number


def extract_dependencies(payload: Any) -> list:
    """Pull the raw dependency list out of a getDependencies response."""
    for path in DEPENDENCY_PAYLOAD_PATHS:
        value = payload
        for key in path:
            value = value.get(key) if isinstance(value, dict) else None
        if value is not None:
            return value if isinstance(value, list) else []
    return []


class BackendClient:
    """Async client for the schedule backend.

    Every mutation is fire-and-await: the response must report ``ok`` and the
    caller re-fetches everything afterwards instead of trusting any delta.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        headers: dict | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={**self.headers, **NO_CACHE_HEADERS},
                timeout=self.timeout,
                transport=self._transport,
            )

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *args):
        await self.disconnect()

    async def _request(
        self,
        method: str,
        path: str,
        failure: str,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> dict | None:
        if self._client is None:
            await self.connect()

        # Cache-buster on every call
        query = {**(params or {}), "t": int(time.time() * 1000)}
        try:
            resp = await self._client.request(method, path, params=query, json=json_body)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise BackendError(f"{failure}: {e}") from e

        data = self._parse(resp)
        if not resp.is_success or not (isinstance(data, dict) and data.get("ok")):
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"{method} {path} → {resp.status_code}: {message or failure}")
            raise BackendError(message or failure, status_code=resp.status_code)
        return data

    @staticmethod
    def _parse(resp: httpx.Response) -> Any:
        text = resp.text
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            raise BackendError(
                f"Non-JSON response ({resp.status_code}): {text[:250]}",
                status_code=resp.status_code,
            )

    # ─── Reads ───

    async def get_schedule(self, project_id: str) -> dict:
        return await self._request(
            "GET", "/getSchedule", "Failed to load schedule",
            params={"projectId": project_id, "versionId": "latest"},
        )

    async def get_dependencies(self, project_id: str) -> list:
        data = await self._request(
            "GET", "/getDependencies", "Failed to load dependencies",
            params={"projectId": project_id},
        )
        return extract_dependencies(data)

    # ─── Mutations ───

    async def recalculate(self, project_id: str) -> dict:
        return await self._request(
            "POST", "/recalculate", "Recalculate failed",
            params={"projectId": project_id},
        )

    async def update_task_duration(self, task_id: Any, duration_days: int) -> dict:
        return await self._request(
            "POST", "/updateTask", "Duration update failed",
            json_body={"taskId": task_id, "durationDays": duration_days},
        )

    async def add_dependency(
        self,
        project_id: str,
        predecessor_id: str,
        successor_id: str,
        link_type: str = "FS",
        lag_days: int = 0,
    ) -> dict:
        """Create an edge. Callers must pass the integrity gate first."""
        return await self._request(
            "POST", "/addDependency", "Add dependency failed",
            json_body={
                "projectId": project_id,
                "predecessorTaskId": predecessor_id,
                "successorTaskId": successor_id,
                "linkType": link_type,
                "lagDays": lag_days,
            },
        )

    async def update_dependency(self, edge_id: Any, link_type: str, lag_days: int) -> dict:
        id_num = _require_edge_id(edge_id)
        link_type = str(link_type or "FS").upper()
        return await self._request(
            "POST", "/updateDependency", "Dependency update failed",
            json_body={
                "taskDependencyId": id_num,
                "linkType": link_type,
                "lagDays": lag_days,
                # tolerate PascalCase backends
                "LinkType": link_type,
                "LagDays": lag_days,
            },
        )

    async def delete_dependency(self, edge_id: Any) -> dict:
        id_num = _require_edge_id(edge_id)
        return await self._request(
            "POST", "/deleteDependency", "Delete dependency failed",
            json_body={"taskDependencyId": id_num},
        )

    async def create_project(self, payload: dict) -> dict:
        return await self._request(
            "POST", "/createProject", "Create project failed",
            json_body=payload,
        )
