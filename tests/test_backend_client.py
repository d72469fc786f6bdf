"""Tests for the schedule backend client."""

import json

import httpx
import pytest

from msplite.client.backend import BackendClient, BackendError, extract_dependencies


def _client(handler) -> BackendClient:
    return BackendClient("http://backend.test/api/", transport=httpx.MockTransport(handler))


class TestExtractDependencies:
    def test_shapes(self):
        rows = [{"predId": 1, "succId": 2}]
        assert extract_dependencies({"dependencies": rows}) == rows
        assert extract_dependencies({"deps": rows}) == rows
        assert extract_dependencies({"project": {"dependencies": rows}}) == rows
        assert extract_dependencies({"project": {"deps": rows}}) == rows
        assert extract_dependencies({"data": rows}) == rows

    def test_first_present_wins(self):
        assert extract_dependencies({"dependencies": [], "deps": [{"a": 1}]}) == []

    def test_missing_or_wrong_type(self):
        assert extract_dependencies(None) == []
        assert extract_dependencies({"ok": True}) == []
        assert extract_dependencies({"dependencies": {"not": "a list"}}) == []


class TestRequests:
    @pytest.mark.asyncio
    async def test_cache_busting(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "tasks": []})

        async with _client(handler) as client:
            await client.get_schedule("5")

        [request] = seen
        assert request.url.path == "/api/getSchedule"
        assert request.url.params["projectId"] == "5"
        assert request.url.params["versionId"] == "latest"
        assert request.url.params["t"].isdigit()
        assert request.headers["Cache-Control"] == "no-cache"
        assert request.headers["Pragma"] == "no-cache"

    @pytest.mark.asyncio
    async def test_ok_flag_required(self):
        async with _client(lambda r: httpx.Response(200, json={"tasks": []})) as client:
            with pytest.raises(BackendError, match="Failed to load schedule"):
                await client.get_schedule("1")

    @pytest.mark.asyncio
    async def test_error_message_from_body(self):
        def handler(request):
            return httpx.Response(400, json={"ok": False, "error": "Unknown task"})

        async with _client(handler) as client:
            with pytest.raises(BackendError, match="Unknown task") as exc:
                await client.update_task_duration(9, 3)
        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        page = "<html>" + "x" * 400 + "</html>"
        async with _client(lambda r: httpx.Response(502, text=page)) as client:
            with pytest.raises(BackendError) as exc:
                await client.recalculate("1")
        message = str(exc.value)
        assert message.startswith("Non-JSON response (502): <html>")
        assert len(message) == len("Non-JSON response (502): ") + 250

    @pytest.mark.asyncio
    async def test_empty_body(self):
        async with _client(lambda r: httpx.Response(200)) as client:
            with pytest.raises(BackendError, match="Recalculate failed"):
                await client.recalculate("1")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(BackendError, match="Failed to load dependencies"):
                await client.get_dependencies("1")


class TestDependencyMutations:
    @pytest.mark.asyncio
    async def test_update_sends_both_casings(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        async with _client(handler) as client:
            await client.update_dependency("12", "sf", 4)

        assert bodies == [{
            "taskDependencyId": 12,
            "linkType": "SF",
            "lagDays": 4,
            "LinkType": "SF",
            "LagDays": 4,
        }]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", [None, "", "abc", float("nan")])
    async def test_invalid_id_never_sent(self, bad_id):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        async with _client(handler) as client:
            with pytest.raises(BackendError, match="Invalid TaskDependencyId"):
                await client.delete_dependency(bad_id)
            with pytest.raises(BackendError, match="Invalid TaskDependencyId"):
                await client.update_dependency(bad_id, "FS", 0)
        assert seen == []
