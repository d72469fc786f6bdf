"""Tests for the MSP Lite API endpoints."""

import json

import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, unauthed_client):
        resp = await unauthed_client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["projectId"] == "1"
        assert data["loaded"] == "loaded"


class TestAuth:
    @pytest.mark.asyncio
    async def test_no_auth_rejected(self, unauthed_client):
        resp = await unauthed_client.get("/api/v1/schedule")
        assert resp.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_bad_auth_rejected(self, app):
        from httpx import AsyncClient, ASGITransport
        transport = ASGITransport(app=app)
        async with AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={"Authorization": "Bearer wrong_key"},
        ) as c:
            resp = await c.get("/api/v1/schedule")
            assert resp.status_code == 401


class TestSchedule:
    @pytest.mark.asyncio
    async def test_get_schedule(self, client):
        resp = await client.get("/api/v1/schedule")
        assert resp.status_code == 200
        data = resp.json()
        assert data["projectId"] == "1"
        assert data["projectStart"] == "2025-01-01"
        assert data["needsStartDate"] is False
        assert data["kpis"] == {
            "totalTasks": 4,
            "completed": 1,
            "avgCompletion": 25,
            "critical": 3,
            "finishDate": "2025-02-10",
        }
        first = data["tasks"][0]
        assert first["name"] == "Design"
        assert first["targetStart"] == "01-Jan-25"
        assert first["targetFinish"] == "11-Jan-25"
        assert data["tasks"][2]["predecessorCount"] == 1

    @pytest.mark.asyncio
    async def test_load_other_project(self, client, backend):
        resp = await client.post("/api/v1/schedule/load", json={"projectId": 7})
        assert resp.status_code == 200
        assert resp.json()["projectId"] == "7"
        last = [p for n, p, _ in backend.calls if n == "getDependencies"][-1]
        assert last["projectId"] == "7"

    @pytest.mark.asyncio
    async def test_load_failure_is_502(self, client, backend):
        backend.fail["getSchedule"] = (500, json.dumps({"ok": False, "error": "sql timeout"}))
        resp = await client.post("/api/v1/schedule/load", json={"projectId": 1})
        assert resp.status_code == 502
        assert resp.json()["detail"] == "sql timeout"

    @pytest.mark.asyncio
    async def test_recalculate(self, client, backend):
        resp = await client.post("/api/v1/schedule/recalculate")
        assert resp.status_code == 200
        assert "recalculate" in backend.names()


class TestDependencies:
    @pytest.mark.asyncio
    async def test_list(self, client):
        resp = await client.get("/api/v1/dependencies")
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["edges"]) == 3
        assert data["edges"][2]["canEdit"] is False
        assert data["issues"] == []

    @pytest.mark.asyncio
    async def test_issues_reported(self, client, app, backend):
        backend.deps.append({"PredecessorTaskId": 3, "SuccessorTaskId": 1, "TaskDependencyId": 12})
        await app.state.session.load()
        resp = await client.get("/api/v1/dependencies/issues")
        kinds = [i["kind"] for i in resp.json()["issues"]]
        assert kinds == ["cycle"]

    @pytest.mark.asyncio
    async def test_check_cycle(self, client, backend):
        resp = await client.post("/api/v1/dependencies/check", json={
            "predecessorTaskId": 3, "successorTaskId": 1,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is False
        assert data["reason"] == "CycleDetected"
        assert "addDependency" not in backend.names()

    @pytest.mark.asyncio
    async def test_check_ok(self, client):
        resp = await client.post("/api/v1/dependencies/check", json={
            "predecessorTaskId": "1", "successorTaskId": "4",
        })
        assert resp.json()["ok"] is True

    @pytest.mark.asyncio
    async def test_check_missing_endpoint(self, client):
        resp = await client.post("/api/v1/dependencies/check", json={"predecessorTaskId": 1})
        assert resp.json()["reason"] == "MissingEndpoint"

    @pytest.mark.asyncio
    async def test_add_rejected_cycle(self, client, backend):
        resp = await client.post("/api/v1/dependencies", json={
            "predecessorTaskId": 4, "successorTaskId": 2,
        })
        assert resp.status_code == 400
        assert resp.json()["detail"]["reason"] == "CycleDetected"
        assert "addDependency" not in backend.names()

    @pytest.mark.asyncio
    async def test_add_rejected_self(self, client):
        resp = await client.post("/api/v1/dependencies", json={
            "predecessorTaskId": 2, "successorTaskId": "2",
        })
        assert resp.status_code == 400
        assert resp.json()["detail"]["reason"] == "SelfDependency"

    @pytest.mark.asyncio
    async def test_add(self, client, backend):
        resp = await client.post("/api/v1/dependencies", json={
            "predecessorTaskId": 1, "successorTaskId": 3, "linkType": "SS", "lagDays": -1,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "added"
        assert len(data["dependencies"]) == 4
        body = next(b for n, _, b in backend.calls if n == "addDependency")
        assert body["linkType"] == "SS"
        assert body["lagDays"] == -1

    @pytest.mark.asyncio
    async def test_add_bad_link_type(self, client):
        resp = await client.post("/api/v1/dependencies", json={
            "predecessorTaskId": 1, "successorTaskId": 3, "linkType": "XX",
        })
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_add_backend_failure(self, client, app, backend):
        backend.fail["addDependency"] = (200, json.dumps({"ok": False, "error": "locked"}))
        resp = await client.post("/api/v1/dependencies", json={
            "predecessorTaskId": 1, "successorTaskId": 3,
        })
        assert resp.status_code == 502
        assert app.state.session.state.error == "locked"
        assert len(app.state.session.graph) == 3

    @pytest.mark.asyncio
    async def test_add_while_busy(self, client, app):
        app.state.session.state.busy = True
        app.state.session.state.busy_message = "Updating duration..."
        resp = await client.post("/api/v1/dependencies", json={
            "predecessorTaskId": 1, "successorTaskId": 3,
        })
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_update(self, client, backend):
        resp = await client.put("/api/v1/dependencies/10", json={"linkType": "FF", "lagDays": 3})
        assert resp.status_code == 200
        body = next(b for n, _, b in backend.calls if n == "updateDependency")
        assert body["taskDependencyId"] == 10
        assert body["LinkType"] == "FF"

    @pytest.mark.asyncio
    async def test_update_unknown(self, client):
        resp = await client.put("/api/v1/dependencies/999", json={"linkType": "FS", "lagDays": 0})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client, app):
        resp = await client.delete("/api/v1/dependencies/11")
        assert resp.status_code == 200
        assert app.state.session.graph.find_edge(11) is None


class TestTasks:
    @pytest.mark.asyncio
    async def test_task_dependencies(self, client):
        resp = await client.get("/api/v1/tasks/2/dependencies")
        assert resp.status_code == 200
        data = resp.json()
        assert [p["predecessorId"] for p in data["predecessors"]] == ["1"]
        assert [s["successorId"] for s in data["successors"]] == ["3"]

    @pytest.mark.asyncio
    async def test_update_duration(self, client, backend):
        resp = await client.put("/api/v1/tasks/3/duration", json={"durationDays": 12})
        assert resp.status_code == 200
        assert "updateTask" in backend.names()

    @pytest.mark.asyncio
    async def test_negative_duration(self, client):
        resp = await client.put("/api/v1/tasks/3/duration", json={"durationDays": -1})
        assert resp.status_code == 422


class TestProjects:
    @pytest.mark.asyncio
    async def test_create(self, client, app):
        resp = await client.post("/api/v1/projects", json={
            "projectName": "Barethi 2",
            "milestones": {"LOI": "2025-03-01", "COMM_CONTRACT": "2026-03-31"},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["projectId"] == "42"
        assert data["commissioningInternalDate"] == "2026-03-01"
        assert app.state.session.state.project_id == "42"

    @pytest.mark.asyncio
    async def test_create_requires_loi(self, client, backend):
        resp = await client.post("/api/v1/projects", json={
            "projectName": "Barethi 2",
            "milestones": {"COMM_CONTRACT": "2026-03-31"},
        })
        assert resp.status_code == 422
        assert "createProject" not in backend.names()
