"""Session controller — local validation, backend write, full reload."""

from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

from msplite.client.backend import BackendClient, BackendError
from msplite.graph.engine import DependencyGraph, EdgeRejected, ProposalResult
from msplite.graph.normalize import DependencyEdge, build, normalize_task_id, to_finite_number
from msplite.schemas.project import BUFFER_DAYS_FIXED, ProjectCreate
from msplite.session.state import SessionState

logger = logging.getLogger("msplite.session")


class SessionBusy(Exception):
    """Raised when a mutation is attempted while another is in flight."""
    def __init__(self, busy_message: str):
        self.busy_message = busy_message
        super().__init__(f"Another change is in progress: {busy_message or 'working'}")


class MissingEdgeId(Exception):
    """The backend did not supply a TaskDependencyId, so the edge cannot be edited."""


class UnknownEdge(KeyError):
    """No dependency with this id in the currently loaded graph."""


class ScheduleSession:
    """Owns the session state; every write goes through the backend round-trip.

    Edit sequence: validate against the current edges, submit the write,
    recalculate, then reload schedule and dependencies from the backend.
    On failure the previously loaded state is kept and the error recorded.
    """

    def __init__(
        self,
        client: BackendClient,
        project_id: str = "1",
        buffer_days: int = BUFFER_DAYS_FIXED,
    ):
        self.client = client
        self.buffer_days = buffer_days
        self.state = SessionState(project_id=str(project_id))
        self._generation = 0

    @property
    def graph(self) -> DependencyGraph:
        return self.state.graph

    @asynccontextmanager
    async def _busy(self, message: str):
        if self.state.busy:
            raise SessionBusy(self.state.busy_message)
        self.state.busy = True
        self.state.busy_message = message
        self.state.error = ""
        try:
            yield
        except BackendError as e:
            self.state.error = str(e)
            raise
        finally:
            self.state.busy = False
            self.state.busy_message = ""

    # ─── Loading ───

    def select_project(self, project_id: Any) -> None:
        """Switch projects; any load still in flight for the old one is ignored."""
        self._generation += 1
        self.state.unload(str(project_id))

    async def load(self, project_id: Any = None) -> bool:
        """Fetch schedule + dependencies and rebuild the graph from scratch.

        Returns False when the result was superseded by a newer load or a
        project switch and therefore discarded.
        """
        target = str(project_id) if project_id is not None else self.state.project_id
        self._generation += 1
        generation = self._generation

        try:
            schedule, records = await asyncio.gather(
                self.client.get_schedule(target),
                self.client.get_dependencies(target),
            )
        except BackendError as e:
            if generation != self._generation:
                logger.info(f"Ignoring failed stale load for project {target}: {e}")
                return False
            self.state.error = str(e)
            raise

        if generation != self._generation:
            logger.info(f"Discarding stale load for project {target}")
            return False

        edges = build(records)
        dropped = len(records) - len(edges)
        graph = DependencyGraph(edges)
        self.state.replace(target, schedule, graph)
        self.state.error = ""

        for issue in graph.issues():
            logger.warning(f"Project {target}: backend {issue.kind} in dependencies: {' → '.join(issue.tasks)}")
        logger.info(
            f"Loaded project {target}: {len(self.state.view.tasks)} tasks, "
            f"{len(edges)} dependencies" + (f" ({dropped} malformed dropped)" if dropped else "")
        )
        return True

    async def _recalculate_and_reload(self, project_id: str) -> None:
        """Recalculate the edited project; reload it only if it is still selected."""
        await self.client.recalculate(project_id)
        if project_id != self.state.project_id:
            logger.info(f"Project {project_id} recalculated after switching to {self.state.project_id}; skipping reload")
            return
        await self.load(project_id)

    async def recalculate(self) -> None:
        project_id = self.state.project_id
        async with self._busy("Recalculating schedule..."):
            await self._recalculate_and_reload(project_id)

    # ─── Queries ───

    def check(self, predecessor_id: Any, successor_id: Any) -> ProposalResult:
        return self.graph.check(predecessor_id, successor_id)

    def task_dependencies(self, task_id: Any) -> dict:
        view = self.state.view
        tid = normalize_task_id(task_id)

        def _row(edge: DependencyEdge, other: str) -> dict:
            return {
                **edge.to_record(),
                "canEdit": edge.can_edit,
                "task": view.task_label(other),
            }

        return {
            "taskId": tid,
            "predecessors": [_row(e, e.predecessor_id) for e in self.graph.predecessors_of(tid)],
            "successors": [_row(e, e.successor_id) for e in self.graph.successors_of(tid)],
        }

    def _editable_edge(self, edge_id: Any) -> DependencyEdge:
        number = to_finite_number(edge_id)
        if number is None:
            raise MissingEdgeId("Missing TaskDependencyId from getDependencies")
        edge = self.graph.find_edge(number)
        if edge is None:
            raise UnknownEdge(number)
        return edge

    # ─── Mutations ───

    async def add_dependency(
        self,
        predecessor_id: Any,
        successor_id: Any,
        link_type: str = "FS",
        lag_days: int = 0,
    ) -> ProposalResult:
        """Gate the proposed edge, then create it on the backend and reload."""
        result = self.check(predecessor_id, successor_id)
        if not result.ok:
            raise EdgeRejected(result)

        project_id = self.state.project_id
        async with self._busy("Adding dependency..."):
            await self.client.add_dependency(
                project_id,
                result.predecessor_id,
                result.successor_id,
                link_type=str(link_type or "FS").upper(),
                lag_days=lag_days,
            )
            await self._recalculate_and_reload(project_id)
        return result

    async def update_dependency(self, edge_id: Any, link_type: str, lag_days: int) -> DependencyEdge:
        edge = self._editable_edge(edge_id)
        project_id = self.state.project_id
        async with self._busy("Updating dependency..."):
            await self.client.update_dependency(edge.edge_id, link_type, lag_days)
            await self._recalculate_and_reload(project_id)
        return edge

    async def remove_dependency(self, edge_id: Any) -> DependencyEdge:
        edge = self._editable_edge(edge_id)
        project_id = self.state.project_id
        async with self._busy("Deleting dependency..."):
            await self.client.delete_dependency(edge.edge_id)
            await self._recalculate_and_reload(project_id)
        return edge

    async def update_duration(self, task_id: Any, duration_days: int) -> None:
        project_id = self.state.project_id
        async with self._busy("Updating duration..."):
            await self.client.update_task_duration(task_id, duration_days)
            await self._recalculate_and_reload(project_id)

    async def create_project(self, project: ProjectCreate) -> str:
        """Create from template, then switch to and load the new project."""
        async with self._busy("Creating project from template..."):
            out = await self.client.create_project(project.to_payload(self.buffer_days))
            new_id = out.get("projectId")
            if new_id is None:
                raise BackendError("Create project did not return a projectId")
            self.select_project(new_id)
            await self.load(new_id)
        return str(new_id)
