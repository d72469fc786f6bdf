"""Session state — the single owner of the loaded schedule and dependency edges."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from msplite.graph.engine import DependencyGraph
from msplite.schedule.view import ScheduleView


class LoadState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


@dataclass
class SessionState:
    """What the UI is currently showing.

    ``graph`` is replaced wholesale on every successful reload and never
    patched in place.
    """
    project_id: str
    status: LoadState = LoadState.UNLOADED
    schedule: dict | None = None
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    loaded_at: datetime | None = None
    busy: bool = False
    busy_message: str = ""
    error: str = ""

    @property
    def view(self) -> ScheduleView:
        return ScheduleView(self.schedule)

    @property
    def edges(self):
        return self.graph.edges

    def replace(self, project_id: str, schedule: dict | None, graph: DependencyGraph) -> None:
        self.project_id = project_id
        self.schedule = schedule
        self.graph = graph
        self.status = LoadState.LOADED
        self.loaded_at = datetime.now(tz=timezone.utc)

    def unload(self, project_id: str) -> None:
        self.project_id = project_id
        self.schedule = None
        self.graph = DependencyGraph()
        self.status = LoadState.UNLOADED
        self.loaded_at = None

    def to_dict(self) -> dict:
        view = self.view
        kpis = view.kpis()
        start = view.project_start
        finish = kpis["finishDate"]
        return {
            "projectId": self.project_id,
            "status": self.status.value,
            "loadedAt": self.loaded_at.isoformat() if self.loaded_at else None,
            "busy": self.busy,
            "busyMessage": self.busy_message,
            "error": self.error or None,
            "project": view.project,
            "version": view.version,
            "projectStart": start.isoformat() if start else None,
            "needsStartDate": view.needs_start_date,
            "kpis": {**kpis, "finishDate": finish.isoformat() if finish else None},
            "dependencyCount": len(self.graph),
        }
