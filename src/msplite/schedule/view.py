"""Schedule view model — tolerant reads of the backend's schedule payload."""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from msplite.graph.normalize import normalize_task_id, to_finite_number


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def parse_iso_date(value: Any) -> date | None:
    """Parse ``YYYY-MM-DD`` (or an ISO datetime); None when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def day_to_date(start: date | None, day_no: Any) -> date | None:
    """Convert a backend day offset (ES/EF/LS/LF) to a calendar date."""
    if start is None:
        return None
    n = to_finite_number(day_no)
    if n is None:
        return None
    return start + timedelta(days=int(n))


def format_date(value: date | None) -> str:
    """``dd-Mon-yy``, e.g. ``05-Mar-25``."""
    if value is None:
        return ""
    return value.strftime("%d-%b-%y")


def is_critical(task: dict) -> bool:
    return task.get("IsCritical") in (1, True)


@dataclass
class ScheduleView:
    """Read-only accessors over the raw ``getSchedule`` payload."""
    payload: dict | None

    @property
    def project(self) -> dict | None:
        project = _get(self.payload, "project")
        return project if isinstance(project, dict) else None

    @property
    def tasks(self) -> list[dict]:
        tasks = _first(
            _get(self.payload, "tasks"),
            _get(self.project, "tasks"),
            _get(self.payload, "Tasks"),
            _get(self.project, "Tasks"),
        )
        return [t for t in tasks if isinstance(t, dict)] if isinstance(tasks, list) else []

    @property
    def version(self) -> dict | None:
        version = _first(
            _get(self.payload, "version"),
            _get(self.project, "version"),
            _get(self.payload, "Version"),
            _get(self.project, "Version"),
        )
        return version if isinstance(version, dict) else None

    @property
    def project_start(self) -> date | None:
        """LOI is the project start; fall back through the milestone shapes."""
        project = self.project or {}
        direct = parse_iso_date(project.get("projectStartDate"))
        if direct:
            return direct

        milestones = project.get("milestones")
        if isinstance(milestones, dict):
            loi = parse_iso_date(
                milestones.get("LOI") or milestones.get("loi") or milestones.get("loiDate")
            )
            if loi:
                return loi

        rows = project.get("Milestones")
        if isinstance(rows, list):
            for row in rows:
                if not isinstance(row, dict):
                    continue
                if str(row.get("Key") or row.get("key")) == "LOI":
                    return parse_iso_date(
                        row.get("Date") or row.get("date") or row.get("Value") or row.get("value")
                    )
        return None

    @property
    def needs_start_date(self) -> bool:
        return bool(self.tasks) and self.project_start is None

    def task_by_id(self) -> dict[str, dict]:
        return {normalize_task_id(t.get("TaskId")): t for t in self.tasks}

    def task_label(self, task_id: Any) -> str:
        task = self.task_by_id().get(normalize_task_id(task_id))
        if task is None:
            return f"TaskId {task_id if task_id is not None else ''}"
        return f"{task.get('Workstream') or ''} — {task.get('TaskName') or ''}"

    def critical_tasks(self) -> list[dict]:
        return [t for t in self.tasks if is_critical(t)]

    def kpis(self) -> dict:
        tasks = self.tasks
        total = len(tasks)
        completed = sum(1 for t in tasks if str(t.get("Status") or "").upper() == "COMPLETED")
        finish_day = _get(self.version, "projectFinishDay")
        return {
            "totalTasks": total,
            "completed": completed,
            "avgCompletion": round(completed / total * 100) if total else 0,
            "critical": len(self.critical_tasks()),
            "finishDate": day_to_date(self.project_start, finish_day),
        }

    def task_rows(self) -> list[dict]:
        """Tasks with target dates resolved from the LOI start."""
        start = self.project_start
        rows = []
        for t in self.tasks:
            rows.append({
                "taskId": normalize_task_id(t.get("TaskId")),
                "workstream": t.get("Workstream") or "",
                "name": t.get("TaskName") or "",
                "durationDays": t.get("DurationDays"),
                "targetStart": day_to_date(start, t.get("ES")),
                "targetFinish": day_to_date(start, t.get("EF")),
                "totalFloat": t.get("TotalFloat"),
                "critical": is_critical(t),
            })
        return rows
