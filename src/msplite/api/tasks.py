"""Task API endpoints — per-task dependency panel and duration edits."""

from fastapi import APIRouter, Depends

from msplite.api.deps import SESSION_ERRORS, get_session, http_error
from msplite.core.auth import verify_api_key
from msplite.schemas.dependency import DurationUpdate
from msplite.session.controller import ScheduleSession

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/{task_id}/dependencies")
async def task_dependencies(
    task_id: str,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Direct predecessors and successors of a task."""
    return session.task_dependencies(task_id)


@router.put("/{task_id}/duration")
async def update_duration(
    task_id: str,
    data: DurationUpdate,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Change a task's duration, then recalculate and reload."""
    try:
        await session.update_duration(task_id, data.duration_days)
    except SESSION_ERRORS as e:
        raise http_error(e)
    return {"status": "updated", "taskId": task_id, "durationDays": data.duration_days}
