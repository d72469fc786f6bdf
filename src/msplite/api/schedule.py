"""Schedule API endpoints — load, view, recalculate."""

from fastapi import APIRouter, Depends, HTTPException

from msplite.api.deps import SESSION_ERRORS, get_session, http_error
from msplite.core.auth import verify_api_key
from msplite.schedule.view import format_date
from msplite.schemas.dependency import ProjectLoad
from msplite.session.controller import ScheduleSession

router = APIRouter(prefix="/schedule", tags=["schedule"])


def _schedule_response(session: ScheduleSession) -> dict:
    rows = []
    for row in session.state.view.task_rows():
        rows.append({
            **row,
            "targetStart": format_date(row["targetStart"]),
            "targetFinish": format_date(row["targetFinish"]),
            "predecessorCount": len(session.graph.predecessors_of(row["taskId"])),
        })
    return {**session.state.to_dict(), "tasks": rows}


@router.get("")
async def get_schedule(
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Current session state plus task rows with target dates."""
    return _schedule_response(session)


@router.post("/load")
async def load_schedule(
    data: ProjectLoad,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Switch to a project and load it from the backend."""
    project_id = str(data.project_id)
    if project_id != session.state.project_id:
        session.select_project(project_id)
    try:
        fresh = await session.load(project_id)
    except SESSION_ERRORS as e:
        raise http_error(e)
    if not fresh:
        raise HTTPException(409, "Load superseded by a newer request")
    return _schedule_response(session)


@router.post("/recalculate")
async def recalculate(
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Ask the backend to recalculate, then reload everything."""
    try:
        await session.recalculate()
    except SESSION_ERRORS as e:
        raise http_error(e)
    return _schedule_response(session)
