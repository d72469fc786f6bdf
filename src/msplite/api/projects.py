"""Project API endpoints — create from template."""

from fastapi import APIRouter, Depends

from msplite.api.deps import SESSION_ERRORS, get_session, http_error
from msplite.core.auth import verify_api_key
from msplite.schemas.project import ProjectCreate
from msplite.session.controller import ScheduleSession

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("")
async def create_project(
    data: ProjectCreate,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Create a project (backend scales template durations), then load it."""
    try:
        project_id = await session.create_project(data)
    except SESSION_ERRORS as e:
        raise http_error(e)
    return {
        "status": "created",
        "projectId": project_id,
        "commissioningInternalDate": data.commissioning_internal_date(session.buffer_days).isoformat(),
    }
