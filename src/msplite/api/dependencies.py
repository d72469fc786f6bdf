"""Dependency API endpoints — integrity checks and gated edits."""

from fastapi import APIRouter, Depends

from msplite.api.deps import SESSION_ERRORS, get_session, http_error
from msplite.core.auth import verify_api_key
from msplite.schemas.dependency import DependencyCreate, DependencyProposal, DependencyUpdate
from msplite.session.controller import ScheduleSession

router = APIRouter(prefix="/dependencies", tags=["dependencies"])


@router.get("")
async def list_dependencies(
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """All loaded edges, with integrity issues found in the backend data."""
    return session.graph.to_dict()


@router.get("/issues")
async def dependency_issues(
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Duplicates and cycles present in the loaded dependency list."""
    return {"issues": [issue.to_dict() for issue in session.graph.issues()]}


@router.post("/check")
async def check_dependency(
    data: DependencyProposal,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Would this edge be accepted? Never touches the backend."""
    return session.check(data.predecessor_id, data.successor_id).to_dict()


@router.post("")
async def add_dependency(
    data: DependencyCreate,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Validate locally, create on the backend, then recalculate and reload."""
    try:
        result = await session.add_dependency(
            data.predecessor_id,
            data.successor_id,
            link_type=data.link_type.value,
            lag_days=data.lag_days,
        )
    except SESSION_ERRORS as e:
        raise http_error(e)
    return {
        "status": "added",
        "predecessorId": result.predecessor_id,
        "successorId": result.successor_id,
        "dependencies": session.graph.to_dict()["edges"],
    }


@router.put("/{edge_id}")
async def update_dependency(
    edge_id: int,
    data: DependencyUpdate,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Change link type / lag of an edge the backend has assigned an id to."""
    try:
        await session.update_dependency(edge_id, data.link_type.value, data.lag_days)
    except SESSION_ERRORS as e:
        raise http_error(e)
    return {"status": "updated", "taskDependencyId": edge_id}


@router.delete("/{edge_id}")
async def delete_dependency(
    edge_id: int,
    session: ScheduleSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Remove an edge, then recalculate and reload."""
    try:
        await session.remove_dependency(edge_id)
    except SESSION_ERRORS as e:
        raise http_error(e)
    return {"status": "removed", "taskDependencyId": edge_id}
