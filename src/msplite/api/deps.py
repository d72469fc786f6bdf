"""Shared API dependencies — the owning session and error translation."""

from fastapi import HTTPException, Request

from msplite.client.backend import BackendError
from msplite.graph.engine import EdgeRejected
from msplite.session.controller import MissingEdgeId, ScheduleSession, SessionBusy, UnknownEdge

SESSION_ERRORS = (EdgeRejected, SessionBusy, MissingEdgeId, UnknownEdge, BackendError)


def get_session(request: Request) -> ScheduleSession:
    return request.app.state.session


def http_error(e: Exception) -> HTTPException:
    """Map session/graph/backend failures onto HTTP responses."""
    if isinstance(e, EdgeRejected):
        return HTTPException(400, e.result.to_dict())
    if isinstance(e, SessionBusy):
        return HTTPException(409, str(e))
    if isinstance(e, MissingEdgeId):
        return HTTPException(409, str(e))
    if isinstance(e, UnknownEdge):
        return HTTPException(404, f"Dependency {e.args[0]} not found")
    if isinstance(e, BackendError):
        return HTTPException(502, str(e))
    return HTTPException(500, str(e))
