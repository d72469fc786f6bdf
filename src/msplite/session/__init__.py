"""Session state and the load/validate/write/reload controller."""

from msplite.session.controller import MissingEdgeId, ScheduleSession, SessionBusy, UnknownEdge
from msplite.session.state import LoadState, SessionState

__all__ = ["LoadState", "MissingEdgeId", "ScheduleSession", "SessionBusy", "SessionState", "UnknownEdge"]
