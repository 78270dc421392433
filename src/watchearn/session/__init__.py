from watchearn.session.engagement import EngagementMonitor
from watchearn.session.handle import SessionHandle, start_session
from watchearn.session.timer import SessionState, SessionSummary, SessionTimer

__all__ = [
    "EngagementMonitor",
    "SessionHandle",
    "SessionState",
    "SessionSummary",
    "SessionTimer",
    "start_session",
]
