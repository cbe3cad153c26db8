"""
FastAPI dependencies resolving per-application state.
"""

from typing import Annotated

from fastapi import Depends, Request

from sitescan.api.login_guard import LoginGuard
from sitescan.queue.job_queue import JobQueue
from sitescan.queue.listeners import JobEventLog


def get_queue(request: Request) -> JobQueue:
    """Get the job queue owned by this application."""
    return request.app.state.queue


def get_event_log(request: Request) -> JobEventLog:
    """Get the terminal job event history."""
    return request.app.state.event_log


def get_login_guard(request: Request) -> LoginGuard:
    """Get the admin login lockout tracker."""
    return request.app.state.login_guard


QueueDep = Annotated[JobQueue, Depends(get_queue)]
EventLogDep = Annotated[JobEventLog, Depends(get_event_log)]
LoginGuardDep = Annotated[LoginGuard, Depends(get_login_guard)]
