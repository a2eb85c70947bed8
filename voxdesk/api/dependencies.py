"""FastAPI dependencies shared by the HTTP and WebSocket handlers."""

from __future__ import annotations

from fastapi import Request

from voxdesk.core.orchestrator import CallOrchestrator


def get_orchestrator(request: Request) -> CallOrchestrator:
    """The process-wide call orchestrator created at startup."""
    orchestrator: CallOrchestrator = request.app.state.orchestrator
    return orchestrator
