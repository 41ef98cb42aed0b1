"""API dependencies."""
from fastapi import Request

from harvester.supervisor import WorkerSupervisor


def get_supervisor(request: Request) -> WorkerSupervisor:
    return request.app.state.supervisor


__all__ = ["get_supervisor"]
