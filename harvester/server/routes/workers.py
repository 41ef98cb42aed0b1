"""Worker control and status routes."""
from fastapi import APIRouter, Depends, HTTPException

from harvester.server.deps import get_supervisor
from harvester.server.schemas import (
    ApiUrlRequest,
    AutomaticJobRequest,
    DispatchResponse,
    ManualJobRequest,
    WorkerListResponse,
)
from harvester.supervisor import WorkerSupervisor

router = APIRouter(tags=["workers"])


@router.post("/config/api-url")
def set_api_url(body: ApiUrlRequest, supervisor: WorkerSupervisor = Depends(get_supervisor)):
    """Set the job backend URL used by all workers."""
    supervisor.set_api_url(body.url.strip())
    return {"api_url": supervisor.api_url}


@router.get("/workers", response_model=WorkerListResponse)
def list_workers(supervisor: WorkerSupervisor = Depends(get_supervisor)):
    """Current state of every active worker."""
    return {"api_url": supervisor.api_url, "workers": supervisor.snapshot()}


@router.get("/workers/{worker_id}/log")
def get_worker_log(worker_id: str, supervisor: WorkerSupervisor = Depends(get_supervisor)):
    """Accumulated log lines of one worker."""
    text = supervisor.worker_log(worker_id)
    if text is None:
        raise HTTPException(status_code=404, detail=f"Unknown worker: {worker_id}")
    return {"id": worker_id, "log": text}


@router.post("/workers/manual", response_model=DispatchResponse)
def start_manual_worker(body: ManualJobRequest, supervisor: WorkerSupervisor = Depends(get_supervisor)):
    """Start a worker for one anime link."""
    worker_id = supervisor.dispatch_manual(body.link, body.mal_id)
    return {"worker_ids": [worker_id]}


@router.post("/workers/automatic", response_model=DispatchResponse)
def start_automatic_workers(body: AutomaticJobRequest, supervisor: WorkerSupervisor = Depends(get_supervisor)):
    """Start automatic workers that pull jobs from the backend."""
    return {"worker_ids": supervisor.dispatch_automatic(body.worker_count)}


@router.post("/workers/stop")
def stop_all_workers(supervisor: WorkerSupervisor = Depends(get_supervisor)):
    """Stop every running worker."""
    supervisor.stop_all()
    return {"status": "stopped"}
