"""Request and response schemas for the dashboard API."""
from typing import List, Optional, Union
from pydantic import BaseModel, Field


class ApiUrlRequest(BaseModel):
    """Job backend base URL."""
    url: str = Field(..., min_length=1)


class ManualJobRequest(BaseModel):
    """Operator-supplied anime link."""
    link: str = Field(..., min_length=1)
    mal_id: Union[int, str]


class AutomaticJobRequest(BaseModel):
    """Number of automatic workers to start."""
    worker_count: int = Field(1, ge=1, le=32)


class WorkerStateResponse(BaseModel):
    """Live state of one worker."""
    id: str
    anime_title: str = ""
    episode: Optional[int] = None
    processed_count: int = 0
    progress_line: str = ""


class DispatchResponse(BaseModel):
    """Ids of the workers started by a dispatch request."""
    worker_ids: List[str]


class WorkerListResponse(BaseModel):
    """Snapshot of all active workers."""
    api_url: Optional[str] = None
    workers: List[WorkerStateResponse]
