"""FastAPI application for supervising harvest workers."""
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from harvester.errors import MalformedInput
from harvester.server.routes import status, workers
from harvester.settings import Settings, settings as default_settings
from harvester.supervisor import WorkerSupervisor


def create_app(
    supervisor: Optional[WorkerSupervisor] = None,
    settings: Optional[Settings] = None
) -> FastAPI:
    """
    Build the dashboard app around a supervisor.

    Args:
        supervisor: Supervisor to expose, built from settings if None
        settings: Settings instance, uses the environment if None
    """
    settings = settings or default_settings
    if supervisor is None:
        supervisor = WorkerSupervisor(settings.harvester_config(), api_url=settings.api_url)
    supervisor.start()

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        debug=settings.debug,
    )
    app.state.supervisor = supervisor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MalformedInput)
    async def malformed_input_handler(request: Request, exc: MalformedInput):
        return JSONResponse(status_code=400, content={"detail": str(exc), "type": "MalformedInput"})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "type": type(exc).__name__})

    api_router = APIRouter(prefix="/api")

    @api_router.get("/health")
    def health_check():
        """Health check endpoint."""
        submissions = supervisor.submissions.get_stats() if supervisor.submissions is not None else None
        return {
            "status": "healthy",
            "version": settings.api_version,
            "workers": len(supervisor.active_workers),
            "submissions": submissions,
        }

    api_router.include_router(workers.router)
    app.include_router(api_router)
    app.include_router(status.router)

    @app.on_event("shutdown")
    def shutdown_event():
        """Stop all workers when the server goes down."""
        print("\nShutting down...")
        supervisor.shutdown()
        print("✓ Stopped")

    return app
