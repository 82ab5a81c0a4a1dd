from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from core.logging import setup_logging
from web import routers
from web.middleware.auth_context import auth_context_middleware
from web.middleware.trial_gate import trial_gate_middleware


def create_app(
    *,
    session_factory: Optional[Callable[[], Session]] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Build the API app. ``session_factory`` and ``clock`` default to ``database.SessionLocal`` and UTC now."""
    setup_logging()
    app = FastAPI(
        title="Agency Entitlements API",
        description="Tier limits, usage metering, and trial enforcement for the agency panel.",
        version="0.1.0",
    )
    app.state.session_factory = session_factory
    app.state.clock = clock

    # Starlette runs the last registered middleware first; identity must resolve before the gate.
    @app.middleware("http")
    async def enforce_trial_gate(request: Request, call_next):
        """Reject non-allowlisted agency requests once the trial has ended."""
        return await trial_gate_middleware(request, call_next)

    @app.middleware("http")
    async def attach_auth_context(request: Request, call_next):
        """Populate request.state.user from gateway identity headers."""
        return await auth_context_middleware(request, call_next)

    @app.get("/", summary="Health Check", tags=["Default"])
    def health_check():
        return {"status": "ok", "message": "Agency Entitlements API is running."}

    @app.get("/metrics", include_in_schema=False)
    def prometheus_metrics():
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(routers.subscription.router, prefix="/api")
    return app


app = create_app()
