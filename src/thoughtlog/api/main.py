"""FastAPI application factory."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from thoughtlog.api.routes import analysis, logs, pending
from thoughtlog.errors import ErrorKind, ThoughtLogError, error_kind, recovery_for
from thoughtlog.service import ThoughtLogService, build_service

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NETWORK: 503,
    ErrorKind.RATE_LIMIT: 503,
    ErrorKind.SERVER: 503,
    ErrorKind.AUTH: 502,
    ErrorKind.PARSE: 502,
}


async def _handle_thoughtlog_error(request: Request, exc: ThoughtLogError) -> JSONResponse:
    kind = error_kind(exc)
    hint = recovery_for(exc)
    headers = {}
    retry_after = getattr(exc, "retry_after_seconds", None)
    if retry_after:
        headers["Retry-After"] = str(int(retry_after))
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(kind, 500),
        content={
            "detail": exc.message,
            "kind": kind.value if kind else None,
            "recovery": {"message": hint.message, "action": hint.action},
        },
        headers=headers,
    )


def create_app(service: Optional[ThoughtLogService] = None) -> FastAPI:
    """Build and return the FastAPI app. Without a service, one is built from Settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.service is None:
            app.state.service = build_service()
        yield

    app = FastAPI(
        title="Thoughtlog API",
        description="Voice and text note analysis backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_exception_handler(ThoughtLogError, _handle_thoughtlog_error)
    app.include_router(analysis.router, prefix="/analyze", tags=["analysis"])
    app.include_router(logs.router, prefix="/logs", tags=["logs"])
    app.include_router(pending.router, prefix="/pending", tags=["pending"])

    return app


# Module-level app instance for uvicorn
app = create_app()
