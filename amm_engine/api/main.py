"""FastAPI application for the AMM simulation service.

Note: there is no authentication. Any caller can fund accounts and act as
any provider or trader; the service is a simulator, not a custody layer.
"""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from amm_engine.api.endpoints import router
from amm_engine.errors import AMMError, ErrorKind
from amm_engine.models.api import ErrorResponse

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("AMM_HOST", "0.0.0.0")
PORT = int(os.environ.get("AMM_PORT", "8000"))
DEBUG = os.environ.get("AMM_DEBUG", "false").lower() in ("true", "1", "yes")

# HTTP status per error kind; anything not listed is a 400
ERROR_STATUS = {
    ErrorKind.POOL_NOT_FOUND: 404,
    ErrorKind.POOL_ALREADY_EXISTS: 409,
}

app = FastAPI(
    title="AMM Engine Simulator",
    description="Constant-product AMM engine with in-memory collaborators",
    version="0.1.0",
)


@app.exception_handler(AMMError)
async def engine_error_handler(request: Request, exc: AMMError) -> JSONResponse:
    """Surface engine error kinds verbatim."""
    status = ERROR_STATUS.get(exc.kind, 400)
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=exc.kind.value,
        status=status,
    )
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=exc.kind.value, detail=str(exc) or None).model_dump(),
    )


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Run the simulation API server.

    Configuration via environment variables:
    - AMM_HOST: Host to bind to (default: 0.0.0.0)
    - AMM_PORT: Port to bind to (default: 8000)
    - AMM_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "amm_engine.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
