"""FastAPI application main module.

This module defines the FastAPI application instance, registers the
prediction routes and the error handler that turns RatingMF exceptions into
JSON responses, and exposes the health check and metrics endpoints.
"""

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ratingmf import __version__
from ratingmf.api.logging_config import RequestLoggingMiddleware
from ratingmf.api.metrics import metrics_service
from ratingmf.api.routes import predict
from ratingmf.exceptions import RatingMFException

logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title="RatingMF API",
    description="Matrix factorisation rating prediction service",
    version=__version__,
)

app.add_middleware(RequestLoggingMiddleware)
app.include_router(predict.router)


@app.exception_handler(RatingMFException)
async def ratingmf_exception_handler(request: Request, exc: RatingMFException) -> JSONResponse:
    """Render a RatingMF error with its own status code."""
    logger.warning(
        exc.message,
        extra={"path": str(request.url.path), "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Example:
        >>> response = client.get("/ping")
        >>> assert response.json() == {"status": "ok"}
    """
    return {"status": "ok"}


@app.get("/metrics")
def get_metrics() -> Dict:
    """Prediction and training counters."""
    return metrics_service.get_metrics()


if __name__ == "__main__":
    import uvicorn

    from ratingmf.api.logging_config import setup_logging

    setup_logging()
    uvicorn.run(
        "ratingmf.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
