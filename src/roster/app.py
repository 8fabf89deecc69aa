"""FastAPI application exposing recurring schedule generation endpoints."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .router import router as api_router
from .utils import configure_logging, logger

configure_logging()

app = FastAPI(
    title="Roster Scheduling API",
    version="1.0.0",
    description=(
        "HTTP API that previews, generates and manages recurring schedules "
        "for scheduled areas."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    return [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies and parameters as 400 responses."""
    logger.bind(path=request.url.path, errors=len(exc.errors())).info(
        "Rejected invalid request"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _jsonable_errors(exc)},
    )


app.include_router(api_router)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    """Simple readiness probe."""
    return {"status": "ok"}
