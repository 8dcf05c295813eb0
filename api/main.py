from __future__ import annotations

import logging
import os
from typing import Callable

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from api.schemas import DetectResponse, ErrorResponse
from clients.base import Services
from clients.registry import get_services
from pipeline.errors import InternalError
from pipeline.graph import pipeline
from pipeline.state import ThermalState

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
log = logging.getLogger(__name__)

ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
}

app = FastAPI(
    title="Thermal Detection API",
    version="1.0.0",
    description="Thermal image upload, AI object detection and result storage.",
)


@app.middleware("http")
async def cors(request: Request, call_next):
    """
    Answers every OPTIONS request as a CORS preflight (empty 200) and puts
    the permissive CORS headers on every other response.
    """
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def services_provider() -> Callable[[], Services]:
    """
    Dependency returning the service accessor rather than the services, so
    configuration errors surface inside the handler's error boundary.
    """
    return get_services


def _json(body: dict, status_code: int) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code)


@app.post(
    "/detect-thermal",
    response_model=DetectResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        402: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def detect_thermal(
    request: Request,
    provider: Callable[[], Services] = Depends(services_provider),
):
    """
    Authenticate, store the uploaded `image`, run AI detection on it and
    save the results.
    """
    state: ThermalState = {
        "authorization": request.headers.get("authorization"),
        "user_id": None,
        "image": None,
        "image_path": None,
        "data_url": None,
        "ai_content": None,
        "detections": None,
        "record": None,
        "image_url": None,
        "status_code": None,
        "response": None,
        "error": None,
    }

    try:
        services = provider()
        result = await pipeline.ainvoke(
            state,
            config={"configurable": {"services": services, "read_form": request.form}},
        )
        return _json(result["response"], result["status_code"])
    except Exception as e:
        log.exception("Error in detect-thermal handler")
        err = InternalError(str(e) or None)
        return _json({"error": err.message}, err.status_code)


@app.get("/health")
def health():
    """
    Basic health check.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
