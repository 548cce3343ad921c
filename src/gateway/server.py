"""
HTTP surface of the gateway.

POST /images takes a JSON array of [timestamp, value] pairs and answers with
the PNG plot rendered by the engine, or with a JSON document holding the
anomalies and the base64 PNG when the client accepts application/json.
"""

import json
import time
import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from src.rserve import (
    ChannelBusyError,
    DetectionPipeline,
    ExportError,
    PipelineError,
    Result,
    decode_batch,
)
from src.rserve.pipeline import Channel

from .models import GatewayConfig

logger = structlog.get_logger(__name__)

HEADER_METHOD = "X-Gorp-Method"
HEADER_ANOMALIES = "X-Gorp-Anomalies"
JSON_MEDIA_TYPE = "application/json"


def wants_json(accept: str | None) -> bool:
    """True if the Accept header lists application/json"""
    if not accept:
        return False
    return any(part.split(";")[0].strip().lower() == JSON_MEDIA_TYPE for part in accept.split(","))


def result_headers(result: Result) -> dict[str, str]:
    return {
        HEADER_METHOD: result.method,
        HEADER_ANOMALIES: str(len(result.anomalies)),
    }


def create_app(channel: Channel, config: GatewayConfig | None = None) -> FastAPI:
    """Build the gateway application around an open evaluation channel"""
    config = config or GatewayConfig()
    pipeline = DetectionPipeline(
        channel,
        scratch_dir=config.scratch_dir,
        keep_scratch=config.keep_scratch,
    )

    app = FastAPI(
        title="gorp",
        version="1.0.0",
        description="Anomaly detection plots from a local Rserve daemon",
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=uuid.uuid4().hex[:12])
        t0 = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                exc_info=True,
            )
            raise

        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - t0) * 1000, 1),
        )
        return response

    @app.post("/images")
    async def post_images(request: Request) -> Response:
        """Detect anomalies in the posted samples and return the plot"""
        body = await request.body()
        try:
            points = decode_batch(json.loads(body))
        except ValueError as e:
            logger.info("Rejected request body", error=str(e))
            return PlainTextResponse(f"decode post err: {e}", status_code=400)

        try:
            result = await run_in_threadpool(pipeline.run, points)
        except ChannelBusyError as e:
            return PlainTextResponse(f"GeneratePNG err: {e}", status_code=503)
        except PipelineError as e:
            logger.error("Detection failed", error=e.describe())
            return PlainTextResponse(f"GeneratePNG err: {e}", status_code=500)
        except ExportError as e:
            logger.error("Scratch export failed", error=str(e))
            return PlainTextResponse(f"GeneratePNG err: {e}", status_code=500)

        headers = result_headers(result)
        if wants_json(request.headers.get("accept")):
            return JSONResponse(result.to_dict(), headers=headers)

        return Response(content=result.png_data, media_type="image/png", headers=headers)

    @app.get("/health", response_class=PlainTextResponse)
    def health():
        """Liveness only; the Rserve channel is not checked"""
        return "OK"

    return app
