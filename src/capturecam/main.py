"""
CaptureCam Main Application
===========================

FastAPI entry point for the business-card capture service.

Endpoints:
    GET  /                  - Service information
    GET  /health            - Liveness probe (is process alive?)
    GET  /ready             - Readiness probe (controller started?)
    GET  /metrics           - Controller and camera metrics
    GET  /capture/status    - Current CaptureStatus
    POST /capture           - Trigger a capture
    POST /capture/retake    - Discard the artifact, back to LIVE
    GET  /capture/artifact  - Normalized PNG of the accepted capture
    POST /capture/upload    - Store the accepted artifact
    POST /api/upload        - Multipart image upload (field 'image')
    GET  /api/gallery       - Stored images, newest first
    GET  /api/leads         - Lead records, newest first
    POST /api/leads         - Create a lead record
    WS   /ws/status         - CaptureStatus once per second
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, File, Request, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from capturecam.camera import create_video_source
from capturecam.capture import CaptureController, NoArtifactError
from capturecam.config import settings
from capturecam.imaging import FrameNormalizer
from capturecam.quality import BrightnessSampler, SharpnessEstimator
from capturecam.storage import (
    Gallery,
    LeadStore,
    LeadValidationError,
    UploadStore,
    UploadValidationError,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

# Shutdown flag
_shutdown_flag: bool = False

# Capture pipeline
_controller: Optional[CaptureController] = None

# Collaborators
_upload_store: Optional[UploadStore] = None
_gallery: Optional[Gallery] = None
_lead_store: Optional[LeadStore] = None

_startup_time: float = 0.0
_is_ready: bool = False

# Error counters
_request_error_count: int = 0


# =============================================================================
# Getters
# =============================================================================

def get_controller() -> Optional[CaptureController]:
    return _controller

def get_upload_store() -> Optional[UploadStore]:
    return _upload_store

def get_gallery() -> Optional[Gallery]:
    return _gallery

def get_lead_store() -> Optional[LeadStore]:
    return _lead_store

def is_ready() -> bool:
    return _is_ready


# =============================================================================
# Pipeline Factory
# =============================================================================

def create_controller() -> CaptureController:
    """Build the capture controller from settings."""
    return CaptureController(
        source=create_video_source(settings.camera),
        sampler=BrightnessSampler(settings.brightness),
        estimator=SharpnessEstimator(settings.sharpness),
        normalizer=FrameNormalizer(settings.output),
    )


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _server_error(context: str, e: Exception) -> JSONResponse:
    global _request_error_count
    _request_error_count += 1
    logger.error(f"[{context}] {e}")
    return _error(str(e) or "Unknown server error", 500)


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _controller, _upload_store, _gallery, _lead_store
    global _startup_time, _is_ready, _shutdown_flag

    # Startup
    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    port = int(os.environ.get("PORT", settings.server.port))
    logger.info(f"Configured port: {port}")

    # Collaborators
    _upload_store = UploadStore(settings.storage)
    _gallery = Gallery(settings.storage)
    _lead_store = LeadStore(settings.storage)
    await asyncio.to_thread(_lead_store.init_schema)

    # Capture pipeline
    logger.info(f"Camera backend: {settings.camera.backend}")
    _controller = create_controller()
    await _controller.start()

    _is_ready = True
    logger.info("All components started")

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    _shutdown_flag = True
    _is_ready = False

    if _controller:
        await _controller.stop()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="CaptureCam",
    description="Business-card capture with brightness and blur gating",
    version=settings.app.version,
    lifespan=lifespan,
)

app.mount(
    settings.storage.url_prefix,
    StaticFiles(directory=settings.storage.uploads_dir, check_dir=False),
    name="uploads",
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "CaptureCam",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "camera_backend": settings.camera.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the capture pipeline running?

    Returns 503 until the controller has started.
    """
    controller = get_controller()

    if _is_ready and controller is not None:
        return JSONResponse({
            "status": "ready",
            "state": controller.state.value,
            "capture_count": controller.capture_count,
        })

    return JSONResponse({"status": "not_ready"}, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    controller = get_controller()
    store = get_upload_store()

    controller_metrics = controller.get_metrics() if controller else {}

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "camera_backend": settings.camera.backend,
        "request_errors": _request_error_count,
        "uploads_saved": store.saved_count if store else 0,
        **controller_metrics,
    })


# -----------------------------------------------------------------------------
# Capture
# -----------------------------------------------------------------------------

@app.get("/capture/status")
async def capture_status() -> JSONResponse:
    controller = get_controller()
    if controller is None:
        return _error("Capture pipeline not started", 503)
    return JSONResponse(controller.status().model_dump(mode="json"))


@app.post("/capture")
async def capture() -> JSONResponse:
    """Trigger a capture; rejections are reported in reason_code."""
    controller = get_controller()
    if controller is None:
        return _error("Capture pipeline not started", 503)

    try:
        result = await controller.capture()
    except Exception as e:
        return _server_error("capture", e)

    return JSONResponse({
        "success": result.accepted,
        **result.model_dump(mode="json"),
    })


@app.post("/capture/retake")
async def capture_retake() -> JSONResponse:
    controller = get_controller()
    if controller is None:
        return _error("Capture pipeline not started", 503)

    discarded = controller.retake()
    return JSONResponse({
        "success": True,
        "discarded": discarded,
        **controller.status().model_dump(mode="json"),
    })


@app.get("/capture/artifact")
async def capture_artifact() -> Response:
    """Normalized image of the accepted capture."""
    controller = get_controller()
    artifact = controller.artifact if controller else None

    if artifact is None:
        return _error("No accepted capture", 404)

    return Response(content=artifact.data, media_type=artifact.media_type)


@app.post("/capture/upload")
async def capture_upload() -> JSONResponse:
    """Store the accepted artifact; it stays held if the store fails."""
    controller = get_controller()
    store = get_upload_store()
    if controller is None or store is None:
        return _error("Capture pipeline not started", 503)

    try:
        stored = await controller.upload(store)
    except NoArtifactError as e:
        return _error(str(e), 409)
    except UploadValidationError as e:
        return _error(str(e), 400)
    except OSError as e:
        return _server_error("capture upload", e)

    return JSONResponse({"success": True, **stored.model_dump()}, status_code=201)


# -----------------------------------------------------------------------------
# Collaborator API
# -----------------------------------------------------------------------------

@app.post("/api/upload")
async def api_upload(image: Optional[UploadFile] = File(None)) -> JSONResponse:
    """Multipart image upload."""
    store = get_upload_store()
    if store is None:
        return _error("Upload store not initialized", 503)

    try:
        data = await image.read() if image is not None else b""
        content_type = image.content_type if image is not None else None
        stored = await asyncio.to_thread(store.save, data, content_type)
    except UploadValidationError as e:
        return _error(str(e), 400)
    except OSError as e:
        return _server_error("upload", e)

    return JSONResponse({"success": True, **stored.model_dump()}, status_code=201)


@app.get("/api/gallery")
async def api_gallery() -> JSONResponse:
    gallery = get_gallery()
    if gallery is None:
        return _error("Gallery not initialized", 503)

    try:
        images = await asyncio.to_thread(gallery.list)
    except OSError as e:
        return _server_error("gallery", e)

    return JSONResponse({
        "success": True,
        "images": [image.model_dump(mode="json") for image in images],
        "total": len(images),
    })


@app.get("/api/leads")
async def api_list_leads() -> JSONResponse:
    lead_store = get_lead_store()
    if lead_store is None:
        return _error("Lead store not initialized", 503)

    try:
        leads = await asyncio.to_thread(lead_store.list)
    except Exception as e:
        return _server_error("leads GET", e)

    return JSONResponse({
        "success": True,
        "leads": [lead.model_dump(mode="json") for lead in leads],
    })


@app.post("/api/leads")
async def api_create_lead(request: Request) -> JSONResponse:
    lead_store = get_lead_store()
    if lead_store is None:
        return _error("Lead store not initialized", 503)

    try:
        body = await request.json()
    except ValueError:
        return _error("Request body must be JSON", 400)
    if not isinstance(body, dict):
        return _error("Request body must be a JSON object", 400)

    try:
        lead = await asyncio.to_thread(lead_store.create, body)
    except LeadValidationError as e:
        return _error(str(e), 400)
    except Exception as e:
        return _server_error("leads POST", e)

    return JSONResponse(
        {"success": True, "lead": lead.model_dump(mode="json")},
        status_code=201,
    )


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/status")
async def status_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for live capture status."""
    await websocket.accept()
    logger.info("Client connected to /ws/status")

    try:
        while not _shutdown_flag:
            controller = get_controller()
            if controller:
                await websocket.send_json(controller.status().model_dump(mode="json"))
            # Incoming messages are ignored; receiving surfaces disconnects
            try:
                await asyncio.wait_for(websocket.receive_text(), timeout=1.0)
            except asyncio.TimeoutError:
                pass

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/status")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "capturecam.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
