from typing import Any, Dict

from fastapi import HTTPException, Request, UploadFile

from services.realtime.pipeline_coordinator import PipelineCoordinator
from utils.media_validation import decode_image_payload


def _coordinator(request: Request) -> PipelineCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Processing pipeline unavailable")
    return coordinator


async def submit_screenshot(request: Request, image: str) -> Dict[str, Any]:
    """Queue a base64 screenshot (or data URL) for processing.

    Args:
        request: FastAPI Request (used to access the shared coordinator).
        image: Base64-encoded image, optionally prefixed with `data:<mime>;base64,`.

    Returns:
        A dict with the run's correlation id under `id`; progress arrives over `/ws`.

    Raises:
        HTTPException(400) if the image payload is missing or not base64.
    """
    try:
        raw = decode_image_payload(image)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    correlation_id = _coordinator(request).submit(raw)
    return {"id": correlation_id, "status": "processing"}


async def submit_screenshot_file(request: Request, file: UploadFile) -> Dict[str, Any]:
    """Queue an uploaded image file (raw bytes) for processing."""
    raw = await file.read()
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded image file is empty.")
    correlation_id = _coordinator(request).submit(raw)
    return {"id": correlation_id, "status": "processing"}
