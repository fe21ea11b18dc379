"""FastAPI routes accepting screenshots for processing."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.screenshot_controller import submit_screenshot, submit_screenshot_file

router = APIRouter(prefix="/api")


class UploadPayload(BaseModel):
	image: str = ""


@router.post("/upload")
async def upload_screenshot(request: Request, payload: UploadPayload):
	"""Start processing a base64 screenshot and return its correlation id."""
	try:
		return await submit_screenshot(request, payload.image)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/upload/file")
async def upload_screenshot_file(request: Request, file: UploadFile = File(...)):
	"""Start processing an uploaded image file and return its correlation id."""
	try:
		return await submit_screenshot_file(request, file)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
