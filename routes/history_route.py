from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from controllers.history_controller import delete_record, get_record, list_history

router = APIRouter(prefix="/api/history")


@router.get("")
async def get_history(request: Request, limit: Optional[int] = None):
	"""Return recent screenshot records, newest first."""
	try:
		return await list_history(request, limit)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{record_id}")
async def get_history_record(request: Request, record_id: int):
	try:
		return await get_record(request, record_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{record_id}")
async def delete_history_record(request: Request, record_id: int):
	try:
		return await delete_record(request, record_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
