"""
app/api/files.py

Purpose: Serves stored objects by tokenized download URL
"""

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from app.core.logging import get_logger
from app.db.storage import get_storage

logger = get_logger(__name__)
router = APIRouter()


@router.get("/files/{path:path}")
async def download_file(path: str, token: str = Query(...)):
    """
    Streams an object. The token embedded in the download URL must match;
    otherwise the file is reported as not found.
    """
    stored = await get_storage().open_object(path, token)

    return StreamingResponse(
        stored["chunks"],
        media_type=stored["content_type"],
        headers={"Content-Length": str(stored["length"])},
    )
