"""
Export routes for the WeChat Reader API.

Provides endpoints for:
- Export one conversation to a TXT file
- Download the exported file
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import FileResponse
from pydantic import BaseModel
from pathlib import Path

from wechat_reader.core.db_handler import WeChatReader
from wechat_reader.core.errors import SessionNotFoundError
from wechat_reader.core.export import ExportService
from wechat_reader.api.routes.dependencies import get_reader, get_export_path


router = APIRouter()


class ExportResponse(BaseModel):
    """Response model for export"""

    success: bool
    file_path: str
    message: str


async def get_export_service(
    reader: WeChatReader = Depends(get_reader),
) -> ExportService:
    """Get ExportService instance"""
    return ExportService(reader, get_export_path())


def _export(export_service: ExportService, session_hash: str, format: str) -> str:
    if format != "txt":
        raise HTTPException(
            status_code=400, detail="Currently only TXT format is supported"
        )
    try:
        return export_service.export_to_txt(session_hash)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{session_hash}", response_model=ExportResponse)
async def export_chat(
    session_hash: str,
    format: str = "txt",
    export_service: ExportService = Depends(get_export_service),
):
    """Export chat to file"""
    file_path = _export(export_service, session_hash, format)
    return {
        "success": True,
        "file_path": file_path,
        "message": f"Chat exported successfully to {file_path}",
    }


@router.get("/{session_hash}/download")
async def download_export(
    session_hash: str,
    format: str = "txt",
    export_service: ExportService = Depends(get_export_service),
):
    """Export chat and download the file"""
    file_path = _export(export_service, session_hash, format)
    return FileResponse(
        path=file_path,
        filename=Path(file_path).name,
        media_type="text/plain; charset=utf-8",
    )
