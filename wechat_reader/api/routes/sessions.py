"""
Chat session routes for the WeChat Reader API.

Provides endpoints for:
- List conversations that have a Chat_<md5> table
- Read all records of one conversation
"""

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from typing import Optional, List

from wechat_reader.core.db_handler import WeChatReader, sort_records
from wechat_reader.core.errors import SessionNotFoundError
from wechat_reader.api.routes.dependencies import get_reader


router = APIRouter()


class SessionListResponse(BaseModel):
    """Response model for session list"""

    sessions: List[str]
    count: int


class RecordResponse(BaseModel):
    """Response model for a chat record"""

    local_id: int
    server_id: int
    create_time: int
    message: Optional[str] = None
    status: int
    img_status: int
    msg_type: int
    is_sender: bool


class RecordListResponse(BaseModel):
    """Response model for a conversation"""

    session: str
    records: List[RecordResponse]
    count: int


@router.get("/", response_model=SessionListResponse)
async def list_sessions(reader: WeChatReader = Depends(get_reader)):
    """List md5 hashes of contacts with chat history"""
    sessions = sorted(reader.list_sessions())
    return {"sessions": sessions, "count": len(sessions)}


@router.get("/{session_hash}/records", response_model=RecordListResponse)
async def read_records(
    session_hash: str,
    sort: bool = False,
    reader: WeChatReader = Depends(get_reader),
):
    """Get records of one conversation, in storage order unless sort=true"""
    try:
        records = reader.read_records(session_hash)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if sort:
        records = sort_records(records)
    return {
        "session": session_hash,
        "records": [
            {
                "local_id": r.local_id,
                "server_id": r.server_id,
                "create_time": r.create_time,
                "message": r.message,
                "status": r.status,
                "img_status": r.img_status,
                "msg_type": r.msg_type,
                "is_sender": r.is_sender,
            }
            for r in records
        ],
        "count": len(records),
    }
