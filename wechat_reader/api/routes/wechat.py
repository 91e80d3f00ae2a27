"""
WeChat directory and account routes.

Provides endpoints for:
- Manually set the WeChat Documents directory
- Get the configured directory
- List and select user accounts
"""

from pathlib import Path

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional, List

from wechat_reader.core.config import (
    available_users,
    load_config,
    select_documents_dir,
    set_active_user,
)
from wechat_reader.core import locator


router = APIRouter()


class SetDirRequest(BaseModel):
    """Request model for setting WeChat directory"""

    path: str


class WeChatDirResponse(BaseModel):
    """Response model for WeChat directory operations"""

    success: bool
    path: Optional[str] = None
    message: str
    user_folders: Optional[List[str]] = None


class AccountInfo(BaseModel):
    user: str
    path: str
    has_contact_store: bool = False
    is_active: bool = False


class AccountListResponse(BaseModel):
    accounts: List[AccountInfo]
    active_account: Optional[str] = None


class SetActiveAccountRequest(BaseModel):
    user: str


class MessageResponse(BaseModel):
    success: bool
    message: str


@router.post("/set-dir", response_model=WeChatDirResponse)
async def set_wechat_directory(req: SetDirRequest):
    """Manually set WeChat Documents directory"""
    if not req.path:
        raise HTTPException(status_code=400, detail="Path is required")

    try:
        cfg = select_documents_dir(req.path)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="Invalid WeChat directory. It must contain <md5> folders with DB/MM.sqlite.",
        )

    return {
        "success": True,
        "path": cfg.documents_dir,
        "message": "WeChat directory set successfully",
        "user_folders": locator.get_user_folders(cfg.documents_dir),
    }


@router.get("/current-dir", response_model=WeChatDirResponse)
async def get_current_wechat_dir():
    """Get currently configured WeChat directory"""
    cfg = load_config()

    if cfg.documents_dir:
        return {
            "success": True,
            "path": cfg.documents_dir,
            "message": "Current WeChat directory",
            "user_folders": locator.get_user_folders(cfg.documents_dir),
        }
    return {
        "success": False,
        "path": None,
        "message": "WeChat directory not set",
        "user_folders": None,
    }


@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts():
    cfg = load_config()
    if not cfg.documents_dir:
        return {"accounts": [], "active_account": cfg.active_user}

    accounts: List[dict] = []
    for folder_path in locator.get_user_folders(cfg.documents_dir):
        user = Path(folder_path).name
        contact_store = locator.DirectoryLocator(folder_path).locate(
            locator.CONTACT_STORE
        )
        accounts.append(
            {
                "user": user,
                "path": folder_path,
                "has_contact_store": contact_store.is_file(),
                "is_active": user == cfg.active_user,
            }
        )

    return {"accounts": accounts, "active_account": cfg.active_user}


@router.post("/accounts/active", response_model=MessageResponse)
async def set_active_account(req: SetActiveAccountRequest):
    cfg = load_config()
    if not cfg.documents_dir:
        raise HTTPException(status_code=400, detail="WeChat directory not set")

    if req.user not in available_users(cfg.documents_dir):
        raise HTTPException(status_code=400, detail=f"Account not found: {req.user}")

    set_active_user(req.user)
    return {"success": True, "message": f"Active account set to {req.user}"}
