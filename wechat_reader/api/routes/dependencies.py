"""
Shared dependencies for API routes.

Provides FastAPI dependency injection for:
- WeChatReader (opened per request, closed afterwards)
- Export directory
"""

from pathlib import Path
from typing import AsyncIterator

from fastapi import HTTPException

from wechat_reader.core.config import load_config
from wechat_reader.core.db_handler import WeChatReader
from wechat_reader.core.errors import StoreNotFoundError


# Default path for exports
DEFAULT_EXPORT_PATH = Path.home() / ".wechat_reader" / "exports"


async def get_reader() -> AsyncIterator[WeChatReader]:
    """Yield a WeChatReader for the configured account.

    Requires:
    - Documents directory to be set
    - An active user folder when more than one exists

    Raises:
        HTTPException: If the directory or account is not usable
    """
    cfg = load_config()
    if not cfg.documents_dir:
        raise HTTPException(
            status_code=400,
            detail="WeChat directory not set. Please use /api/wechat/set-dir first.",
        )

    try:
        reader = WeChatReader.from_documents_dir(cfg.documents_dir, cfg.active_user)
    except StoreNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        yield reader
    finally:
        reader.close()


def get_export_path() -> str:
    """Get export directory path."""
    DEFAULT_EXPORT_PATH.mkdir(parents=True, exist_ok=True)
    return str(DEFAULT_EXPORT_PATH)
