"""
WeChat Reader - FastAPI Application

Main entry point for the WeChat Reader API.
Provides read-only REST endpoints over an extracted iOS WeChat data folder:
current user, contacts, chat sessions, records and TXT export.
"""

from fastapi import FastAPI

from wechat_reader.core.logging_config import setup_logging

setup_logging()

app = FastAPI(
    title="微信聊天记录读取",
    description="WeChat Reader - Read contacts and chat history from iOS WeChat databases",
    version="0.1.0",
)


@app.get("/")
async def root():
    return {"message": "WeChat Reader API", "docs": "/docs"}


@app.get("/api/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok"}


# Include routers
from wechat_reader.api.routes import wechat, contacts, sessions, export

app.include_router(wechat.router, prefix="/api/wechat", tags=["wechat"])
app.include_router(contacts.user_router, prefix="/api/user", tags=["user"])
app.include_router(contacts.router, prefix="/api/contacts", tags=["contacts"])
app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
app.include_router(export.router, prefix="/api/export", tags=["export"])
