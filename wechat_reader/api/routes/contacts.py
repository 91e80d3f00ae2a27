"""
Contacts routes for the WeChat Reader API.

Provides endpoints for:
- Current user identity
- List contacts from MM.sqlite and WCDB_Contact.sqlite
- Look up one contact by username, alias or their md5
"""

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from typing import Optional, List

from wechat_reader.core.db_handler import WeChatReader
from wechat_reader.core.errors import MalformedDataError, NotFoundError
from wechat_reader.api.routes.dependencies import get_reader
from wechat_reader.models.chat import Person


router = APIRouter()


class PersonResponse(BaseModel):
    """Response model for a contact or the current user"""

    username: str
    alias: Optional[str] = None
    nickname: Optional[str] = None
    remark: Optional[str] = None
    portrait: Optional[str] = None
    portrait_hd: Optional[str] = None
    chatroom_members: List[str] = []
    chatroom: Optional[str] = None
    display_name: str


class ContactListResponse(BaseModel):
    """Response model for contact list"""

    contacts: List[PersonResponse]
    count: int


def to_response(p: Person) -> dict:
    return {
        "username": p.username,
        "alias": p.alias,
        "nickname": p.nickname,
        "remark": p.remark,
        "portrait": p.portrait,
        "portrait_hd": p.portrait_hd,
        "chatroom_members": p.member_list(),
        "chatroom": p.chatroom,
        "display_name": p.display_name,
    }


@router.get("/", response_model=ContactListResponse)
async def list_contacts(reader: WeChatReader = Depends(get_reader)):
    """Get contacts from both contact stores"""
    contacts = reader.list_contacts()
    return {
        "contacts": [to_response(c) for c in contacts],
        "count": len(contacts),
    }


@router.get("/lookup/{key}", response_model=PersonResponse)
async def lookup_contact(key: str, reader: WeChatReader = Depends(get_reader)):
    """Resolve a username, alias, or md5 of either to a contact"""
    person = reader.build_index().get(key)
    if person is None:
        raise HTTPException(status_code=404, detail=f"Contact {key} not found")
    return to_response(person)


user_router = APIRouter()


@user_router.get("", response_model=PersonResponse)
async def get_user(reader: WeChatReader = Depends(get_reader)):
    """Get the current user from mmsetting.archive"""
    try:
        return to_response(reader.get_user())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MalformedDataError as e:
        raise HTTPException(status_code=422, detail=f"Failed to read user: {str(e)}")
