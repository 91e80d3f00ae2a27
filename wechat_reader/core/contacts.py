"""
联系人解析与索引

MM.sqlite 的 Friend/Friend_Ext 表和 WCDB_Contact.sqlite 的 Friend 表结构不同，
这里把两种行分别建模，再投影到统一的 Person。
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from wechat_reader.core import blob
from wechat_reader.core.errors import BlobDecodeError
from wechat_reader.models.chat import Person

logger = logging.getLogger(__name__)

LEGACY_CONTACTS_SQL = (
    "SELECT Friend.UsrName, NickName, ConRemark, ConChatRoomMem, ConStrRes2 "
    "FROM Friend JOIN Friend_Ext ON Friend.UsrName = Friend_Ext.UsrName"
)
MODERN_CONTACTS_SQL = (
    "SELECT userName, dbContactRemark, dbContactChatRoom, dbContactHeadImage "
    "FROM Friend"
)

# dbContactRemark
TAG_NICKNAME = 0x0A
TAG_ALIAS = 0x12
TAG_REMARK = 0x1A
# dbContactChatRoom
TAG_CHATROOM = 0x32
# dbContactHeadImage
TAG_PORTRAIT = 0x12
TAG_PORTRAIT_HD = 0x1A

_RES2_FIELDS = {
    "Alias": "alias",
    "HeadImgUrl": "portrait",
    "HeadImgHDUrl": "portrait_hd",
}
_RES2_RE = {
    element: re.compile(rf"<{element}>(.*?)</{element}>", re.DOTALL)
    for element in _RES2_FIELDS
}


def content_hash(text: str) -> str:
    """MD5 hex digest, as used in Chat_<hash> table names."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def as_text(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, str):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        try:
            return bytes(v).decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


def as_blob(v: Any) -> Optional[bytes]:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v)
    return None


def parse_con_str_res2(text: Optional[str]) -> Dict[str, str]:
    """Pull alias and portrait URLs out of the ConStrRes2 column.

    The column holds a compact element-tagged string such as
    ``<RES2><Alias>al</Alias><HeadImgUrl>...</HeadImgUrl></RES2>``.
    Missing elements are simply absent from the result.
    """
    if not text or not isinstance(text, str):
        return {}

    fields: Dict[str, str] = {}
    for element, attr in _RES2_FIELDS.items():
        match = _RES2_RE[element].search(text)
        if match and match.group(1):
            fields[attr] = match.group(1)
    return fields


def _decode_sections(v: Any, column: str, username: str) -> Optional[blob.Sections]:
    try:
        return blob.decode(as_blob(v))
    except BlobDecodeError as e:
        logger.debug("Ignoring %s for %s: %s", column, username, e)
        return None


@dataclass(frozen=True)
class LegacyContactRow:
    """MM.sqlite Friend JOIN Friend_Ext"""

    username: str
    nickname: Optional[str] = None
    remark: Optional[str] = None
    chatroom_members: Optional[str] = None
    con_str_res2: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "LegacyContactRow":
        return cls(
            username=as_text(row[0]) or "",
            nickname=as_text(row[1]),
            remark=as_text(row[2]),
            chatroom_members=as_text(row[3]),
            con_str_res2=as_text(row[4]),
        )

    def to_person(self) -> Person:
        extra = parse_con_str_res2(self.con_str_res2)
        return Person(
            username=self.username,
            nickname=self.nickname,
            remark=self.remark,
            chatroom_members=self.chatroom_members,
            alias=extra.get("alias"),
            portrait=extra.get("portrait"),
            portrait_hd=extra.get("portrait_hd"),
        )


@dataclass(frozen=True)
class ModernContactRow:
    """WCDB_Contact.sqlite Friend, blob columns kept raw"""

    username: str
    remark_blob: Optional[bytes] = None
    chatroom_blob: Optional[bytes] = None
    head_image_blob: Optional[bytes] = None

    @classmethod
    def from_row(cls, row: tuple) -> "ModernContactRow":
        return cls(
            username=as_text(row[0]) or "",
            remark_blob=as_blob(row[1]),
            chatroom_blob=as_blob(row[2]),
            head_image_blob=as_blob(row[3]),
        )

    def to_person(self) -> Person:
        remark = _decode_sections(self.remark_blob, "dbContactRemark", self.username)
        chatroom = _decode_sections(
            self.chatroom_blob, "dbContactChatRoom", self.username
        )
        head = _decode_sections(
            self.head_image_blob, "dbContactHeadImage", self.username
        )
        return Person(
            username=self.username,
            nickname=blob.get_string(remark, TAG_NICKNAME),
            alias=blob.get_string(remark, TAG_ALIAS),
            remark=blob.get_string(remark, TAG_REMARK),
            chatroom=blob.get_string(chatroom, TAG_CHATROOM),
            portrait=blob.get_string(head, TAG_PORTRAIT),
            portrait_hd=blob.get_string(head, TAG_PORTRAIT_HD),
        )


def build_index(contacts: Iterable[Person]) -> Dict[str, Person]:
    """Map every identifier form of each contact to that contact.

    Keys per contact: username, md5(username), and if set alias, md5(alias).
    Contacts are processed in order; a later contact overwrites an earlier
    one on the same key.
    """
    index: Dict[str, Person] = {}
    for person in contacts:
        index[person.username] = person
        index[content_hash(person.username)] = person
        if person.alias:
            index[person.alias] = person
            index[content_hash(person.alias)] = person
    return index
