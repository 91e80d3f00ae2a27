"""
WeChat Reader - read iOS WeChat data into plain Python objects.

- Current user from mmsetting.archive
- Contacts from MM.sqlite and WCDB_Contact.sqlite
- Chat sessions and records from Chat_<md5> tables
"""

__version__ = "0.1.0"

from wechat_reader.core.db_handler import WeChatReader
from wechat_reader.core.contacts import build_index, content_hash
from wechat_reader.core.locator import BackupLocator, DirectoryLocator
from wechat_reader.models.chat import Person, Record

__all__ = [
    "WeChatReader",
    "build_index",
    "content_hash",
    "BackupLocator",
    "DirectoryLocator",
    "Person",
    "Record",
]
