"""
共享的 pytest fixtures 和配置
"""

import hashlib
import os
import plistlib
import shutil
import sqlite3
import sys
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest


@pytest.fixture(scope="session", autouse=True)
def _isolate_app_config():
    """Isolate on-disk config from developer machine.

    Tests should not read/write user home config.json.
    """

    tmp_cfg_dir = Path(tempfile.mkdtemp())
    os.environ["WECHAT_READER_CONFIG_DIR"] = str(tmp_cfg_dir)
    try:
        yield
    finally:
        try:
            shutil.rmtree(tmp_cfg_dir, ignore_errors=True)
        finally:
            os.environ.pop("WECHAT_READER_CONFIG_DIR", None)


# 添加项目根目录到 Python 路径
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

SELF_USERNAME = "wxid_me"


def md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def encode_sections(fields: Dict[int, bytes]) -> bytes:
    """按 key + varint 长度 + payload 编码（仅 wire type 2）"""
    out = bytearray()
    for key, payload in fields.items():
        out.append(key)
        size = len(payload)
        while size >= 0x80:
            out.append((size & 0x7F) | 0x80)
            size >>= 7
        out.append(size)
        out.extend(payload)
    return bytes(out)


def create_mm_db(
    path: Path,
    friends: Iterable[tuple] = (),
    chats: Optional[Dict[str, Iterable[tuple]]] = None,
    extra_tables: Iterable[str] = (),
) -> None:
    """创建模拟的 MM.sqlite

    friends: (UsrName, NickName, ConRemark, ConChatRoomMem, ConStrRes2)
    chats: {hash: [(MesSvrID, CreateTime, Message, Status, ImgStatus, Type, Des)]}
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("""CREATE TABLE Friend (
        UsrName TEXT PRIMARY KEY,
        NickName TEXT,
        ConRemark TEXT,
        ConChatRoomMem TEXT,
        Type INTEGER
    )""")
    conn.execute("""CREATE TABLE Friend_Ext (
        UsrName TEXT PRIMARY KEY,
        ConStrRes2 TEXT
    )""")
    for usr, nick, remark, room_mem, res2 in friends:
        conn.execute(
            "INSERT INTO Friend VALUES (?, ?, ?, ?, 1)", (usr, nick, remark, room_mem)
        )
        conn.execute("INSERT INTO Friend_Ext VALUES (?, ?)", (usr, res2))

    for session_hash, rows in (chats or {}).items():
        table = f"Chat_{session_hash}"
        conn.execute(f"""CREATE TABLE "{table}" (
            TableVer INTEGER DEFAULT 1,
            MesLocalID INTEGER PRIMARY KEY AUTOINCREMENT,
            MesSvrID INTEGER DEFAULT 0,
            CreateTime INTEGER DEFAULT 0,
            Message TEXT,
            Status INTEGER DEFAULT 0,
            ImgStatus INTEGER DEFAULT 0,
            Type INTEGER,
            Des INTEGER
        )""")
        for row in rows:
            conn.execute(
                f'INSERT INTO "{table}" (MesSvrID, CreateTime, Message, Status, '
                "ImgStatus, Type, Des) VALUES (?, ?, ?, ?, ?, ?, ?)",
                row,
            )

    for table in extra_tables:
        conn.execute(f'CREATE TABLE "{table}" (id INTEGER)')
    conn.commit()
    conn.close()


def create_wcdb_db(path: Path, friends: Iterable[tuple] = ()) -> None:
    """创建模拟的 WCDB_Contact.sqlite

    friends: (userName, dbContactRemark, dbContactChatRoom, dbContactHeadImage)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("""CREATE TABLE Friend (
        userName TEXT PRIMARY KEY,
        type INTEGER DEFAULT 0,
        dbContactRemark BLOB,
        dbContactChatRoom BLOB,
        dbContactHeadImage BLOB
    )""")
    for usr, remark, chatroom, head in friends:
        conn.execute(
            "INSERT INTO Friend (userName, dbContactRemark, dbContactChatRoom, "
            "dbContactHeadImage) VALUES (?, ?, ?, ?)",
            (usr, remark, chatroom, head),
        )
    conn.commit()
    conn.close()


def write_settings_archive(
    path: Path, fields: Dict[str, str], setting: Optional[Dict[str, str]] = None
) -> None:
    """写入 NSKeyedArchiver 格式的 mmsetting.archive"""
    objects: list = ["$null"]

    def add(obj) -> plistlib.UID:
        objects.append(obj)
        return plistlib.UID(len(objects) - 1)

    root: dict = {}
    root_uid = add(root)
    for key, value in fields.items():
        root[key] = add(value)

    if setting is not None:
        d: dict = {"NS.keys": [], "NS.objects": []}
        root["new_dicsetting"] = add(d)
        for key, value in setting.items():
            d["NS.keys"].append(add(key))
            d["NS.objects"].append(add(value))
        d["$class"] = add(
            {
                "$classname": "NSMutableDictionary",
                "$classes": ["NSMutableDictionary", "NSDictionary", "NSObject"],
            }
        )

    root["$class"] = add({"$classname": "MMSettings", "$classes": ["MMSettings", "NSObject"]})

    archive = {
        "$version": 100000,
        "$archiver": "NSKeyedArchiver",
        "$top": {"root": root_uid},
        "$objects": objects,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        plistlib.dump(archive, f, fmt=plistlib.FMT_BINARY)


@pytest.fixture
def temp_dir():
    """创建临时目录，测试后自动清理"""
    tmp = tempfile.mkdtemp()
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def documents_dir(temp_dir: Path) -> Path:
    """模拟的 Documents 目录"""
    docs = temp_dir / "Documents"
    docs.mkdir(parents=True)
    return docs


@pytest.fixture
def user_dir(documents_dir: Path) -> Path:
    """带完整模拟数据的用户目录 Documents/<md5(wxid_me)>/"""
    folder = documents_dir / md5(SELF_USERNAME)

    create_mm_db(
        folder / "DB" / "MM.sqlite",
        friends=[
            (
                "alice",
                "Alice",
                "Al",
                None,
                "<RES2><Alias>al</Alias><HeadImgUrl>http://img/alice</HeadImgUrl></RES2>",
            ),
            ("bob", "Bob", None, None, None),
            ("123@chatroom", "测试群", None, "alice;bob;wxid_me", None),
        ],
        chats={
            md5("alice"): [
                (9001, 1704067200, "你好", 2, 0, 1, 1),
                (9002, 1704067260, "你好啊", 2, 0, 1, 0),
                (9003, 1704067200, "同一秒", 2, 0, 1, 1),
            ],
            md5("bob"): [],
        },
    )
    create_wcdb_db(
        folder / "DB" / "WCDB_Contact.sqlite",
        friends=[
            (
                "carol",
                encode_sections({0x0A: "Carol".encode(), 0x12: b"cc", 0x1A: "卡罗".encode()}),
                None,
                encode_sections({0x12: b"http://img/carol", 0x1A: b"http://img/carol_hd"}),
            ),
        ],
    )
    write_settings_archive(
        folder / "mmsetting.archive",
        {"UsrName": SELF_USERNAME, "AliasName": "me_alias", "NickName": "我自己"},
        {"headimgurl": "http://img/me", "headhdimgurl": "http://img/me_hd"},
    )
    return folder
