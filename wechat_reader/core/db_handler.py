"""
微信数据库读取模块

从 iOS 版微信的数据目录读取当前用户、联系人和聊天记录：
- DB/MM.sqlite: 旧版联系人表 (Friend/Friend_Ext) 和 Chat_<md5> 聊天表
- DB/WCDB_Contact.sqlite: 新版联系人表（可选）
- mmsetting.archive: 当前用户设置 (NSKeyedArchiver)
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from wechat_reader.core import keyed_archive, locator as locator_mod
from wechat_reader.core.contacts import (
    LEGACY_CONTACTS_SQL,
    MODERN_CONTACTS_SQL,
    LegacyContactRow,
    ModernContactRow,
    as_text,
    build_index,
)
from wechat_reader.core.errors import (
    ArchiveFormatError,
    SessionNotFoundError,
    StoreNotFoundError,
)
from wechat_reader.core.locator import DirectoryLocator, Locator
from wechat_reader.core.sessions import match_session_tables, session_table_name
from wechat_reader.models.chat import Person, Record

logger = logging.getLogger(__name__)

RECORDS_SQL = (
    "SELECT MesLocalID, MesSvrID, CreateTime, Message, Status, ImgStatus, Type, Des "
    "FROM {table}"
)


def _as_int(v: Any) -> int:
    if v is None or isinstance(v, bool):
        return int(v or 0)
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    if isinstance(v, (str, bytes)):
        try:
            return int(v)
        except ValueError:
            return 0
    return 0


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def sort_records(records: List[Record]) -> List[Record]:
    """按时间排序，同一秒内按 MesLocalID"""
    return sorted(records, key=lambda r: (r.create_time, r.local_id))


class WeChatReader:
    """微信数据读取器

    构造时打开 MM.sqlite（必需）和 WCDB_Contact.sqlite（存在时），
    close() 或退出 with 块时一并关闭。
    """

    def __init__(self, locator: Locator):
        """初始化读取器

        Args:
            locator: 把相对路径解析为磁盘路径的定位器

        Raises:
            StoreNotFoundError: MM.sqlite 不存在
            sqlite3.Error: 数据库无法打开
        """
        self.locator = locator
        self._mm_conn: Optional[sqlite3.Connection] = None
        self._wcdb_conn: Optional[sqlite3.Connection] = None

        mm_path = locator.locate(locator_mod.LEGACY_STORE)
        if not mm_path.is_file():
            raise StoreNotFoundError(f"Legacy store not found: {mm_path}")
        self._mm_conn = self.connect(mm_path)

        wcdb_path = locator.locate(locator_mod.CONTACT_STORE)
        if wcdb_path.is_file():
            try:
                self._wcdb_conn = self.connect(wcdb_path)
            except sqlite3.Error:
                self.close()
                raise
        else:
            logger.info("No contact store at %s, using MM.sqlite only", wcdb_path)

    @classmethod
    def from_documents_dir(
        cls, documents_dir: str, user: Optional[str] = None
    ) -> "WeChatReader":
        """从 Documents 目录选择用户目录并打开

        Args:
            documents_dir: Documents 目录，或直接是某个用户目录
            user: 用户目录名（md5）。存在多个用户目录时必须指定

        Raises:
            StoreNotFoundError: 找不到用户目录，或无法确定使用哪一个
        """
        folders = locator_mod.get_user_folders(documents_dir)
        if not folders:
            raise StoreNotFoundError(f"No WeChat user folders in {documents_dir}")

        if user:
            selected = next((f for f in folders if Path(f).name == user), None)
            if not selected:
                names = [Path(f).name for f in folders]
                raise StoreNotFoundError(
                    f"User folder '{user}' not found. Available: {names}"
                )
        elif len(folders) == 1:
            selected = folders[0]
        else:
            names = [Path(f).name for f in folders]
            raise StoreNotFoundError(
                f"Multiple user folders found: {names}. Please select one."
            )

        return cls(DirectoryLocator(selected))

    @staticmethod
    def connect(db_path: Path) -> sqlite3.Connection:
        """以只读方式连接数据库"""
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
        # TEXT 列按字节读取，由 as_text 解码；非法 UTF-8 视为空值
        conn.text_factory = bytes
        logger.info("Connected to database: %s", db_path)
        return conn

    def close(self) -> None:
        for attr in ("_wcdb_conn", "_mm_conn"):
            conn = getattr(self, attr)
            if conn is not None:
                conn.close()
                setattr(self, attr, None)
                logger.info("Database connection closed (%s)", attr.strip("_"))

    def __enter__(self) -> "WeChatReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def has_contact_store(self) -> bool:
        return self._wcdb_conn is not None

    @property
    def mm_connection(self) -> sqlite3.Connection:
        if self._mm_conn is None:
            raise RuntimeError("Reader is closed")
        return self._mm_conn

    def get_user(self) -> Person:
        """读取当前用户信息

        归档中缺少的字段保持为空，但 UsrName 例外：没有 UsrName 的归档
        无法代表任何用户，这里按格式错误处理，而不是返回 username 为空的 Person。

        Raises:
            ArchiveNotFoundError: mmsetting.archive 不存在
            ArchiveFormatError: 归档无法解析或缺少 UsrName
        """
        archive_path = self.locator.locate(locator_mod.SETTINGS_ARCHIVE)
        settings = keyed_archive.deep_parse(keyed_archive.load_archive(archive_path))

        username = keyed_archive.try_get(settings, "UsrName")
        if not username:
            raise ArchiveFormatError(f"No UsrName in {archive_path}")

        setting = keyed_archive.try_get_mapping(settings, "new_dicsetting")
        return Person(
            username=username,
            alias=keyed_archive.try_get(settings, "AliasName"),
            nickname=keyed_archive.try_get(settings, "NickName"),
            portrait=keyed_archive.try_get(setting, "headimgurl"),
            portrait_hd=keyed_archive.try_get(setting, "headhdimgurl"),
        )

    def get_mm_contacts(self) -> List[Person]:
        """读取 MM.sqlite 中的联系人"""
        rows = self.mm_connection.execute(LEGACY_CONTACTS_SQL).fetchall()
        return self._to_persons(LegacyContactRow.from_row(r) for r in rows)

    def get_wcdb_contacts(self) -> List[Person]:
        """读取 WCDB_Contact.sqlite 中的联系人，文件不存在时返回空列表"""
        if self._wcdb_conn is None:
            return []
        rows = self._wcdb_conn.execute(MODERN_CONTACTS_SQL).fetchall()
        return self._to_persons(ModernContactRow.from_row(r) for r in rows)

    @staticmethod
    def _to_persons(rows) -> List[Person]:
        persons = []
        for row in rows:
            if not row.username:
                logger.warning("Skipping %s without username", type(row).__name__)
                continue
            persons.append(row.to_person())
        return persons

    def list_contacts(self) -> List[Person]:
        """读取全部联系人：先 MM.sqlite，后 WCDB_Contact.sqlite，不去重"""
        contacts = self.get_mm_contacts()
        contacts.extend(self.get_wcdb_contacts())
        return contacts

    def build_index(self) -> Dict[str, Person]:
        """联系人索引，键为 UsrName、MD5(UsrName)、Alias、MD5(Alias)"""
        return build_index(self.list_contacts())

    def get_table_names(self) -> List[str]:
        rows = self.mm_connection.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
        return [as_text(r[0]) for r in rows if r[0] is not None]

    def list_sessions(self) -> Set[str]:
        """有聊天记录的联系人的 MD5(UsrName) 集合"""
        return match_session_tables(self.get_table_names())

    def _session_exists(self, table: str) -> bool:
        row = self.mm_connection.execute(
            "SELECT 1 FROM sqlite_master WHERE type='table' AND name = ?", (table,)
        ).fetchone()
        return row is not None

    def read_records(self, session_hash: str) -> List[Record]:
        """读取某个会话的全部聊天记录（存储顺序）

        Raises:
            SessionNotFoundError: 不存在 Chat_<hash> 表
        """
        table = session_table_name(session_hash)
        if not self._session_exists(table):
            raise SessionNotFoundError(session_hash)

        sql = RECORDS_SQL.format(table=_quote_identifier(table))
        cursor = self.mm_connection.execute(sql)
        return [
            Record(
                local_id=_as_int(row[0]),
                server_id=_as_int(row[1]),
                create_time=_as_int(row[2]),
                message=as_text(row[3]),
                status=_as_int(row[4]),
                img_status=_as_int(row[5]),
                msg_type=_as_int(row[6]),
                des=_as_int(row[7]),
            )
            for row in cursor.fetchall()
        ]
