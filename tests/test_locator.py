"""
Tests for WeChat data location

Tests cover:
- Resolving relative paths inside a user folder
- Finding user folders in a Documents directory
- Resolving files inside an iTunes-style backup
"""

import hashlib
import sqlite3
from pathlib import Path

import pytest

from wechat_reader.core import locator
from wechat_reader.core.db_handler import WeChatReader
from wechat_reader.core.locator import (
    APP_DOMAIN,
    BackupLocator,
    DirectoryLocator,
    get_backup_user_folders,
    get_user_folders,
    validate_documents_dir,
)

from conftest import create_mm_db, md5


class TestDirectoryLocator:
    def test_locate_joins_relative_path(self, temp_dir: Path):
        loc = DirectoryLocator(str(temp_dir))
        assert loc.locate(locator.LEGACY_STORE) == temp_dir / "DB" / "MM.sqlite"
        assert loc.locate(locator.SETTINGS_ARCHIVE) == temp_dir / "mmsetting.archive"

    def test_missing_file_does_not_raise(self, temp_dir: Path):
        path = DirectoryLocator(str(temp_dir)).locate(locator.CONTACT_STORE)
        assert not path.exists()


class TestUserFolders:
    def test_finds_user_folders(self, user_dir: Path, documents_dir: Path):
        assert get_user_folders(str(documents_dir)) == [str(user_dir)]

    def test_ignores_non_hash_and_empty_folders(self, documents_dir: Path):
        (documents_dir / "MMappedKV").mkdir()
        create_mm_db(documents_dir / "not_a_hash" / "DB" / "MM.sqlite")
        empty = documents_dir / md5("empty") / "DB"
        empty.mkdir(parents=True)
        (empty / "MM.sqlite").touch()

        assert get_user_folders(str(documents_dir)) == []
        assert validate_documents_dir(str(documents_dir)) is False

    def test_user_folder_itself(self, user_dir: Path):
        assert get_user_folders(str(user_dir)) == [str(user_dir)]
        assert validate_documents_dir(str(user_dir)) is True

    def test_sorted(self, documents_dir: Path):
        names = sorted([md5("b"), md5("a")])
        for name in names:
            create_mm_db(documents_dir / name / "DB" / "MM.sqlite")
        found = [Path(p).name for p in get_user_folders(str(documents_dir))]
        assert found == names

    def test_nonexistent_path(self):
        assert get_user_folders("/nonexistent/path") == []
        assert validate_documents_dir("/nonexistent/path") is False


def _make_backup(backup_dir: Path, user_folder: str, source_dir: Path) -> None:
    """把 source_dir 下的文件按 iTunes 备份格式写入 backup_dir"""
    backup_dir.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(backup_dir / "Manifest.db"))
    conn.execute(
        "CREATE TABLE Files (fileID TEXT PRIMARY KEY, domain TEXT, relativePath TEXT, flags INTEGER, file BLOB)"
    )
    for f in source_dir.rglob("*"):
        if not f.is_file():
            continue
        relative = f"Documents/{user_folder}/{f.relative_to(source_dir).as_posix()}"
        fid = hashlib.sha1(f"{APP_DOMAIN}-{relative}".encode()).hexdigest()
        target = backup_dir / fid[:2] / fid
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(f.read_bytes())
        conn.execute(
            "INSERT INTO Files VALUES (?, ?, ?, 1, NULL)", (fid, APP_DOMAIN, relative)
        )
    conn.commit()
    conn.close()


class TestBackupLocator:
    def test_reader_over_backup(self, user_dir: Path, temp_dir: Path):
        backup = temp_dir / "backup"
        _make_backup(backup, user_dir.name, user_dir)

        assert get_backup_user_folders(str(backup)) == [user_dir.name]

        with WeChatReader(BackupLocator(str(backup), user_dir.name)) as r:
            assert r.has_contact_store is True
            assert r.get_user().username == "wxid_me"
            assert md5("alice") in r.list_sessions()

    def test_file_id(self):
        expected = hashlib.sha1(
            b"AppDomain-com.tencent.xin-Documents/abc/DB/MM.sqlite"
        ).hexdigest()
        assert BackupLocator.file_id("Documents/abc/DB/MM.sqlite") == expected

    def test_unknown_file_resolves_to_missing_path(self, temp_dir: Path):
        loc = BackupLocator(str(temp_dir), "0" * 32)
        assert not loc.locate(locator.CONTACT_STORE).exists()

    def test_no_manifest(self, temp_dir: Path):
        assert get_backup_user_folders(str(temp_dir)) == []
