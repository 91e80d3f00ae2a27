"""WeChat data location.

This module resolves logical paths (``DB/MM.sqlite``, ``mmsetting.archive``)
to files on disk.

Supported layouts:
- Extracted app container: Documents/<md5(username)>/DB/MM.sqlite
- iTunes-style backup: <backup>/Manifest.db + <backup>/<xx>/<sha1 file id>
"""

import hashlib
import logging
import re
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)

LEGACY_STORE = "DB/MM.sqlite"
CONTACT_STORE = "DB/WCDB_Contact.sqlite"
SETTINGS_ARCHIVE = "mmsetting.archive"

APP_DOMAIN = "AppDomain-com.tencent.xin"

_USER_FOLDER_RE = re.compile(r"[0-9a-f]{32}")


class Locator(Protocol):
    def locate(self, relative_path: str) -> Path:
        ...


def _is_nonempty_file(p: Path) -> bool:
    try:
        return p.is_file() and p.stat().st_size > 0
    except OSError:
        return False


class DirectoryLocator:
    """Resolve paths inside one user folder (Documents/<md5>/)."""

    def __init__(self, root: str):
        self.root = Path(root)

    def locate(self, relative_path: str) -> Path:
        return self.root.joinpath(*relative_path.split("/"))

    def __repr__(self) -> str:
        return f"DirectoryLocator({str(self.root)!r})"


class BackupLocator:
    """Resolve paths inside an iTunes-style backup.

    Files are stored under ``<id[:2]>/<id>`` where ``id`` is the SHA-1 of
    ``"<domain>-<relative path>"``; ``Manifest.db`` lists which exist.
    """

    def __init__(self, backup_dir: str, user_folder: str):
        self.backup_dir = Path(backup_dir)
        self.user_folder = user_folder
        self._known: Optional[set] = None

    @staticmethod
    def file_id(domain_path: str) -> str:
        return hashlib.sha1(f"{APP_DOMAIN}-{domain_path}".encode("utf-8")).hexdigest()

    def _manifest_ids(self) -> set:
        if self._known is None:
            manifest = self.backup_dir / "Manifest.db"
            self._known = set()
            if manifest.exists():
                uri = f"file:{manifest}?mode=ro"
                with closing(sqlite3.connect(uri, uri=True)) as conn:
                    rows = conn.execute(
                        "SELECT fileID FROM Files WHERE domain = ?", (APP_DOMAIN,)
                    ).fetchall()
                self._known = {str(r[0]) for r in rows}
            else:
                logger.warning("Backup has no Manifest.db: %s", self.backup_dir)
        return self._known

    def locate(self, relative_path: str) -> Path:
        fid = self.file_id(f"Documents/{self.user_folder}/{relative_path}")
        path = self.backup_dir / fid[:2] / fid
        if fid not in self._manifest_ids():
            logger.debug("%s not listed in manifest (%s)", relative_path, fid)
        return path

    def __repr__(self) -> str:
        return f"BackupLocator({str(self.backup_dir)!r}, {self.user_folder!r})"


def is_user_folder_name(name: str) -> bool:
    return bool(_USER_FOLDER_RE.fullmatch(name))


def is_user_folder(path: Path) -> bool:
    """Documents/<md5>/ with a non-empty DB/MM.sqlite"""
    return is_user_folder_name(path.name) and _is_nonempty_file(path / LEGACY_STORE)


def validate_documents_dir(path: str) -> bool:
    """
    Validate if a path is a WeChat Documents directory.

    Accepts either the Documents directory itself (containing one or more
    user folders) or a single user folder.
    """
    p = Path(path)
    if not p.is_dir():
        return False
    if is_user_folder(p):
        return True
    return bool(get_user_folders(path))


def get_user_folders(documents_dir: str) -> List[str]:
    """
    Get list of all user folders in a Documents directory.

    Returns:
        List[str]: Full paths to user folders, sorted alphabetically
    """
    p = Path(documents_dir)
    if not p.is_dir():
        return []
    if is_user_folder(p):
        return [str(p)]

    folders = [str(f) for f in p.iterdir() if f.is_dir() and is_user_folder(f)]
    folders.sort()
    return folders


def get_backup_user_folders(backup_dir: str) -> List[str]:
    """
    List user folder names recorded in a backup's Manifest.db.

    Returns:
        List[str]: Folder names (md5 of the username), sorted alphabetically
    """
    manifest = Path(backup_dir) / "Manifest.db"
    if not manifest.exists():
        return []

    uri = f"file:{manifest}?mode=ro"
    with closing(sqlite3.connect(uri, uri=True)) as conn:
        rows = conn.execute(
            "SELECT relativePath FROM Files WHERE domain = ? AND relativePath LIKE ?",
            (APP_DOMAIN, "Documents/%/DB/MM.sqlite"),
        ).fetchall()

    folders = set()
    for (relative_path,) in rows:
        parts = str(relative_path).split("/")
        if len(parts) == 4 and is_user_folder_name(parts[1]):
            folders.add(parts[1])
    return sorted(folders)
