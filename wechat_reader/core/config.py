"""Configuration persistence for WeChat Reader.

Remembers which iOS WeChat data the API reads, across restarts:
- documents_dir: the app's Documents directory, holding one ``<md5>`` folder per
  account that has logged in on the device.
- active_user: the selected ``<md5>`` folder name. Only needed when several
  accounts exist; cleared whenever it no longer names a folder in documents_dir.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from wechat_reader.core import locator


_LOCK = threading.Lock()

logger = logging.getLogger(__name__)


def _config_file_path() -> Path:
    """Resolve config file path.

    Test harnesses can override via:
    - WECHAT_READER_CONFIG_FILE: full path to config.json
    - WECHAT_READER_CONFIG_DIR: directory containing config.json
    """

    file_env = os.environ.get("WECHAT_READER_CONFIG_FILE")
    if file_env:
        return Path(file_env)

    dir_env = os.environ.get("WECHAT_READER_CONFIG_DIR")
    if dir_env:
        return Path(dir_env) / "config.json"

    return Path.home() / ".wechat_reader" / "config.json"


@dataclass
class AppConfig:
    documents_dir: Optional[str] = None
    active_user: Optional[str] = None

    def user_folder(self) -> Optional[str]:
        """Path of the selected account folder, if both parts are set."""
        if not self.documents_dir or not self.active_user:
            return None
        return str(Path(self.documents_dir) / self.active_user)


def _read_user(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str) and locator.is_user_folder_name(value):
        return value
    logger.warning("Ignoring invalid active_user in config: %r", value)
    return None


def load_config() -> AppConfig:
    with _LOCK:
        cfg_file = _config_file_path()
        if not cfg_file.exists():
            return AppConfig()
        try:
            data = json.loads(cfg_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable config %s: %s", cfg_file, e)
            return AppConfig()
        if not isinstance(data, dict):
            return AppConfig()

        documents_dir = data.get("documents_dir")
        return AppConfig(
            documents_dir=documents_dir if isinstance(documents_dir, str) else None,
            active_user=_read_user(data.get("active_user")),
        )


def save_config(cfg: AppConfig) -> None:
    with _LOCK:
        cfg_file = _config_file_path()
        cfg_file.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "documents_dir": cfg.documents_dir,
            "active_user": cfg.active_user,
        }
        cfg_file.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )


def set_active_user(user: Optional[str]) -> AppConfig:
    """Select an account folder by name, or clear the selection with None.

    Raises:
        ValueError: user is not an ``<md5>`` folder name
    """
    if user is not None and not locator.is_user_folder_name(user):
        raise ValueError(f"Not a user folder name: {user!r}")
    cfg = load_config()
    cfg.active_user = user
    save_config(cfg)
    return cfg


def select_documents_dir(path: str) -> AppConfig:
    """Point the config at a Documents directory or a single user folder.

    A user folder is stored as its parent plus that folder as the active
    account. Otherwise a lone account is selected automatically, and a
    previous selection is kept only while it still exists.

    Raises:
        ValueError: path holds no WeChat user folder
    """
    p = Path(path)
    if not locator.validate_documents_dir(str(p)):
        raise ValueError(f"No WeChat user folders in {path}")

    requested: Optional[str] = None
    if locator.is_user_folder(p):
        requested = p.name
        p = p.parent

    names = available_users(str(p))
    cfg = load_config()
    cfg.documents_dir = str(p)
    if requested:
        cfg.active_user = requested
    elif len(names) == 1:
        cfg.active_user = names[0]
    elif cfg.active_user not in names:
        cfg.active_user = None

    save_config(cfg)
    logger.info("Documents directory set to %s (user: %s)", p, cfg.active_user)
    return cfg


def available_users(documents_dir: str) -> List[str]:
    return [Path(f).name for f in locator.get_user_folders(documents_dir)]
