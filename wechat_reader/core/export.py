"""
Export chat records to files.

Supports exporting one conversation to TXT format with proper formatting and encoding.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from wechat_reader.core.db_handler import WeChatReader, sort_records
from wechat_reader.core.errors import NotFoundError, MalformedDataError
from wechat_reader.models.chat import Person, Record

logger = logging.getLogger(__name__)


def _format_time(ts: int) -> str:
    """格式化 CreateTime，超出范围时原样输出整数"""
    try:
        return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return str(ts)


class ExportService:
    """Export chat records to files"""

    def __init__(self, reader: WeChatReader, export_dir: str):
        self.reader = reader
        self.export_dir = Path(export_dir)
        self.export_dir.mkdir(parents=True, exist_ok=True)
        self._index: Optional[Dict[str, Person]] = None
        self._user: Optional[Person] = None

    def _peer(self, session_hash: str) -> Optional[Person]:
        if self._index is None:
            self._index = self.reader.build_index()
        return self._index.get(session_hash)

    def _self_name(self) -> str:
        if self._user is None:
            try:
                self._user = self.reader.get_user()
            except (NotFoundError, MalformedDataError) as e:
                logger.warning("Exporting without user identity: %s", e)
                return "我"
        return self._user.display_name

    def export_to_txt(self, session_hash: str, filename: Optional[str] = None) -> str:
        """
        Export one conversation to a TXT file.

        Args:
            session_hash: md5 of the peer's username
            filename: Optional custom filename

        Returns: Path to exported file

        Raises:
            SessionNotFoundError: No chat table for this hash
        """
        records = self.reader.read_records(session_hash)
        peer = self._peer(session_hash)
        peer_name = peer.display_name if peer else session_hash

        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"{self._safe_filename(peer_name)}_{timestamp}.txt"

        filepath = self.export_dir / filename

        with open(filepath, "w", encoding="utf-8") as f:
            self._write_txt_content(f, peer_name, records)

        logger.info("Exported %d records to %s", len(records), filepath)
        return str(filepath)

    def export_multiple(self, session_hashes: List[str]) -> List[str]:
        """Export multiple conversations, returns list of file paths"""
        return [self.export_to_txt(h) for h in session_hashes]

    def _write_txt_content(self, f, peer_name: str, records: List[Record]):
        """Write formatted TXT content"""
        f.write(f"聊天记录导出 - {peer_name}\n")
        f.write(f"导出时间: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write("=" * 50 + "\n\n")

        self_name = self._self_name() if records else ""
        for record in sort_records(records):
            time_str = _format_time(record.create_time)
            sender = self_name if record.is_sender else peer_name
            f.write(f"[{time_str}] {sender}: {record.message or ''}\n")

    def _safe_filename(self, name: str) -> str:
        """Convert name to safe filename"""
        invalid_chars = '<>:"/\\|?*'
        for char in invalid_chars:
            name = name.replace(char, "_")
        return name[:50]
