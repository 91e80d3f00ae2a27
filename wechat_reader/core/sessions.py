"""Chat session discovery.

Each conversation lives in its own ``Chat_<md5(username)>`` table in
MM.sqlite, so sessions are found by filtering table names.
"""

import re
from typing import Iterable, Set

SESSION_TABLE_PREFIX = "Chat_"

_SESSION_TABLE_RE = re.compile(rf"{SESSION_TABLE_PREFIX}([0-9a-f]{{32}})")


def match_session_tables(names: Iterable[str]) -> Set[str]:
    """Return the hashes of all names that look like ``Chat_<32 lowercase hex>``."""
    sessions = set()
    for name in names:
        if not isinstance(name, str):
            continue
        match = _SESSION_TABLE_RE.fullmatch(name)
        if match:
            sessions.add(match.group(1))
    return sessions


def session_table_name(session_hash: str) -> str:
    return f"{SESSION_TABLE_PREFIX}{session_hash}"
