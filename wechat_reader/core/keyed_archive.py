"""NSKeyedArchiver property list support.

``mmsetting.archive`` is a keyed archive: a flat ``$objects`` table whose
entries point at each other through UID references. ``deep_parse`` follows
those references from ``$top.root`` and returns plain Python values.
"""

import logging
import plistlib
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union
from xml.parsers.expat import ExpatError

from wechat_reader.core.errors import ArchiveFormatError, ArchiveNotFoundError

logger = logging.getLogger(__name__)

NULL_MARKER = "$null"


def load_archive(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a keyed archive from disk.

    Args:
        path: Archive file path

    Returns:
        The raw archive dictionary (``$objects``, ``$top``, ...)

    Raises:
        ArchiveNotFoundError: File does not exist
        ArchiveFormatError: Not a property list, or not a keyed archive
    """
    p = Path(path)
    if not p.is_file():
        raise ArchiveNotFoundError(f"Archive not found: {p}")

    try:
        with open(p, "rb") as f:
            archive = plistlib.load(f)
    except (plistlib.InvalidFileException, ExpatError, ValueError, OverflowError) as e:
        raise ArchiveFormatError(f"Cannot parse property list {p}: {e}") from e

    if not isinstance(archive, dict) or not isinstance(archive.get("$objects"), list):
        raise ArchiveFormatError(f"Not a keyed archive: {p}")
    if not isinstance(archive.get("$top"), dict):
        raise ArchiveFormatError(f"Keyed archive has no $top: {p}")
    return archive


def _uid_index(value: Any) -> Optional[int]:
    if isinstance(value, plistlib.UID):
        return value.data
    # XML archives spell references as {"CF$UID": n}
    if isinstance(value, dict) and len(value) == 1 and "CF$UID" in value:
        return int(value["CF$UID"])
    return None


class _Resolver:
    def __init__(self, objects: list):
        self._objects = objects
        self._active: Set[int] = set()

    def resolve(self, value: Any) -> Any:
        index = _uid_index(value)
        if index is None:
            return self._convert(value)

        if index < 0 or index >= len(self._objects):
            raise ArchiveFormatError(f"UID {index} out of range")
        if index in self._active:
            raise ArchiveFormatError(f"Reference cycle at UID {index}")

        self._active.add(index)
        try:
            return self._convert(self._objects[index])
        finally:
            self._active.discard(index)

    def _convert(self, obj: Any) -> Any:
        if obj == NULL_MARKER:
            return None
        if isinstance(obj, list):
            return [self.resolve(v) for v in obj]
        if not isinstance(obj, dict):
            return obj

        if "NS.keys" in obj and "NS.objects" in obj:
            keys = [self.resolve(k) for k in obj["NS.keys"]]
            values = [self.resolve(v) for v in obj["NS.objects"]]
            for k in keys:
                if isinstance(k, (dict, list)):
                    raise ArchiveFormatError(
                        f"Dictionary key is {type(k).__name__}, expected a scalar"
                    )
            return dict(zip(keys, values))
        if "NS.objects" in obj:
            return [self.resolve(v) for v in obj["NS.objects"]]
        if "NS.string" in obj:
            return self.resolve(obj["NS.string"])
        if "NS.data" in obj:
            return self.resolve(obj["NS.data"])

        return {
            k: self.resolve(v)
            for k, v in obj.items()
            if k not in ("$class", "$classname", "$classes")
        }


def deep_parse(archive: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve the root object of a keyed archive into nested dicts/lists.

    Raises:
        ArchiveFormatError: Broken references, or a root that is not a mapping
    """
    objects = archive.get("$objects")
    top = archive.get("$top")
    if not isinstance(objects, list) or not isinstance(top, dict):
        raise ArchiveFormatError("Not a keyed archive")
    if "root" not in top:
        raise ArchiveFormatError("Keyed archive has no root object")

    root = _Resolver(objects).resolve(top["root"])
    if not isinstance(root, dict):
        raise ArchiveFormatError(
            f"Archive root is {type(root).__name__}, expected a mapping"
        )
    return root


def try_get(mapping: Optional[Dict[str, Any]], key: str, expected_type: type = str) -> Any:
    if not mapping:
        return None
    value = mapping.get(key)
    if isinstance(value, expected_type):
        return value
    if value is not None:
        logger.debug(
            "Ignoring %s=%r: expected %s", key, value, expected_type.__name__
        )
    return None


def try_get_mapping(
    mapping: Optional[Dict[str, Any]], key: str
) -> Optional[Dict[str, Any]]:
    return try_get(mapping, key, dict)
