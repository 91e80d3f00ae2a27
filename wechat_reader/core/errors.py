"""Typed failures raised by the reader.

Two families matter to callers: something requested does not exist
(``NotFoundError``), or it exists but cannot be understood
(``MalformedDataError``).
"""


class ReaderError(Exception):
    """读取错误"""

    pass


class NotFoundError(ReaderError):
    """请求的资源不存在"""

    pass


class MalformedDataError(ReaderError):
    """数据格式无法解析"""

    pass


class StoreNotFoundError(NotFoundError):
    """必需的数据库文件不存在"""

    pass


class SessionNotFoundError(NotFoundError):
    """没有对应的 Chat_<hash> 表"""

    def __init__(self, session_hash: str):
        super().__init__(f"No chat table for session {session_hash!r}")
        self.session_hash = session_hash


class ArchiveNotFoundError(NotFoundError):
    """mmsetting.archive 不存在"""

    pass


class ArchiveFormatError(MalformedDataError):
    """归档文件无法解析"""

    pass


class BlobDecodeError(MalformedDataError):
    """blob 字段无法解析"""

    pass
