"""API 路由模块"""

from wechat_reader.api.routes import (
    wechat,
    contacts,
    sessions,
    export,
)

__all__ = ["wechat", "contacts", "sessions", "export"]
