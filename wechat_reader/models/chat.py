"""
微信聊天相关的数据模型

定义了联系人（含当前用户）和聊天记录的数据结构
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Person:
    """联系人/当前用户数据模型"""

    username: str  # UsrName (主键)
    alias: Optional[str] = None  # 微信号
    nickname: Optional[str] = None
    remark: Optional[str] = None  # ConRemark
    portrait: Optional[str] = None  # 头像 URL
    portrait_hd: Optional[str] = None  # 高清头像 URL
    chatroom_members: Optional[str] = None  # ConChatRoomMem, 旧表
    chatroom: Optional[str] = None  # dbContactChatRoom, WCDB

    @property
    def display_name(self) -> str:
        for name in (self.remark, self.nickname, self.alias):
            if name:
                return name
        return self.username

    @property
    def is_chatroom(self) -> bool:
        return self.username.endswith("@chatroom")

    def member_list(self) -> List[str]:
        """群成员用户名列表（ConChatRoomMem 以 ; 分隔）"""
        if not self.chatroom_members:
            return []
        return [m for m in self.chatroom_members.split(";") if m]


@dataclass(frozen=True)
class Record:
    """聊天记录数据模型（Chat_<hash> 表中的一行）"""

    local_id: int = 0  # MesLocalID
    server_id: int = 0  # MesSvrID
    create_time: int = 0
    message: Optional[str] = None
    status: int = 0
    img_status: int = 0
    msg_type: int = 0
    des: int = 0  # 0=发送, 1=接收

    @property
    def is_sender(self) -> bool:
        return self.des == 0
