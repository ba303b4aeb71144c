from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel


class MessageCreate(BaseModel):
    mode: Literal["direct", "broadcast"] = "direct"
    recipient_id: Optional[int] = None
    target_role: Optional[str] = None  # 'teacher', 'parent', 'student', 'all'
    subject: str = ""
    body: str


class ReplyCreate(BaseModel):
    body: str


class MessageRead(BaseModel):
    id: int
    sender_id: int
    recipient_id: Optional[int] = None
    target_role: Optional[str] = None
    subject: str
    body: str
    parent_message_id: Optional[int] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MessageListItem(MessageRead):
    counterpart: str
    display_time: str


class MessageList(BaseModel):
    messages: list[MessageListItem]
    unread_count: int = 0


class ThreadEntryRead(MessageRead):
    sender_name: str
    is_mine: bool


class ThreadRead(BaseModel):
    root: ThreadEntryRead
    replies: list[ThreadEntryRead]
    other_party_id: Optional[int] = None
    can_reply: bool


class RecipientOption(BaseModel):
    id: int
    first_name: str
    last_name: str
    role: str
    email: str

    class Config:
        from_attributes = True


class ComposeOptions(BaseModel):
    recipients: list[RecipientOption]
    audiences: list[str]
