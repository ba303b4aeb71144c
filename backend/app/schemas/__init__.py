"""Convenience imports for all schema classes used by the API."""

from .user import UserCreate, UserRegister, UserResponse, UserLogin
from .message import (
    MessageCreate,
    ReplyCreate,
    MessageRead,
    MessageListItem,
    MessageList,
    ThreadEntryRead,
    ThreadRead,
    RecipientOption,
    ComposeOptions,
)

__all__ = [
    "UserCreate",
    "UserRegister",
    "UserResponse",
    "UserLogin",
    "MessageCreate",
    "ReplyCreate",
    "MessageRead",
    "MessageListItem",
    "MessageList",
    "ThreadEntryRead",
    "ThreadRead",
    "RecipientOption",
    "ComposeOptions",
]
