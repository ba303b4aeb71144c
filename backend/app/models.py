"""Database models used by the school portal messaging core.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic)
and represent portal profiles and the messages exchanged between them.
Comments are kept concise to avoid distracting from the field
definitions.
"""

from typing import Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """Portal profile (admin, teacher, parent or student)."""
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str = ""
    email: str = Field(unique=True, index=True)
    password_hash: str
    role: str = "parent"  # 'admin', 'teacher', 'parent', 'student'
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Message(SQLModel, table=True):
    """Direct or broadcast message, or a reply inside a two-level thread.

    A top-level message carries exactly one of ``recipient_id`` and
    ``target_role``.  A reply always carries ``recipient_id`` and points at
    its thread root through ``parent_message_id``.
    """

    __table_args__ = (
        CheckConstraint(
            "(parent_message_id IS NULL AND ("
            "(recipient_id IS NOT NULL AND target_role IS NULL) OR "
            "(recipient_id IS NULL AND target_role IS NOT NULL))) OR "
            "(parent_message_id IS NOT NULL AND recipient_id IS NOT NULL "
            "AND target_role IS NULL)",
            name="ck_message_addressing",
        ),
        CheckConstraint(
            "recipient_id IS NULL OR recipient_id != sender_id",
            name="ck_message_not_self",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    sender_id: int = Field(foreign_key="user.id", index=True)
    recipient_id: Optional[int] = Field(
        default=None, foreign_key="user.id", index=True
    )
    target_role: Optional[str] = Field(default=None, index=True)  # teacher, parent, student, all
    subject: str = "(No subject)"
    body: str
    parent_message_id: Optional[int] = Field(
        default=None, foreign_key="message.id", index=True
    )
    is_read: bool = False
    created_at: datetime = Field(default_factory=utc_now, index=True)

    @property
    def is_broadcast(self) -> bool:
        return self.recipient_id is None and self.target_role is not None

    @property
    def is_reply(self) -> bool:
        return self.parent_message_id is not None
