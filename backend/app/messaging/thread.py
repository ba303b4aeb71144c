"""Thread assembly for a top-level message and its flat list of replies."""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import list_replies, get_users_by_ids
from app.messaging.errors import NotThreadRoot
from app.messaging.inbox import is_inbox_message
from app.models import Message, User


@dataclass
class ThreadEntry:
    message: Message
    is_mine: bool


@dataclass
class Thread:
    root: ThreadEntry
    replies: list[ThreadEntry]
    other_party_id: Optional[int]
    names: dict[int, str] = field(default_factory=dict)

    @property
    def can_reply(self) -> bool:
        return self.other_party_id is not None


def other_party(root: Message, viewer: User) -> Optional[int]:
    """Who a reply from ``viewer`` in this thread goes to.

    ``None`` when the viewer wrote a broadcast root: there is no single
    person on the other side.
    """
    if root.sender_id == viewer.id:
        return root.recipient_id
    return root.sender_id


def can_view(root: Message, viewer: User) -> bool:
    return root.sender_id == viewer.id or is_inbox_message(root, viewer)


async def assemble_thread(db: AsyncSession, root: Message, viewer: User) -> Thread:
    if root.parent_message_id is not None:
        raise NotThreadRoot()
    replies = await list_replies(db, root.id)
    users = await get_users_by_ids(
        db, [root.sender_id, root.recipient_id] + [r.sender_id for r in replies]
    )
    return Thread(
        root=ThreadEntry(root, root.sender_id == viewer.id),
        replies=[ThreadEntry(r, r.sender_id == viewer.id) for r in replies],
        other_party_id=other_party(root, viewer),
        names={uid: u.full_name for uid, u in users.items()},
    )
