"""Inbox and sent list assembly.

A viewer's inbox holds top-level messages sent directly to them plus
broadcasts whose audience is their role or everyone.  The unread count
only covers direct messages: a broadcast row has a single ``is_read`` flag
shared by its whole audience, so it is never counted.
"""

import os
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from app.acl import AUDIENCE_ALL
from app.crud import (
    count_unread_messages,
    get_users_by_ids,
    list_inbox_messages,
    list_sent_messages,
)
from app.models import Message, User

MESSAGE_LIST_LIMIT = int(os.getenv("MESSAGE_LIST_LIMIT", "100"))


@dataclass
class InboxView:
    """Messages listed for one viewer plus the unread badge count.

    ``messages`` holds up to ``MESSAGE_LIST_LIMIT`` rows and ``search`` only
    narrows what ``visible`` returns.  ``unread_count`` is counted in the
    store over the whole inbox, so neither the limit nor the search box
    changes the badge.
    """

    viewer_id: int
    messages: list[Message]
    names: dict[int, str] = field(default_factory=dict)
    search: str | None = None
    unread_count: int = 0

    @property
    def visible(self) -> list[Message]:
        if not self.search:
            return list(self.messages)
        return [m for m in self.messages if matches_search(m, self.search, self.names)]

    def replace(self, message: Message) -> None:
        """Swap in an updated copy of a listed message."""
        self.messages = [
            message if m.id == message.id else m for m in self.messages
        ]


def is_inbox_message(message: Message, viewer: User) -> bool:
    if message.parent_message_id is not None:
        return False
    if message.recipient_id == viewer.id:
        return True
    if message.sender_id == viewer.id:
        return False
    return message.target_role in (viewer.role, AUDIENCE_ALL)


def matches_search(message: Message, query: str, names: dict[int, str]) -> bool:
    """Case-insensitive match on subject, body and both parties' names."""
    q = query.strip().lower()
    if not q:
        return True
    haystacks = [
        message.subject,
        message.body,
        names.get(message.sender_id, ""),
        names.get(message.recipient_id, ""),
    ]
    return any(q in (h or "").lower() for h in haystacks)


async def _names_for(db: AsyncSession, messages) -> dict[int, str]:
    ids = set()
    for m in messages:
        ids.add(m.sender_id)
        ids.add(m.recipient_id)
    users = await get_users_by_ids(db, ids)
    return {uid: u.full_name for uid, u in users.items()}


async def assemble_inbox(
    db: AsyncSession,
    viewer: User,
    *,
    search: str | None = None,
    limit: int | None = MESSAGE_LIST_LIMIT,
) -> InboxView:
    messages = await list_inbox_messages(db, viewer.id, viewer.role, limit=limit)
    view = InboxView(
        viewer_id=viewer.id,
        messages=list(messages),
        names=await _names_for(db, messages),
        search=search,
    )
    view.unread_count = await count_unread_messages(db, viewer.id)
    return view


async def assemble_sent(
    db: AsyncSession,
    viewer: User,
    *,
    search: str | None = None,
    limit: int | None = MESSAGE_LIST_LIMIT,
) -> InboxView:
    """The viewer's own top-level messages; always considered read."""
    messages = await list_sent_messages(db, viewer.id, limit=limit)
    return InboxView(
        viewer_id=viewer.id,
        messages=list(messages),
        names=await _names_for(db, messages),
        search=search,
    )
