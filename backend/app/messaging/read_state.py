"""Read flag handling for direct messages."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import count_unread_messages, update_message_read
from app.messaging.inbox import InboxView
from app.models import Message, User

logger = logging.getLogger(__name__)


async def mark_read(
    db: AsyncSession,
    message: Message,
    viewer: User,
    view: InboxView | None = None,
) -> Message:
    """Flag ``message`` read the first time its direct recipient opens it.

    Broadcasts, already-read messages and viewers other than the recipient
    leave the message untouched.  When the caller holds an ``InboxView``
    its unread count is recomputed.
    """
    if message.is_read or message.recipient_id is None:
        return message
    if message.recipient_id != viewer.id:
        return message
    message = await update_message_read(db, message)
    logger.info("Message %s read by user %s", message.id, viewer.id)
    if view is not None:
        view.replace(message)
        view.unread_count = await count_unread_messages(db, viewer.id)
    return message
