"""Creation of new top-level messages and thread replies.

All checks run before anything reaches the store, so a rejected message
leaves nothing behind.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.acl import can_broadcast
from app.crud import create_message
from app.messaging.addressing import DeliveryMode, resolve
from app.messaging.errors import (
    AudienceNotPermitted,
    EmptyBody,
    MissingAudience,
    MissingRecipient,
    NotThreadRoot,
    NoReplyTarget,
)
from app.messaging.thread import other_party
from app.models import Message, User

logger = logging.getLogger(__name__)

NO_SUBJECT = "(No subject)"


def _clean_body(body: str | None) -> str:
    body = (body or "").strip()
    if not body:
        raise EmptyBody()
    return body


async def compose(
    db: AsyncSession,
    sender: User,
    mode: DeliveryMode,
    target,
    subject: str | None,
    body: str | None,
) -> Message:
    body = _clean_body(body)
    mode = DeliveryMode(mode)
    if mode is DeliveryMode.BROADCAST:
        if not target:
            raise MissingAudience()
    elif target is None or target == "":
        raise MissingRecipient()

    recipient_id, target_role = resolve(mode, target, sender_id=sender.id)
    if target_role is not None and not can_broadcast(sender.role, target_role):
        raise AudienceNotPermitted()

    message = Message(
        sender_id=sender.id,
        recipient_id=recipient_id,
        target_role=target_role,
        subject=(subject or "").strip() or NO_SUBJECT,
        body=body,
        parent_message_id=None,
        is_read=False,
    )
    message = await create_message(db, message)
    logger.info(
        "User %s sent message %s (%s to %s)",
        sender.id,
        message.id,
        mode.value,
        recipient_id if recipient_id is not None else target_role,
    )
    return message


async def reply(
    db: AsyncSession, sender: User, root: Message, body: str | None
) -> Message:
    body = _clean_body(body)
    if root.parent_message_id is not None:
        raise NotThreadRoot()
    recipient_id = other_party(root, sender)
    if recipient_id is None:
        raise NoReplyTarget()

    message = Message(
        sender_id=sender.id,
        recipient_id=recipient_id,
        target_role=None,
        subject=f"Re: {root.subject}",
        body=body,
        parent_message_id=root.id,
    )
    message = await create_message(db, message)
    logger.info(
        "User %s replied to message %s with %s", sender.id, root.id, message.id
    )
    return message
