"""Endpoints for portal messaging: inbox, sent, compose, threads and replies."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_session
from app.schemas import (
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
from app.models import User
from app.auth import get_current_user
from app.acl import get_recipient_roles_for_role, get_broadcast_audiences_for_role
from app.crud import get_message, get_user, list_users_by_roles
from app.messaging import (
    assemble_inbox,
    assemble_sent,
    assemble_thread,
    can_view,
    compose,
    mark_read,
    reply,
)
from app.messaging.display import counterpart_label, format_timestamp
from app.messaging.errors import MessagingError, AudienceNotPermitted, NotThreadRoot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/messages", tags=["messages"])


def _error(exc: MessagingError) -> HTTPException:
    code = (
        status.HTTP_403_FORBIDDEN
        if isinstance(exc, AudienceNotPermitted)
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(
        status_code=code, detail={"code": exc.code, "message": exc.message}
    )


def _list_response(view, viewer: User) -> MessageList:
    items = [
        MessageListItem(
            **MessageRead.model_validate(m).model_dump(),
            counterpart=counterpart_label(m, viewer.id, view.names),
            display_time=format_timestamp(m.created_at),
        )
        for m in view.visible
    ]
    return MessageList(messages=items, unread_count=view.unread_count)


def _thread_entry(entry, names) -> ThreadEntryRead:
    return ThreadEntryRead(
        **MessageRead.model_validate(entry.message).model_dump(),
        sender_name=names.get(entry.message.sender_id, "Unknown"),
        is_mine=entry.is_mine,
    )


@router.post("/", response_model=MessageRead)
async def send_message(
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    target = data.recipient_id if data.mode == "direct" else data.target_role
    if data.mode == "direct" and data.recipient_id is not None:
        if not await get_user(db, data.recipient_id):
            raise HTTPException(status_code=404, detail="Recipient not found")
    try:
        return await compose(
            db, current_user, data.mode, target, data.subject, data.body
        )
    except MessagingError as exc:
        raise _error(exc)


@router.get("/inbox", response_model=MessageList)
async def inbox(
    search: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    view = await assemble_inbox(db, current_user, search=search)
    return _list_response(view, current_user)


@router.get("/sent", response_model=MessageList)
async def sent(
    search: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    view = await assemble_sent(db, current_user, search=search)
    return _list_response(view, current_user)


@router.get("/recipients", response_model=ComposeOptions)
async def recipients(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Choices for the compose form: direct recipients and broadcast audiences."""
    roles = get_recipient_roles_for_role(current_user.role)
    users = await list_users_by_roles(db, roles, exclude_id=current_user.id)
    return ComposeOptions(
        recipients=[RecipientOption.model_validate(u) for u in users],
        audiences=get_broadcast_audiences_for_role(current_user.role),
    )


@router.get("/{message_id}", response_model=ThreadRead)
async def read_thread(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    msg = await get_message(db, message_id)
    if not msg:
        raise HTTPException(status_code=404, detail="Not found")
    if msg.parent_message_id is not None:
        raise _error(NotThreadRoot())
    if not can_view(msg, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")
    try:
        thread = await assemble_thread(db, msg, current_user)
    except MessagingError as exc:
        raise _error(exc)
    response = ThreadRead(
        root=_thread_entry(thread.root, thread.names),
        replies=[_thread_entry(r, thread.names) for r in thread.replies],
        other_party_id=thread.other_party_id,
        can_reply=thread.can_reply,
    )
    try:
        updated = await mark_read(db, msg, current_user)
        response.root.is_read = updated.is_read
    except SQLAlchemyError:
        # viewing still works if the read flag cannot be stored
        logger.warning("Could not mark message %s read", message_id, exc_info=True)
        await db.rollback()
    return response


@router.post("/{message_id}/reply", response_model=MessageRead)
async def reply_to_thread(
    message_id: int,
    data: ReplyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    root = await get_message(db, message_id)
    if not root:
        raise HTTPException(status_code=404, detail="Not found")
    if root.parent_message_id is not None:
        raise _error(NotThreadRoot())
    if not can_view(root, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")
    try:
        return await reply(db, current_user, root, data.body)
    except MessagingError as exc:
        raise _error(exc)
