"""Asynchronous CRUD helpers for the application's data models.

Each function in this module encapsulates a specific database operation
using SQLModel and SQLAlchemy.  Centralizing the logic keeps route
handlers and the messaging core light and makes behavior easier to test.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from sqlalchemy import func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from app.models import User, Message
from app.acl import AUDIENCE_ALL
from app.auth import get_password_hash


# --- Profile helpers -------------------------------------------------------

async def create_user(db: AsyncSession, user: User):
    """Create a new profile, hashing the password if it is still plain."""

    if not user.password_hash.startswith("$2b$"):
        user.password_hash = get_password_hash(user.password_hash)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user_by_email(db: AsyncSession, email: str):
    """Return a user by email or ``None`` if not found."""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """Load a user by primary key."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def count_users(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(User))
    return result.scalar()


async def get_users_by_ids(db: AsyncSession, user_ids) -> dict[int, User]:
    """Return a mapping of id to user for the given ids."""

    ids = {i for i in user_ids if i is not None}
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars().all()}


async def list_users_by_roles(
    db: AsyncSession, roles: list[str], *, exclude_id: int | None = None, limit: int = 200
) -> list[User]:
    """Return profiles holding one of ``roles`` ordered by first name."""

    stmt = select(User).where(User.role.in_(roles))
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    stmt = stmt.order_by(User.first_name, User.id).limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()


# --- Messaging helpers ----------------------------------------------------

async def create_message(db: AsyncSession, message: Message) -> Message:
    """Persist a new message.

    A row breaking the addressing constraints is rolled back and the
    ``IntegrityError`` propagates.
    """

    db.add(message)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(message)
    return message


async def get_message(db: AsyncSession, message_id: int) -> Message | None:
    result = await db.execute(select(Message).where(Message.id == message_id))
    return result.scalar_one_or_none()


async def update_message_read(db: AsyncSession, message: Message) -> Message:
    """Persist ``is_read`` for a message; the only in-place update."""

    message.is_read = True
    db.add(message)
    await db.commit()
    await db.refresh(message)
    return message


async def list_inbox_messages(
    db: AsyncSession, viewer_id: int, viewer_role: str, *, limit: int | None = None
) -> list[Message]:
    """Top-level messages addressed to the viewer or to their audience.

    Newest first; messages sharing a timestamp keep insertion order.
    """
    broadcast = and_(
        or_(Message.target_role == viewer_role, Message.target_role == AUDIENCE_ALL),
        Message.sender_id != viewer_id,
    )
    stmt = (
        select(Message)
        .where(Message.parent_message_id.is_(None))
        .where(or_(Message.recipient_id == viewer_id, broadcast))
        .order_by(Message.created_at.desc(), Message.id.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()


async def count_unread_messages(db: AsyncSession, viewer_id: int) -> int:
    """Unread top-level direct messages for the viewer, over the whole inbox."""
    result = await db.execute(
        select(func.count())
        .select_from(Message)
        .where(Message.parent_message_id.is_(None))
        .where(Message.recipient_id == viewer_id)
        .where(Message.is_read.is_(False))
    )
    return result.scalar()


async def list_sent_messages(
    db: AsyncSession, sender_id: int, *, limit: int | None = None
) -> list[Message]:
    stmt = (
        select(Message)
        .where(Message.parent_message_id.is_(None))
        .where(Message.sender_id == sender_id)
        .order_by(Message.created_at.desc(), Message.id.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()


async def list_replies(db: AsyncSession, parent_id: int) -> list[Message]:
    """Replies to a thread root, oldest first."""
    result = await db.execute(
        select(Message)
        .where(Message.parent_message_id == parent_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return result.scalars().all()
