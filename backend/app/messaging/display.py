"""Labels and timestamps shown next to messages in list views."""

from datetime import datetime, timezone

from app.messaging.addressing import Direct, Everyone, addressee_of


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(created_at: datetime, now: datetime | None = None) -> str:
    """``HH:MM`` for messages from today, ``Mon D`` for anything earlier."""
    created_at = _as_utc(created_at)
    now = _as_utc(now or datetime.now(timezone.utc))
    if created_at.date() == now.date():
        return created_at.strftime("%H:%M")
    return f"{created_at.strftime('%b')} {created_at.day}"


def audience_label(target_role: str) -> str:
    return f"All {target_role}s"


def counterpart_label(message, viewer_id: int, names: dict[int, str]) -> str:
    """Name of the other side of ``message`` as seen by the viewer.

    Incoming messages show the sender; outgoing ones show the recipient or
    the broadcast audience.
    """
    if message.sender_id != viewer_id:
        return names.get(message.sender_id, "System")
    addressee = addressee_of(message.recipient_id, message.target_role)
    if isinstance(addressee, Direct):
        return names.get(addressee.person_id, "Unknown")
    if isinstance(addressee, Everyone):
        return "Everyone"
    return audience_label(addressee.role)
