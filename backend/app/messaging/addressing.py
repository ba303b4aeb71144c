"""Turn a delivery mode and target into the stored addressing pair.

Calling code works with the ``Addressee`` variants; only the store sees the
flattened ``(recipient_id, target_role)`` columns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from app.acl import AUDIENCE_ALL, AUDIENCE_TAGS
from app.messaging.errors import InvalidAddressee, InvalidAudience


class DeliveryMode(str, Enum):
    DIRECT = "direct"
    BROADCAST = "broadcast"


@dataclass(frozen=True)
class Direct:
    person_id: int

    def flatten(self) -> tuple[Optional[int], Optional[str]]:
        return self.person_id, None


@dataclass(frozen=True)
class RoleBroadcast:
    role: str

    def flatten(self) -> tuple[Optional[int], Optional[str]]:
        return None, self.role


@dataclass(frozen=True)
class Everyone:
    def flatten(self) -> tuple[Optional[int], Optional[str]]:
        return None, AUDIENCE_ALL


Addressee = Union[Direct, RoleBroadcast, Everyone]


def addressee_for(mode: DeliveryMode, target) -> Addressee:
    """Build the addressee variant for ``target`` under ``mode``."""
    mode = DeliveryMode(mode)
    if mode is DeliveryMode.DIRECT:
        if target is None or target == "":
            raise InvalidAddressee()
        try:
            return Direct(int(target))
        except (TypeError, ValueError):
            raise InvalidAddressee(f"Invalid recipient: {target!r}")
    if not target:
        raise InvalidAudience()
    if target not in AUDIENCE_TAGS:
        raise InvalidAudience(f"Unknown broadcast audience: {target}")
    if target == AUDIENCE_ALL:
        return Everyone()
    return RoleBroadcast(target)


def resolve(
    mode: DeliveryMode, target, sender_id: int | None = None
) -> tuple[Optional[int], Optional[str]]:
    """Return the ``(recipient_id, target_role)`` pair for a new message.

    Exactly one element of the pair is set.  A direct message may not be
    addressed to its own sender.
    """
    addressee = addressee_for(mode, target)
    if isinstance(addressee, Direct) and addressee.person_id == sender_id:
        raise InvalidAddressee()
    return addressee.flatten()


def addressee_of(recipient_id: Optional[int], target_role: Optional[str]) -> Addressee:
    """Rebuild the variant from stored columns."""
    if recipient_id is not None:
        return Direct(recipient_id)
    if target_role == AUDIENCE_ALL:
        return Everyone()
    return RoleBroadcast(target_role)
