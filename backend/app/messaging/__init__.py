"""Messaging core: addressing, inbox and thread assembly, read state, compose."""

from .addressing import DeliveryMode, Direct, RoleBroadcast, Everyone, resolve
from .compose import compose, reply
from .inbox import InboxView, assemble_inbox, assemble_sent
from .read_state import mark_read
from .thread import Thread, ThreadEntry, assemble_thread, can_view, other_party

__all__ = [
    "DeliveryMode",
    "Direct",
    "RoleBroadcast",
    "Everyone",
    "resolve",
    "compose",
    "reply",
    "InboxView",
    "assemble_inbox",
    "assemble_sent",
    "mark_read",
    "Thread",
    "ThreadEntry",
    "assemble_thread",
    "can_view",
    "other_party",
]
