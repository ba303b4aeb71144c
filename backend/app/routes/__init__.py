"""Aggregate import for all API route modules."""

from . import (
    auth,
    users,
    messages,
)

__all__ = [
    "auth",
    "users",
    "messages",
]
