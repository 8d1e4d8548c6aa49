"""
Request-scoped acting identity.

The upstream auth layer tells us who is acting; we only need the id for
audit attribution and transition authorization. Stored in a ContextVar so
concurrent requests served by the same event loop never see each other's
actor.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

_current_actor_id: ContextVar[Optional[int]] = ContextVar("current_actor_id", default=None)


def get_current_actor_id() -> Optional[int]:
    return _current_actor_id.get()


def set_current_actor_id(actor_id: Optional[int]) -> Token:
    return _current_actor_id.set(actor_id)


def reset_current_actor_id(token: Token) -> None:
    _current_actor_id.reset(token)


def resolve_actor_id(actor_id: Optional[int] = None) -> Optional[int]:
    """Explicit actor wins; otherwise fall back to the ambient one (may be None)."""
    if actor_id is not None:
        return actor_id
    return get_current_actor_id()


@contextmanager
def acting_as(actor_id: Optional[int]) -> Iterator[None]:
    """Run a block with ``actor_id`` as the ambient acting identity."""
    token = set_current_actor_id(actor_id)
    try:
        yield
    finally:
        reset_current_actor_id(token)
