"""Database layer - engine, base classes and types."""

from cowork_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from cowork_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from cowork_kernel.db.types import as_utc, round_money

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "as_utc",
    "round_money",
]
