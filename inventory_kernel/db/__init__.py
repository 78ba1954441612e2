"""Database layer - engine, base classes, types, and append-only guards."""

from inventory_kernel.db.base import Base, SerialBase, TrackedBase, UUIDBase, UUIDString
from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from inventory_kernel.db.types import Quantity, UnitCost

__all__ = [
    "Base",
    "SerialBase",
    "TrackedBase",
    "UUIDBase",
    "UUIDString",
    "Quantity",
    "UnitCost",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
