"""
Module: inventory_kernel.db.triggers
Responsibility: Loading, installing, and verifying PostgreSQL append-only
    triggers.  Database-level complement to the ORM listeners in
    db/immutability.py.
Architecture position: Kernel > DB.  MUST NOT import from models/, services/,
    selectors/, domain/, or outer layers.

Invariants enforced:
    - stock_ledger: no UPDATE, no DELETE.
    - cost_layers: no DELETE; UPDATE may only lower qty_remaining_base,
      never below zero; deficit layers never change.
    - cost_layer_consumptions: no UPDATE, no DELETE.
    - lots: natural key immutable, no DELETE.

Failure modes:
    - PostgreSQL RAISE EXCEPTION (restrict_violation) on any violation,
      surfaced by SQLAlchemy as IntegrityError or InternalError.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

SQL_DIR = Path(__file__).parent / "sql"

TRIGGER_FILES = [
    "01_stock_ledger.sql",
    "02_cost_layers.sql",
    "03_lots.sql",
]

DROP_FILE = "99_drop_all.sql"

ALL_TRIGGER_NAMES = [
    "trg_stock_ledger_immutability_update",
    "trg_stock_ledger_immutability_delete",
    "trg_cost_layer_guard_update",
    "trg_cost_layer_prevent_delete",
    "trg_consumption_immutability_update",
    "trg_consumption_immutability_delete",
    "trg_lot_guard_update",
    "trg_lot_prevent_delete",
]


def _load_sql_file(filename: str) -> str:
    return (SQL_DIR / filename).read_text(encoding="utf-8")


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install the append-only triggers.  Idempotent (CREATE OR REPLACE).

    Preconditions: tables exist; engine is connected to PostgreSQL.
    """
    sql_content = "\n".join(_load_sql_file(name) for name in TRIGGER_FILES)
    with engine.connect() as conn:
        conn.execute(text(sql_content))
        conn.commit()


def uninstall_immutability_triggers(engine: Engine) -> None:
    """Remove trigger functions and, by cascade, their triggers."""
    with engine.connect() as conn:
        conn.execute(text(_load_sql_file(DROP_FILE)))
        conn.commit()


def get_installed_triggers(engine: Engine) -> list[str]:
    """Names of installed inventory triggers, sorted."""
    trigger_list = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    check_sql = f"""
    SELECT tgname FROM pg_trigger
    WHERE tgname IN ({trigger_list})
    ORDER BY tgname;
    """
    with engine.connect() as conn:
        return [row[0] for row in conn.execute(text(check_sql))]


def triggers_installed(engine: Engine) -> bool:
    """True iff every trigger in ALL_TRIGGER_NAMES is installed."""
    return set(get_installed_triggers(engine)) == set(ALL_TRIGGER_NAMES)
