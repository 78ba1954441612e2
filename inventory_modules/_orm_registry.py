"""
Module ORM Registry (``inventory_modules._orm_registry``).

Responsibility
--------------
Ensure every document ORM model is imported so that ``Base.metadata``
contains its tables before ``create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  The kernel's ``db/engine.py`` calls
``import_all_orm_models`` lazily from ``create_tables``/``drop_tables``;
nothing else in the kernel imports from ``inventory_modules``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``inventory_modules.*.orm`` module.

    Idempotent -- repeated calls are harmless.
    """
    # Kernel tables first; document lines reference lots.id
    import inventory_kernel.models  # noqa: F401
    # fmt: off
    import inventory_modules.adjustments.orm  # noqa: F401
    import inventory_modules.goods_receipts.orm  # noqa: F401
    import inventory_modules.orders.orm  # noqa: F401
    import inventory_modules.production.orm  # noqa: F401
    import inventory_modules.returns.orm  # noqa: F401
    import inventory_modules.stock_counts.orm  # noqa: F401
    import inventory_modules.transfers.orm  # noqa: F401
    # fmt: on


def create_all_tables(install_triggers: bool = True) -> None:
    """Create kernel and document tables, then optionally install triggers.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from inventory_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables(install_triggers=install_triggers)
