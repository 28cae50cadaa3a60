"""
Module ORM Registry (``cowork_modules._orm_registry``).

Ensures every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table before ``create_tables()`` runs.
"""


def import_all_orm_models() -> None:
    """Import every ``cowork_modules.*.orm`` module. Idempotent."""
    import cowork_modules.contracts.orm  # noqa: F401
