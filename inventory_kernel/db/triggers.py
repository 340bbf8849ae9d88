"""
PostgreSQL triggers that keep ``activity_entries`` append-only.

The ORM listeners in db/immutability.py stop application code; these
triggers stop everything else (raw SQL, psql sessions, migrations).  Any
UPDATE or DELETE on a ledger row raises ``IMMUTABILITY_VIOLATION``.  The
triggers never write ledger rows.

Architecture position: Kernel > DB.  Imports from db/ only.

The SQL lives in ``sql/``: numbered install files applied in order and
``99_drop_all.sql`` for teardown.  Both are idempotent.
"""

from pathlib import Path

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

SQL_DIR = Path(__file__).parent / "sql"
INSTALL_FILES = ("01_activity_entry.sql",)
DROP_FILE = "99_drop_all.sql"

TRIGGER_NAMES = (
    "trg_activity_entry_immutability_delete",
    "trg_activity_entry_immutability_update",
)


def _run_sql_files(engine: Engine, *filenames: str) -> None:
    with engine.begin() as conn:
        for filename in filenames:
            conn.execute(text((SQL_DIR / filename).read_text(encoding="utf-8")))


def install_immutability_triggers(engine: Engine) -> None:
    """Create (or replace) the ledger triggers.  Tables must already exist."""
    _run_sql_files(engine, *INSTALL_FILES)
    logger.info("immutability_triggers_installed", extra={"triggers": list(TRIGGER_NAMES)})


def uninstall_immutability_triggers(engine: Engine) -> None:
    """Drop the ledger triggers.  Schema teardown only."""
    _run_sql_files(engine, DROP_FILE)
    logger.warning("immutability_triggers_uninstalled")


def get_installed_triggers(engine: Engine) -> list[str]:
    query = text(
        "SELECT tgname FROM pg_trigger WHERE tgname IN :names ORDER BY tgname"
    ).bindparams(bindparam("names", expanding=True))
    with engine.connect() as conn:
        return list(conn.execute(query, {"names": list(TRIGGER_NAMES)}).scalars())


def triggers_installed(engine: Engine) -> bool:
    return set(get_installed_triggers(engine)) == set(TRIGGER_NAMES)
