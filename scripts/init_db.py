from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from doorprize.db.engine import make_engine

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_tables() -> None:
    """Print the drawing tables present in the configured database."""
    engine = make_engine()
    insp = inspect(engine)
    tables = sorted(name for name in insp.get_table_names() if name != "alembic_version")
    print("Current tables:", ", ".join(tables))
    logger.info("Database %s has %d tables", engine.url.render_as_string(hide_password=True), len(tables))


def main() -> None:
    """Apply migrations (default to head) and report the resulting schema."""
    logging.basicConfig(level=logging.INFO)
    upgrade_db()
    print_tables()


if __name__ == "__main__":
    main()
