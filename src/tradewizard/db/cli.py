"""CLI entry point for creating the database schema."""
import logging

from tradewizard.config import load_database_config
from tradewizard.db.sessions import create_db_engine, init_db
from tradewizard.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def init() -> None:
    """Create all tables in DATABASE_URL (existing tables are left untouched)."""
    configure_logging("info")
    engine = create_db_engine(load_database_config())
    init_db(engine)
    logger.info("Database schema created at %s", engine.url.render_as_string(hide_password=True))
