"""
Database Schema Management Module

Creates the checkpoint and settings tables and re-checks them on every start.
For CRUD operations, see core/database.py
"""

import sqlite3

# Go through the module so a patched DB_FILE is honoured
import translation_machine.core.database as db

DB_VERSION = 1  # Increment when schema changes and add the upgrade to migrate_database

CHECKPOINTS_TABLE = """
CREATE TABLE IF NOT EXISTS checkpoints (
    job_id TEXT PRIMARY KEY,
    timestamp REAL NOT NULL,
    source_name TEXT,
    snapshot TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

APP_CONFIG_TABLE = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""


def get_connection():
    """Connection to whatever db.DB_FILE currently points at."""
    return db.get_connection()


def get_db_version() -> int:
    """Stored schema version, 0 for a database without a version table."""
    try:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT version FROM db_version LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else 0
    except sqlite3.OperationalError:
        return 0


def set_db_version(version: int):
    """Replace the stored schema version."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("CREATE TABLE IF NOT EXISTS db_version (version INTEGER)")
        cursor.execute("DELETE FROM db_version")
        cursor.execute("INSERT INTO db_version (version) VALUES (?)", (version,))
        conn.commit()


def initialize_database():
    """Create a fresh database, or bring an existing one up to DB_VERSION."""
    from translation_machine.logger import get_logger
    logger = get_logger(__name__)

    if db.DB_FILE.exists():
        current_version = get_db_version()
        if current_version < DB_VERSION:
            migrate_database(current_version, DB_VERSION)
        else:
            try:
                ensure_all_schemas()
            except Exception as e:
                logger.warning(f"Failed to verify database schema: {e}")
        return

    ensure_all_schemas()
    set_db_version(DB_VERSION)
    logger.info(f"Database created at {db.DB_FILE}")


# ============================================================
# Database Schema Validation
# ============================================================

def ensure_tables():
    """Create any missing table. Existing tables and rows are left alone."""
    from translation_machine.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(CHECKPOINTS_TABLE)
            cursor.execute(APP_CONFIG_TABLE)
            conn.commit()
    except Exception as e:
        logger.error(f"Failed to ensure database tables: {e}")
        raise


def ensure_database_indexes():
    """Ensure the index used for newest-first session listing exists."""
    from translation_machine.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_checkpoints_timestamp
                ON checkpoints(timestamp)
            """)
            conn.commit()
            logger.debug("Database indexes created/verified successfully")
    except Exception as e:
        logger.error(f"Failed to ensure database indexes: {e}")
        raise


def ensure_all_schemas():
    """Ensure all tables and indexes exist."""
    ensure_tables()
    ensure_database_indexes()


# ============================================================
# Database Migration
# ============================================================

def migrate_database(from_version: int, to_version: int):
    """
    Bring an older or unversioned database file up to to_version.

    Version 0 is a file with no version table, such as one sqlite created
    empty; it only needs the tables.
    """
    from translation_machine.logger import get_logger
    logger = get_logger(__name__)

    logger.info(f"Migrating database from version {from_version} to {to_version}")
    ensure_all_schemas()
    set_db_version(to_version)
    logger.info(f"Database migration completed: now at version {to_version}")
