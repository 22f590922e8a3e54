"""
Core module - Persistence utilities

This module provides:
- database: CRUD operations for checkpoints and app config
- schema: Database initialization and migrations
- checkpoints: Keyed checkpoint store used by the pipeline
"""

from translation_machine.core.database import (
    DB_FILE,
    get_connection,
    # Checkpoint operations
    save_checkpoint,
    get_checkpoint,
    get_all_checkpoints,
    delete_checkpoint,
    delete_all_checkpoints,
    # App config operations
    get_app_config,
    set_app_config,
)

from translation_machine.core.schema import (
    DB_VERSION,
    get_db_version,
    set_db_version,
    initialize_database,
    ensure_all_schemas,
    migrate_database,
)

from translation_machine.core.checkpoints import (
    CheckpointStore,
    describe_checkpoint,
    format_time_ago,
)
