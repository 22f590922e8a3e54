"""
sqlite access for saved job checkpoints and the settings document.

Table creation and upgrades live in core/schema.py.
"""

import json
import sqlite3
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any

DB_FILE = Path(__file__).parent.parent.parent / "translations.db"


def get_connection():
    """Open a connection to DB_FILE."""
    return sqlite3.connect(DB_FILE)


# ============================================================
# Checkpoint CRUD Operations
# ============================================================

def save_checkpoint(job_id: str, snapshot: Dict[str, Any]):
    """Insert or replace the snapshot stored for a job."""
    source = snapshot.get('source_descriptor') or {}
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT OR REPLACE INTO checkpoints (job_id, timestamp, source_name, snapshot, updated_at)
            VALUES (?, ?, ?, ?, ?)
        """, (
            job_id,
            snapshot.get('timestamp', time.time()),
            source.get('name', 'Unknown'),
            json.dumps(snapshot, ensure_ascii=False),
            datetime.now().isoformat(),
        ))
        conn.commit()


def get_checkpoint(job_id: str) -> Optional[Dict[str, Any]]:
    """Get the snapshot stored for a job."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT snapshot FROM checkpoints WHERE job_id = ?", (job_id,))
        row = cursor.fetchone()
        return json.loads(row[0]) if row else None


def get_all_checkpoints() -> List[Dict[str, Any]]:
    """Get all stored snapshots, newest first."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT snapshot FROM checkpoints ORDER BY timestamp DESC")
        return [json.loads(row[0]) for row in cursor.fetchall()]


def delete_checkpoint(job_id: str) -> bool:
    """Delete the snapshot for a job. Returns True if a row was removed."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM checkpoints WHERE job_id = ?", (job_id,))
        conn.commit()
        return cursor.rowcount > 0


def delete_all_checkpoints() -> int:
    """Delete every stored snapshot and return how many were removed."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM checkpoints")
        conn.commit()
        return cursor.rowcount


# ============================================================
# App Config Operations
# ============================================================

def get_app_config(key: str) -> Optional[str]:
    """Raw stored value for a settings key."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM app_config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None


def set_app_config(key: str, value: str):
    """Upsert a settings key."""
    with get_connection() as conn:
        cursor = conn.cursor()
        # Ensure app_config table exists
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS app_config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            INSERT OR REPLACE INTO app_config (key, value, updated_at)
            VALUES (?, ?, ?)
        """, (key, value, datetime.now().isoformat()))
        conn.commit()

