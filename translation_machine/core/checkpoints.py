"""
Checkpoint Store

Keyed durable store for job snapshots, backed by the sqlite checkpoints
table. Snapshots are plain JSON-safe dicts; the store keeps no reference
to the live job.
"""

import time
from typing import Any, Dict, List, Optional

from translation_machine.core import database as db
from translation_machine.logger import get_logger

logger = get_logger(__name__)


class CheckpointStore:
    """put/get/get_all/delete/clear over the checkpoints table."""

    def put(self, job_id: str, snapshot: Dict[str, Any]) -> None:
        db.save_checkpoint(job_id, snapshot)
        logger.debug(f"Checkpoint saved for job {job_id} (cursor={snapshot.get('cursor')})")

    def get(self, job_id: str) -> Optional[Dict[str, Any]]:
        return db.get_checkpoint(job_id)

    def get_all(self) -> List[Dict[str, Any]]:
        return db.get_all_checkpoints()

    def delete(self, job_id: str) -> bool:
        return db.delete_checkpoint(job_id)

    def clear(self) -> int:
        removed = db.delete_all_checkpoints()
        logger.info(f"Cleared {removed} saved checkpoints")
        return removed


def format_time_ago(timestamp: float, now: Optional[float] = None) -> str:
    """Human label for how long ago a checkpoint was written."""
    now = time.time() if now is None else now
    minutes = int(max(0.0, now - timestamp) // 60)
    if minutes < 60:
        return f"{minutes} minutes ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hours ago"
    return f"{hours // 24} days ago"


def describe_checkpoint(snapshot: Dict[str, Any], now: Optional[float] = None) -> Dict[str, Any]:
    """Summarize a snapshot for a saved-sessions listing."""
    results = snapshot.get('results') or []
    chunks = snapshot.get('chunks') or []
    source = snapshot.get('source_descriptor') or {}
    return {
        'job_id': snapshot.get('job_id'),
        'source_name': source.get('name', 'Unknown'),
        'timestamp': snapshot.get('timestamp'),
        'time_ago': format_time_ago(snapshot.get('timestamp', 0), now=now),
        'run_state': snapshot.get('run_state'),
        'cursor': snapshot.get('cursor', 0),
        'total_chunks': len(chunks),
        'failed_chunks': sum(1 for r in results if r.get('status') == 'failed'),
        'cost': (snapshot.get('usage') or {}).get('cost', 0.0),
    }
