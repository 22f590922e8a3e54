"""Saved session (checkpoint) API routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from translation_machine.core.checkpoints import CheckpointStore, describe_checkpoint
from translation_machine.logger import get_logger
from translation_machine.web.tasks import restore_job, serialize_job

checkpoints_bp = Blueprint("checkpoints", __name__)
logger = get_logger(__name__)


@checkpoints_bp.get("")
def list_checkpoints():
    """List saved sessions, newest first."""
    sessions = [describe_checkpoint(snapshot) for snapshot in CheckpointStore().get_all()]
    return jsonify({"checkpoints": sessions, "count": len(sessions)})


@checkpoints_bp.delete("")
def clear_checkpoints():
    removed = CheckpointStore().clear()
    return jsonify({"removed": removed})


@checkpoints_bp.delete("/<job_id>")
def delete_checkpoint(job_id: str):
    if not CheckpointStore().delete(job_id):
        return jsonify({"error": f"No saved session for job {job_id}", "code": "checkpoint_not_found"}), 404
    logger.info(f"Deleted checkpoint for job {job_id}")
    return jsonify({"deleted": job_id})


@checkpoints_bp.post("/<job_id>/resume")
def resume_checkpoint(job_id: str):
    """Restore a saved session and continue translating from its cursor."""
    handle = restore_job(job_id)
    if handle is None:
        return jsonify({"error": f"No saved session for job {job_id}", "code": "checkpoint_not_found"}), 404
    return jsonify({"job_id": handle.job_id, "job": serialize_job(handle)}), 202
