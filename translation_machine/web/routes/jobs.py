"""Translation job API routes."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, Response, jsonify, request

from translation_machine.ai.service import estimate_cost
from translation_machine.logger import get_logger
from translation_machine.translation.chunker import chunk_text
from translation_machine.translation.job import JobConfig
from translation_machine.translation.prompts import check_system_prompt
from translation_machine.web.tasks import (
    create_translation_job,
    get_job,
    job_summary,
    pause_job,
    resume_job,
    retry_failed_job,
    serialize_job,
    stop_job,
)

jobs_bp = Blueprint("jobs", __name__)
logger = get_logger(__name__)

# Request fields that override stored translation settings
_OVERRIDE_FIELDS = (
    "model",
    "style",
    "system_prompt",
    "source_language",
    "target_language",
    "chunk_size",
    "temperature",
)


def _read_document(data: Dict[str, Any]):
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return None, (jsonify({"error": "Field 'text' is required", "code": "empty_document"}), 400)
    return text, None


def _overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: data[key] for key in _OVERRIDE_FIELDS if data.get(key) not in (None, "")}


def _not_found(job_id: str):
    return jsonify({"error": f"Job {job_id} not found or expired", "code": "job_not_found"}), 404


@jobs_bp.post("")
def start_job():
    """Start an asynchronous translation job for a document."""
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    text, error = _read_document(data)
    if error:
        return error

    source_descriptor = {"name": data.get("source_name") or "Untitled"}
    handle = create_translation_job(text, source_descriptor, _overrides(data))
    config = handle.job.config
    return (
        jsonify(
            {
                "job_id": handle.job_id,
                "job": serialize_job(handle),
                "warnings": check_system_prompt(config.system_prompt, config.source_language,
                                                config.target_language),
            }
        ),
        202,
    )


@jobs_bp.post("/estimate")
def estimate_job():
    """Pre-flight token and cost estimate; no remote calls are made."""
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    text, error = _read_document(data)
    if error:
        return error

    config = JobConfig.from_settings(**_overrides(data))
    config.validate()
    estimate = estimate_cost(text, config.system_prompt, config.model)
    estimate["chunks"] = len(chunk_text(text, config.chunk_budget))
    estimate["chunk_budget"] = config.chunk_budget
    estimate["warnings"] = check_system_prompt(config.system_prompt, config.source_language,
                                               config.target_language)
    logger.debug(f"Estimate for {len(text)} chars: {estimate}")
    return jsonify(estimate)


@jobs_bp.get("/<job_id>")
def get_job_status(job_id: str):
    """Return status, summary and latest progress for a job."""
    handle = get_job(job_id)
    if not handle:
        return _not_found(job_id)
    return jsonify(serialize_job(handle))


@jobs_bp.post("/<job_id>/pause")
def pause(job_id: str):
    if not get_job(job_id):
        return _not_found(job_id)
    return jsonify(serialize_job(pause_job(job_id)))


@jobs_bp.post("/<job_id>/resume")
def resume(job_id: str):
    if not get_job(job_id):
        return _not_found(job_id)
    return jsonify(serialize_job(resume_job(job_id)))


@jobs_bp.post("/<job_id>/stop")
def stop(job_id: str):
    if not get_job(job_id):
        return _not_found(job_id)
    return jsonify(serialize_job(stop_job(job_id)))


@jobs_bp.post("/<job_id>/retry-failed")
def retry_failed(job_id: str):
    if not get_job(job_id):
        return _not_found(job_id)
    return jsonify(serialize_job(retry_failed_job(job_id))), 202


@jobs_bp.get("/<job_id>/export")
def export_job(job_id: str):
    """Download the translation; failed or pending chunks are marked inline."""
    handle = get_job(job_id)
    if not handle:
        return _not_found(job_id)

    summary = job_summary(handle)
    text = handle.orchestrator.export_text() if handle.orchestrator.job else handle.job.export_text()
    if summary["failed"]:
        logger.warning(f"Exporting job {job_id} with {summary['failed']} failed chunks")

    response = Response(text, mimetype="text/plain")
    response.headers["X-Chunks-Succeeded"] = str(summary["succeeded"])
    response.headers["X-Chunks-Total"] = str(summary["total"])
    return response
