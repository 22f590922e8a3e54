"""Settings management API routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request

import translation_machine.config as config
from translation_machine.language_codes import get_all_language_codes, is_valid_language_code
from translation_machine.logger import get_logger, refresh_log_mode
from translation_machine.translation.prompts import STYLE_PRESETS, CUSTOM_STYLE

settings_bp = Blueprint("settings", __name__)
logger = get_logger(__name__)

LOG_MODES = ("off", "info", "debug")
EDITABLE_SECTIONS = ("openai", "translation", "pipeline")


def _masked(current: Dict[str, Any]) -> Dict[str, Any]:
    """Never send the stored API key back in full."""
    openai_config = current.get("openai", {})
    key = openai_config.get("api_key", "")
    if key and key != config.API_KEY_PLACEHOLDER:
        openai_config["api_key"] = f"{key[:3]}...{key[-4:]}" if len(key) > 8 else "***"
    return current


@settings_bp.get("/")
def get_settings():
    """Return current configuration with default values merged."""
    current_config = _masked(config.load_config())
    logger.debug("Settings retrieved with defaults merged")
    return jsonify({
        "config": current_config,
        "meta": {
            "models": sorted(config.MODEL_PRICING),
            "pricing": config.MODEL_PRICING,
            "styles": sorted(STYLE_PRESETS) + [CUSTOM_STYLE],
            "log_modes": list(LOG_MODES),
            "languages": get_all_language_codes(),
        },
    })


@settings_bp.put("/")
def update_settings():
    """Update system configuration."""
    data = request.get_json(silent=True)
    if not data or "config" not in data:
        return jsonify({"error": "Request body must contain 'config'"}), 400

    new_config = data["config"]
    validation_error = validate_config(new_config)
    if validation_error:
        return jsonify({"error": validation_error}), 400

    current_config = config.load_config()
    for section in EDITABLE_SECTIONS:
        if section in new_config:
            updates = dict(new_config[section])
            # A masked key echoed back from GET must not overwrite the real one
            if section == "openai" and "..." in str(updates.get("api_key", "")):
                updates.pop("api_key")
            current_config[section].update(updates)
    if "log_mode" in new_config:
        current_config["log_mode"] = new_config["log_mode"]

    config.save_config(current_config)
    refresh_log_mode(current_config.get("log_mode", "off"))
    logger.info("Settings updated")
    return jsonify({"config": _masked(current_config)})


@settings_bp.post("/factory-reset")
def reset_settings():
    """Delete saved sessions and settings, then recreate the defaults."""
    config.factory_reset()
    return jsonify({"config": _masked(config.load_config())})


def validate_config(new_config: Any) -> Optional[str]:
    """Return an error message for an invalid settings payload, or None."""
    if not isinstance(new_config, dict):
        return "Config must be an object"
    for section in EDITABLE_SECTIONS:
        if section in new_config and not isinstance(new_config[section], dict):
            return f"Section '{section}' must be an object"

    if "log_mode" in new_config and new_config["log_mode"] not in LOG_MODES:
        return f"log_mode must be one of {', '.join(LOG_MODES)}"

    translation = new_config.get("translation", {})
    model = translation.get("model")
    if model is not None and model not in config.MODEL_PRICING:
        return f"Unsupported model '{model}'"
    for key in ("source_language", "target_language"):
        if key in translation and not is_valid_language_code(translation[key]):
            return f"Unknown language code '{translation[key]}'"
    style = translation.get("style")
    if style is not None and style != CUSTOM_STYLE and style not in STYLE_PRESETS:
        return f"Unknown style '{style}'"
    if "chunk_size" in translation:
        try:
            if int(translation["chunk_size"]) <= 0:
                return "chunk_size must be positive"
        except (TypeError, ValueError):
            return "chunk_size must be an integer"

    openai_config = new_config.get("openai", {})
    if "max_retries" in openai_config:
        try:
            if int(openai_config["max_retries"]) < 1:
                return "max_retries must be at least 1"
        except (TypeError, ValueError):
            return "max_retries must be an integer"

    pipeline = new_config.get("pipeline", {})
    if "checkpoint_every" in pipeline:
        try:
            if int(pipeline["checkpoint_every"]) < 1:
                return "checkpoint_every must be at least 1"
        except (TypeError, ValueError):
            return "checkpoint_every must be an integer"
    if "pause_poll_interval" in pipeline:
        try:
            if float(pipeline["pause_poll_interval"]) <= 0:
                return "pause_poll_interval must be positive"
        except (TypeError, ValueError):
            return "pause_poll_interval must be a number"
    return None
