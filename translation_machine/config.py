import copy
import json
from typing import Dict, Any, Optional

from translation_machine.core import database as db
from translation_machine.core.schema import initialize_database
from translation_machine.logger import get_logger, refresh_log_mode

logger = get_logger(__name__)

# Pipeline policy constants
DEFAULT_CHUNK_SIZE_TOKENS = 4000  # Token budget per request, system prompt included
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_CHECKPOINT_EVERY = 3  # Write a checkpoint every N chunks
DEFAULT_PAUSE_POLL_INTERVAL = 0.1  # Seconds between pause-flag checks
DEFAULT_TEMPERATURE = 0.1

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
API_KEY_PLACEHOLDER = "YOUR_API_KEY_HERE"

# USD per 1K tokens
MODEL_PRICING = {
    "gpt-4o-mini": {"input": 0.000150, "output": 0.000600},
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
}

# Completion token ceilings per model
MODEL_OUTPUT_LIMITS = {
    "gpt-4o-mini": 16384,
    "gpt-4o": 16384,
    "gpt-4-turbo": 4096,
}
DEFAULT_OUTPUT_LIMIT = 4096
MIN_OUTPUT_TOKENS = 1000
OUTPUT_EXPANSION = 1.2  # Translations usually run 0.8-1.5x the source length

# Default configuration templates
DEFAULT_CONFIG = {
    "openai": {
        "api_key": API_KEY_PLACEHOLDER,
        "api_url": DEFAULT_API_URL,
        "timeout": 120,
        "max_retries": DEFAULT_MAX_ATTEMPTS,
    },
    "translation": {
        "model": "gpt-4o-mini",
        "style": "formal",
        "system_prompt": "",
        "source_language": "pt",
        "target_language": "en",
        "chunk_size": DEFAULT_CHUNK_SIZE_TOKENS,
        "temperature": DEFAULT_TEMPERATURE,
    },
    "pipeline": {
        "checkpoint_every": DEFAULT_CHECKPOINT_EVERY,
        "pause_poll_interval": DEFAULT_PAUSE_POLL_INTERVAL,
    },
    "log_mode": "off"
}


def initialize_app():
    """Create the database and seed the default settings on first run or after a reset."""
    logger.info("Preparing translation database and settings")

    initialize_database()
    logger.debug(f"Database ready at {db.DB_FILE}")

    try:
        existing_config = db.get_app_config('config')
        if not existing_config:
            logger.info("Seeding default settings")
            save_config(DEFAULT_CONFIG)
        else:
            logger.debug("Stored settings found")
    except Exception as e:
        logger.error(f"Could not seed settings: {e}")
        logger.warning("Falling back to built-in defaults for this run")

    refresh_log_mode(load_config().get('log_mode', 'off'))
    logger.info("Settings ready")


def _merge_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Fill sections missing from a stored config with defaults."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in config.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def load_config() -> Dict[str, Any]:
    """Stored settings merged over DEFAULT_CONFIG; defaults when nothing usable is stored."""
    try:
        config_json = db.get_app_config('config')
        if config_json:
            logger.debug("Settings loaded")
            return _merge_defaults(json.loads(config_json))
        logger.info("No config in database, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)
    except json.JSONDecodeError as e:
        logger.error(f"Stored settings are not valid JSON: {e}")
        logger.warning("Using default settings")
        return copy.deepcopy(DEFAULT_CONFIG)
    except Exception as e:
        logger.error(f"Could not read stored settings: {e}")
        logger.warning("Using default settings")
        return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any]):
    """Persist the whole settings document."""
    try:
        config_json = json.dumps(config, ensure_ascii=False)
        db.set_app_config('config', config_json)
        logger.info("Settings saved")
    except Exception as e:
        logger.error(f"Could not save settings: {e}")
        raise


def get_model_pricing(model: str) -> Optional[Dict[str, float]]:
    """Per-1K-token prices for a model, or None when the model is unknown."""
    return MODEL_PRICING.get(model)


def get_output_limit(model: str) -> int:
    """Completion token ceiling for a model."""
    return MODEL_OUTPUT_LIMITS.get(model, DEFAULT_OUTPUT_LIMIT)


def factory_reset():
    """
    Drop the database and start over with default settings.
    WARNING: This will delete all saved checkpoints and settings.
    """
    logger.warning("Factory reset: removing saved sessions and settings")

    if db.DB_FILE.exists():
        db.DB_FILE.unlink()
        logger.info(f"Removed {db.DB_FILE}")

    initialize_app()
    logger.info("Factory reset complete")
