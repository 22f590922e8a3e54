"""Route blueprints for the web application."""

from .jobs import jobs_bp
from .checkpoints import checkpoints_bp
from .settings import settings_bp

__all__ = [
    "jobs_bp",
    "checkpoints_bp",
    "settings_bp",
]
