"""Translation Machine: resumable chunked document translation."""

__version__ = "0.1.0"
