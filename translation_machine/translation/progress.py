"""
Translation Progress Data Class

Contains the ProgressEvent dataclass emitted after each chunk attempt.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ProgressEvent:
    """Progress information for an ongoing translation job."""
    job_id: str
    cursor: int
    total_chunks: int
    tokens_used: int
    cost_so_far: float
    last_chunk_outcome: str           # "success", "suspect", "failed", "too_large"
    chunk_index: Optional[int] = None
    phase: str = "translating"        # "translating", "retrying", "completed", "paused", "stopped"
    success_count: int = 0
    failure_count: int = 0

    @property
    def percent(self) -> float:
        if not self.total_chunks:
            return 0.0
        return self.cursor / self.total_chunks * 100

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["percent"] = round(self.percent, 1)
        return payload
