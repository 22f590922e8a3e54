"""
Quality Guard

Heuristic check that a translation came back in the target language.
It counts distinct marker words strongly associated with the source and
target languages. The verdict is advisory metadata, not a guarantee.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from translation_machine.language_codes import extract_base_language
from translation_machine.logger import get_logger

logger = get_logger(__name__)

# Source marker count must exceed this before a result is suspect
SUSPECT_THRESHOLD = 2
LOW_CONFIDENCE_PERCENT = 70.0

LANGUAGE_MARKERS: Dict[str, List[str]] = {
    "pt": ["que", "para", "com", "uma", "como", "mais", "por", "não", "dos", "da",
           "de", "do", "ser", "ter", "este", "essa", "fazer", "dizer", "muito", "sobre"],
    "en": ["the", "and", "for", "are", "with", "this", "that", "from", "they", "have",
           "will", "would", "could", "should", "there", "their", "these", "those", "when", "where"],
    "es": ["que", "para", "con", "una", "como", "más", "por", "los", "las", "del",
           "pero", "esta", "este", "muy", "sobre", "también", "hacer", "cuando", "donde", "porque"],
    "fr": ["les", "des", "une", "est", "pour", "avec", "dans", "que", "qui", "pas",
           "sur", "mais", "ont", "cette", "aux", "sont", "nous", "vous", "très", "aussi"],
    "de": ["der", "die", "das", "und", "ist", "nicht", "mit", "sich", "auf", "für",
           "ein", "eine", "auch", "dem", "den", "wird", "werden", "oder", "aber", "wenn"],
}


class Verdict(str, Enum):
    ACCEPT = "accept"
    SUSPECT = "suspect"


@dataclass(frozen=True)
class Assessment:
    """Outcome of a quality check."""

    verdict: Verdict
    source_hits: List[str] = field(default_factory=list)
    target_hits: List[str] = field(default_factory=list)

    @property
    def is_suspect(self) -> bool:
        return self.verdict is Verdict.SUSPECT

    @property
    def confidence(self) -> Optional[float]:
        """Share of target markers among all markers found, in percent."""
        total = len(self.source_hits) + len(self.target_hits)
        if total == 0:
            return None
        return len(self.target_hits) / total * 100


def _matches(text: str, words: List[str]) -> List[str]:
    return [w for w in words if re.search(rf"\b{re.escape(w)}\b", text)]


def assess(text: str, target_language: str, source_language: str,
           threshold: int = SUSPECT_THRESHOLD) -> Assessment:
    """
    Decide whether a translation looks like it is still in the source language.

    Languages without a marker list, or identical source and target,
    always produce an ACCEPT verdict.
    """
    source = extract_base_language(source_language or "")
    target = extract_base_language(target_language or "")
    source_words = LANGUAGE_MARKERS.get(source)
    target_words = LANGUAGE_MARKERS.get(target, [])
    if not source_words or source == target:
        return Assessment(Verdict.ACCEPT)

    lowered = (text or "").lower()
    # Words shared by both lists say nothing about which language won
    shared = set(source_words) & set(target_words)
    source_hits = _matches(lowered, [w for w in source_words if w not in shared])
    target_hits = _matches(lowered, [w for w in target_words if w not in shared])

    if len(source_hits) > len(target_hits) and len(source_hits) > threshold:
        logger.warning(f"Translation looks like {source}: markers {source_hits}")
        return Assessment(Verdict.SUSPECT, source_hits, target_hits)

    assessment = Assessment(Verdict.ACCEPT, source_hits, target_hits)
    confidence = assessment.confidence
    if confidence is not None and confidence < LOW_CONFIDENCE_PERCENT:
        logger.warning(f"Translation confidence is low ({confidence:.1f}%), result may mix languages")
    return assessment
