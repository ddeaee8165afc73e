"""
Slide Interaction Analytics - Index Builder
Builds the slide -> interaction -> attempts lookup from a raw log collection.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List

import pandas as pd

from backend.parser import Attempt, extract_attempts

logger = logging.getLogger(__name__)


InteractionIndex = Dict[str, Dict[str, List[Attempt]]]

FRAME_COLUMNS = [
    "slide_id", "interaction_id", "student_id", "value", "timestamp",
    "is_correct", "response_time_ms", "question_type", "question_text",
]


def student_slides(student: Any) -> Dict[str, Dict]:
    """The student's slide records, tolerating missing or null containers."""
    if not isinstance(student, dict):
        return {}
    slides = student.get("slides") or {}
    return slides if isinstance(slides, dict) else {}


def slide_interactions(slide: Any) -> Dict[str, Any]:
    if not isinstance(slide, dict):
        return {}
    interactions = slide.get("interactions") or {}
    return interactions if isinstance(interactions, dict) else {}


def build_index(collection: Iterable[Dict]) -> InteractionIndex:
    """
    Every attempt is stamped with its student id and appended to its
    (slide, interaction) bucket: students outer, extracted order inner.
    Repeated attempts are kept as separate entries.
    """
    by_slide: InteractionIndex = {}
    n_attempts = 0
    for student in collection or []:
        student_id = student.get("studentId", "") if isinstance(student, dict) else ""
        for slide_id, slide in student_slides(student).items():
            for interaction_id, node in slide_interactions(slide).items():
                attempts = [replace(a, student_id=student_id) for a in extract_attempts(node)]
                by_slide.setdefault(slide_id, {}).setdefault(interaction_id, []).extend(attempts)
                n_attempts += len(attempts)
    logger.debug(f"Indexed {n_attempts} attempts across {len(by_slide)} slides")
    return by_slide


def attempts_frame(index: InteractionIndex) -> pd.DataFrame:
    """One row per attempt, in index order."""
    rows = []
    for slide_id, interactions in index.items():
        for interaction_id, attempts in interactions.items():
            for a in attempts:
                rows.append({
                    "slide_id": slide_id,
                    "interaction_id": interaction_id,
                    "student_id": a.student_id,
                    "value": a.value if a.has_value else None,
                    "timestamp": a.timestamp,
                    "is_correct": a.is_correct,
                    "response_time_ms": a.response_time_ms,
                    "question_type": a.question_type,
                    "question_text": a.question_text,
                })
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
