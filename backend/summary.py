"""
Slide Interaction Analytics - Slide Summary Builder
Participation counts and time-on-slide statistics per slide.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from backend.index import student_slides, slide_interactions
from backend.parser import is_number

logger = logging.getLogger(__name__)


@dataclass
class TimeSpent:
    count: int = 0
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def add(self, x: float) -> None:
        """Fold one measurement in with a running average."""
        self.count += 1
        self.min = x if self.min is None else min(self.min, x)
        self.max = x if self.max is None else max(self.max, x)
        self.avg = ((self.avg or 0) * (self.count - 1) + x) / self.count

    def to_dict(self) -> Dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class SlideSummary:
    participants: int = 0
    time_spent: TimeSpent = field(default_factory=TimeSpent)
    interaction_ids: List[str] = field(default_factory=list)
    slide_title: Optional[str] = None

    def to_dict(self) -> Dict:
        out = {
            "participants": self.participants,
            "time_spent": self.time_spent.to_dict(),
            "interaction_ids": list(self.interaction_ids),
        }
        if self.slide_title is not None:
            out["slide_title"] = self.slide_title
        return out


def empty_summary() -> SlideSummary:
    return SlideSummary()


def build_slide_summaries(collection: Iterable[Dict]) -> Dict[str, SlideSummary]:
    """Each student record counts once as a participant of every slide it carries."""
    summaries: Dict[str, SlideSummary] = {}
    for student in collection or []:
        for slide_id, slide in student_slides(student).items():
            summary = summaries.setdefault(slide_id, SlideSummary())
            summary.participants += 1

            for interaction_id in slide_interactions(slide):
                if interaction_id not in summary.interaction_ids:
                    summary.interaction_ids.append(interaction_id)

            if not isinstance(slide, dict):
                continue
            if is_number(slide.get("timeSpent")):
                summary.time_spent.add(slide["timeSpent"])
            title = slide.get("slideTitle")
            if not summary.slide_title and isinstance(title, str) and title:
                summary.slide_title = title
    logger.debug(f"Summarized {len(summaries)} slides")
    return summaries
