"""
Slide Interaction Analytics - Calculator
Entry point for dashboards: holds one snapshot of the raw log collection and
serves stats, judging groups, slide summaries and selector bindings from it.
"""

import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd

from backend.bindings import SelectorBindingStore
from backend.cache import JsonFileStore
from backend.config import Settings, load_settings
from backend.index import InteractionIndex, attempts_frame, build_index
from backend.judging import JudgingGroup, judging_groups
from backend.parser import Attempt
from backend.stats import StatsResult, compute_stats
from backend.summary import SlideSummary, build_slide_summaries, empty_summary

logger = logging.getLogger(__name__)


class SlideAnalytics:
    """
    Computes analytics for one module/submodule from a list of student records.
    The index and slide summaries are built once on first use; the collection
    must not be mutated while this object is in use.
    """

    def __init__(
        self,
        collection: List[Dict],
        module_id: str = "m",
        submodule_id: str = "s",
        settings: Optional[Settings] = None,
        bindings: Optional[SelectorBindingStore] = None,
    ):
        self.collection = collection or []
        self.module_id = module_id
        self.submodule_id = submodule_id
        self.settings = settings or Settings()
        self.bindings = bindings or SelectorBindingStore()
        self._index: Optional[InteractionIndex] = None
        self._summaries: Optional[Dict[str, SlideSummary]] = None
        self._stats: Dict[Tuple[str, str], StatsResult] = {}

    @classmethod
    def from_config(cls, collection: List[Dict], module_id: str = "m", submodule_id: str = "s",
                    config_path: Optional[str] = None) -> "SlideAnalytics":
        """Settings from YAML; bindings persisted to the configured JSON file."""
        settings = load_settings(config_path)
        bindings = SelectorBindingStore(JsonFileStore(settings.bindings_path))
        return cls(collection, module_id, submodule_id, settings=settings, bindings=bindings)

    @property
    def index(self) -> InteractionIndex:
        if self._index is None:
            self._index = build_index(self.collection)
            logger.info(f"Built interaction index: {len(self._index)} slides from {len(self.collection)} students")
        return self._index

    @property
    def summaries(self) -> Dict[str, SlideSummary]:
        if self._summaries is None:
            self._summaries = build_slide_summaries(self.collection)
        return self._summaries

    def frame(self) -> pd.DataFrame:
        return attempts_frame(self.index)

    # ─────────────────────────────────────────────
    # INTERACTIONS
    # ─────────────────────────────────────────────

    def interaction_ids_for_slide(self, slide_id: str) -> List[str]:
        return list(self.index.get(slide_id, {}).keys())

    def attempts(self, slide_id: str, interaction_id: str) -> List[Attempt]:
        return self.index.get(slide_id, {}).get(interaction_id, [])

    def get_stats(self, slide_id: str, interaction_id: str) -> StatsResult:
        key = (slide_id, interaction_id)
        if key not in self._stats:
            self._stats[key] = compute_stats(
                self.attempts(slide_id, interaction_id),
                top_n=self.settings.top_n,
                rt_bucket_ms=self.settings.rt_bucket_ms,
            )
        return self._stats[key]

    def is_judging(self, slide_id: str, interaction_id: str) -> bool:
        return self.get_stats(slide_id, interaction_id).is_judging

    def get_judging_groups(self, slide_id: str, interaction_id: str) -> List[JudgingGroup]:
        return judging_groups(
            self.index, slide_id, interaction_id,
            untitled=self.settings.untitled_question,
            top_n=self.settings.top_n,
            rt_bucket_ms=self.settings.rt_bucket_ms,
        )

    # ─────────────────────────────────────────────
    # SLIDES
    # ─────────────────────────────────────────────

    def get_slide_summary(self, slide_id: str) -> SlideSummary:
        return self.summaries.get(slide_id) or empty_summary()

    # ─────────────────────────────────────────────
    # SELECTOR BINDINGS
    # ─────────────────────────────────────────────

    def get_bound_interaction(self, slide_id: str, selector: str) -> Optional[str]:
        return self.bindings.get(self.module_id, self.submodule_id, slide_id, selector)

    def bind_selector(self, slide_id: str, selector: str, interaction_id: str) -> None:
        self.bindings.set(self.module_id, self.submodule_id, slide_id, selector, interaction_id)
