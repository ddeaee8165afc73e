"""
Slide Interaction Analytics - Judging Grouper
Splits a quiz interaction's attempts by the literal question asked and
computes per-question stats, option/numeric distributions and
attempt-ordinal accuracy.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from backend.index import InteractionIndex
from backend.parser import Attempt
from backend.stats import StatsResult, compute_stats, display_string, round_half_up, DEFAULT_TOP_N, RT_BUCKET_MS

logger = logging.getLogger(__name__)


UNTITLED_QUESTION = "Untitled question"
OPTION_TYPES = ("mcq", "multiselect")
NUMERIC_TYPES = ("integer",)


@dataclass
class JudgingGroup:
    interaction_id: str
    question_text: str
    entries: List[Attempt]
    stats: StatsResult
    attempts_histogram: Dict[str, int] = field(default_factory=dict)
    option_distribution: Optional[Dict[str, int]] = None
    numeric_distribution: Optional[Dict[str, int]] = None

    @property
    def question_type(self) -> Optional[str]:
        return question_type(self.entries)

    @property
    def declared_options(self) -> List[Any]:
        first = self.entries[0] if self.entries else None
        if first is None or first.question is None or not first.question.options:
            return []
        return list(first.question.options)


def group_by_question(attempts: Sequence[Attempt], untitled: str = UNTITLED_QUESTION) -> Dict[str, List[Attempt]]:
    groups: Dict[str, List[Attempt]] = {}
    for a in attempts:
        text = a.question_text if isinstance(a.question_text, str) else untitled
        groups.setdefault(text, []).append(a)
    return groups


def sort_by_timestamp(attempts: Sequence[Attempt]) -> List[Attempt]:
    """Stable sort; a missing timestamp sorts as 0."""
    return sorted(attempts, key=lambda a: a.timestamp or 0)


def question_type(attempts: Sequence[Attempt]) -> Optional[str]:
    """Declared type of the first attempt that carries one."""
    for a in attempts:
        if a.question_type:
            return a.question_type
    return None


def option_distribution(attempts: Sequence[Attempt], options: Optional[Sequence[Any]] = None) -> Dict[str, int]:
    """
    Count selected options. Declared options come first with zero counts;
    values outside them are appended in encounter order.
    """
    dist: Dict[str, int] = {display_string(o): 0 for o in options or []}
    for a in attempts:
        if not a.has_value:
            continue
        selected = a.value if isinstance(a.value, (list, tuple)) else [a.value]
        for o in selected:
            key = display_string(o)
            dist[key] = dist.get(key, 0) + 1
    return dist


def attempts_by_student(attempts: Sequence[Attempt]) -> Dict[str, List[Attempt]]:
    by_student: Dict[str, List[Attempt]] = {}
    for a in attempts:
        by_student.setdefault(a.student_id, []).append(a)
    return by_student


def attempts_histogram(attempts: Sequence[Attempt]) -> Dict[str, int]:
    """number of attempts a student made -> number of students"""
    hist: Dict[str, int] = {}
    for entries in attempts_by_student(attempts).values():
        key = str(len(entries))
        hist[key] = hist.get(key, 0) + 1
    return hist


def accuracy_by_attempt(attempts: Sequence[Attempt]) -> Dict[str, int]:
    """
    Accuracy (%) of each student's i-th attempt, 1-based, among students whose
    i-th attempt was judged. Ordinals with no judged attempt are left out.
    """
    per_ordinal: List[List[int]] = []
    for entries in attempts_by_student(attempts).values():
        for idx, a in enumerate(sort_by_timestamp(entries)):
            if len(per_ordinal) <= idx:
                per_ordinal.append([0, 0])
            if a.is_correct is None:
                continue
            per_ordinal[idx][1] += 1
            if a.is_correct:
                per_ordinal[idx][0] += 1
    return {
        str(idx + 1): round_half_up(100 * correct / total)
        for idx, (correct, total) in enumerate(per_ordinal)
        if total > 0
    }


def cumulative_at_least(histogram: Dict[str, int]) -> Dict[str, int]:
    """Turn an exact attempts histogram into 'at least N attempts' counts for N = 1..max."""
    exact: Dict[int, int] = {}
    for k, v in histogram.items():
        try:
            exact[int(k)] = v
        except (TypeError, ValueError):
            continue
    max_k = max(exact, default=0)
    return {
        str(n): sum(v for k, v in exact.items() if k >= n)
        for n in range(1, max_k + 1)
    }


def build_group(interaction_id: str, question_text: str, attempts: Sequence[Attempt],
                top_n: int = DEFAULT_TOP_N, rt_bucket_ms: int = RT_BUCKET_MS) -> JudgingGroup:
    entries = sort_by_timestamp(attempts)
    stats = compute_stats(entries, top_n=top_n, rt_bucket_ms=rt_bucket_ms)
    group = JudgingGroup(
        interaction_id=interaction_id,
        question_text=question_text,
        entries=entries,
        stats=stats,
        attempts_histogram=attempts_histogram(entries),
    )
    qtype = question_type(entries)
    if qtype in OPTION_TYPES:
        group.option_distribution = option_distribution(entries, group.declared_options)
    elif qtype in NUMERIC_TYPES:
        group.numeric_distribution = stats.histogram
    return group


def judging_groups(index: InteractionIndex, slide_id: str, interaction_id: str,
                   untitled: str = UNTITLED_QUESTION, top_n: int = DEFAULT_TOP_N,
                   rt_bucket_ms: int = RT_BUCKET_MS) -> List[JudgingGroup]:
    """One JudgingGroup per distinct question text asked under the interaction."""
    attempts = index.get(slide_id, {}).get(interaction_id, [])
    groups = [
        build_group(interaction_id, text, entries, top_n=top_n, rt_bucket_ms=rt_bucket_ms)
        for text, entries in group_by_question(attempts, untitled).items()
    ]
    logger.debug(f"{slide_id}/{interaction_id}: {len(groups)} question groups from {len(attempts)} attempts")
    return groups
