"""
Dashboard view models.
Turns SlideAnalytics output into plain dicts ready for charting
(value / details / chart_data), without any rendering.
"""

import math
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from backend.calculator import SlideAnalytics
from backend.judging import JudgingGroup, accuracy_by_attempt, cumulative_at_least, sort_by_timestamp
from backend.parser import Attempt, is_number
from backend.stats import display_string, round_half_up

logger = logging.getLogger(__name__)


DEFAULT_MCQ_OPTIONS = ["A", "B", "C", "D"]
MIN_BINS = 4
MAX_BINS = 10


def render_value(value: Any) -> str:
    return display_string(value)


def is_matching_value(value: Any) -> bool:
    """A matching answer is a list of {key, value} pairs."""
    return isinstance(value, list) and all(
        isinstance(item, dict) and "key" in item and "value" in item for item in value
    )


def option_letter(i: int) -> str:
    return chr(65 + (i % 26))


# ─────────────────────────────────────────────
# DISTRIBUTIONS
# ─────────────────────────────────────────────

def numeric_buckets(values: Sequence[Any]) -> List[Tuple[str, int]]:
    """
    Equal-width histogram using Sturges' rule (bins = ceil(log2 n) + 1),
    clamped to 4..10 bins. Labels are rounded edges "a–b".
    """
    nums = [v for v in values if is_number(v) and math.isfinite(v)]
    if not nums:
        return []
    lo, hi = min(nums), max(nums)
    if lo == hi:
        return [(str(round_half_up(lo)), len(nums))]
    bins = max(MIN_BINS, min(MAX_BINS, math.ceil(math.log2(len(nums))) + 1))
    counts, edges = np.histogram(nums, bins=bins, range=(lo, hi))
    return [
        (f"{round_half_up(edges[i])}–{round_half_up(edges[i + 1])}", int(counts[i]))
        for i in range(bins)
    ]


def discrete_pairs(values: Sequence[Any]) -> List[Tuple[str, int]]:
    counts: Dict[str, int] = {}
    for v in values:
        key = display_string(v)
        counts[key] = counts.get(key, 0) + 1
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def option_chart(group: JudgingGroup, default_mcq_options: Sequence[str] = DEFAULT_MCQ_OPTIONS) -> Optional[Dict]:
    """
    Option counts in declared order with letter labels (A, B, ...); values that
    are not declared options are appended under their own label.
    """
    if group.option_distribution is None:
        return None
    options = [display_string(o) for o in group.declared_options]
    if not options and group.question_type == "mcq":
        options = list(default_mcq_options)
    dist = group.option_distribution

    if options:
        pairs = [(option_letter(i), dist.get(o, 0)) for i, o in enumerate(options)]
        pairs += [(k, v) for k, v in dist.items() if k not in options]
        legend = {option_letter(i): o for i, o in enumerate(options)}
    else:
        pairs = list(dist.items())
        legend = {}
    return {
        "value": sum(v for _, v in pairs),
        "details": f"{len(pairs)} options",
        "chart_data": {"x": [k for k, _ in pairs], "y": [v for _, v in pairs]},
        "legend": legend,
    }


# ─────────────────────────────────────────────
# STUDENTS
# ─────────────────────────────────────────────

def student_label(student_id: str, student_details: Optional[Dict[str, Dict]] = None) -> str:
    d = (student_details or {}).get(student_id)
    if not d:
        return student_id
    full_name = f"{d.get('firstName') or ''} {d.get('lastName') or ''}".strip()
    return d.get("name") or full_name or d.get("email") or student_id


def student_attempts(entries: Sequence[Attempt], student_details: Optional[Dict[str, Dict]] = None) -> List[Dict]:
    """Attempts grouped per student, each list in time order, students by label."""
    by_student: Dict[str, List[Attempt]] = {}
    for e in entries:
        by_student.setdefault(e.student_id, []).append(e)

    rows = []
    for student_id, attempts in by_student.items():
        rows.append({
            "student_id": student_id,
            "label": student_label(student_id, student_details),
            "attempts": [
                {
                    "attempt": i + 1,
                    "is_correct": a.is_correct,
                    "matching": a.value if is_matching_value(a.value) else None,
                    "display": render_value(a.value) if a.has_value else "",
                }
                for i, a in enumerate(sort_by_timestamp(attempts))
            ],
        })
    return sorted(rows, key=lambda r: r["label"].casefold())


# ─────────────────────────────────────────────
# SLIDE / INTERACTION VIEWS
# ─────────────────────────────────────────────

def ordered_interaction_ids(analytics: SlideAnalytics, slide_id: str) -> List[str]:
    """Sorted interaction ids, judging interactions first."""
    ids = sorted(analytics.interaction_ids_for_slide(slide_id))
    return sorted(ids, key=lambda i: 0 if analytics.is_judging(slide_id, i) else 1)


def slide_header(analytics: SlideAnalytics, slide_id: str, slide_title: Optional[str] = None) -> Dict:
    summary = analytics.get_slide_summary(slide_id)
    avg_ms = summary.time_spent.avg
    avg_sec = round_half_up(avg_ms / 1000) if avg_ms is not None else None
    n_interactions = len(analytics.interaction_ids_for_slide(slide_id))
    return {
        "title": slide_title or summary.slide_title or slide_id,
        "participants": summary.participants,
        "avg_time_sec": avg_sec,
        "interactions": n_interactions,
        "details": (
            f"{summary.participants} participants, "
            f"avg {avg_sec if avg_sec is not None else '-'}s, "
            f"{n_interactions} interactions"
        ),
    }


def judging_view(group: JudgingGroup, default_mcq_options: Sequence[str] = DEFAULT_MCQ_OPTIONS) -> Dict:
    first_question = group.entries[0].question if group.entries else None
    matching = None
    if group.question_type == "matching" and first_question is not None:
        matching = {
            "items": list(first_question.matching_left or []),
            "categories": list(first_question.matching_right or []),
        }
    cumulative = cumulative_at_least(group.attempts_histogram)
    accuracy = accuracy_by_attempt(group.entries)
    return {
        "question": group.question_text,
        "value": group.stats.accuracy_pct,
        "details": f"Accuracy: {group.stats.accuracy_pct if group.stats.accuracy_pct is not None else '-'}% "
                   f"- Attempts: {group.stats.count}",
        "options": option_chart(group, default_mcq_options),
        "numeric_distribution": group.numeric_distribution,
        "matching": matching,
        "chart_data": {
            "attempts": {"x": list(cumulative.keys()), "y": list(cumulative.values())},
            "accuracy": {"x": list(accuracy.keys()), "y": list(accuracy.values())},
        },
    }


def learning_view(analytics: SlideAnalytics, slide_id: str, interaction_id: str) -> Dict:
    """Value distribution for an interaction without correctness."""
    entries = analytics.attempts(slide_id, interaction_id)
    values = [e.value for e in entries if e.has_value]
    numeric = bool(values) and all(is_number(v) for v in values)
    pairs = numeric_buckets(values) if numeric else discrete_pairs(values)
    return {
        "value": analytics.get_stats(slide_id, interaction_id).count,
        "details": f"{interaction_id} (Learning)",
        "chart_data": {"x": [k for k, _ in pairs], "y": [v for _, v in pairs]},
    }


def slide_report(analytics: SlideAnalytics, slide_id: str,
                 default_mcq_options: Optional[Sequence[str]] = None) -> Dict:
    """Everything the slide analytics view shows, judging interactions first."""
    default_mcq_options = default_mcq_options or analytics.settings.default_mcq_options
    interactions = []
    for interaction_id in ordered_interaction_ids(analytics, slide_id):
        stats = analytics.get_stats(slide_id, interaction_id)
        if stats.is_judging:
            interactions.append({
                "interaction_id": interaction_id,
                "kind": "judging",
                "accuracy_pct": stats.accuracy_pct,
                "count": stats.count,
                "questions": [
                    judging_view(g, default_mcq_options)
                    for g in analytics.get_judging_groups(slide_id, interaction_id)
                ],
            })
        else:
            view = learning_view(analytics, slide_id, interaction_id)
            view.update({"interaction_id": interaction_id, "kind": "learning"})
            interactions.append(view)
    return {"header": slide_header(analytics, slide_id), "interactions": interactions}


def accuracy_table(analytics: SlideAnalytics) -> pd.DataFrame:
    """One row per judging interaction: slide, interaction, attempts, accuracy."""
    rows = []
    for slide_id, interactions in analytics.index.items():
        for interaction_id in interactions:
            stats = analytics.get_stats(slide_id, interaction_id)
            if stats.is_judging:
                rows.append({
                    "slide_id": slide_id,
                    "interaction_id": interaction_id,
                    "attempts": stats.count,
                    "correct": stats.correct,
                    "incorrect": stats.incorrect,
                    "accuracy_pct": stats.accuracy_pct,
                })
    columns = ["slide_id", "interaction_id", "attempts", "correct", "incorrect", "accuracy_pct"]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns).sort_values(["accuracy_pct", "slide_id"]).reset_index(drop=True)
