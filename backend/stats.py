"""
Slide Interaction Analytics - Statistics Engine
Computes a typed summary (value distribution, correctness, response time)
for a list of attempts.
"""

import json
import math
import logging
from collections import Counter
from dataclasses import dataclass, asdict
from statistics import mean
from typing import Any, Dict, List, Optional, Union

from backend.parser import Attempt, is_number

logger = logging.getLogger(__name__)


DEFAULT_TOP_N = 10
RT_BUCKET_MS = 1000


def round_half_up(x: float) -> Union[int, float]:
    """
    Round to the nearest integer, halves towards +infinity.
    NaN and infinities come back unchanged.
    """
    if not math.isfinite(x):
        return x
    return int(math.floor(x + 0.5))


def bucket_key(x: float) -> str:
    return display_string(round_half_up(x))


def display_string(value: Any) -> str:
    """Bucket label for an answer value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def _drop_none(d: Dict) -> Dict:
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class RtSummary:
    count: int
    min: float
    max: float
    avg: float
    histogram: Dict[str, int]

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class StatsResult:
    type: Optional[str] = "empty"
    count: int = 0
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None
    histogram: Optional[Dict[str, int]] = None
    true: Optional[int] = None
    false: Optional[int] = None
    top: Optional[List[Dict[str, Any]]] = None
    correct: Optional[int] = None
    incorrect: Optional[int] = None
    accuracy_pct: Optional[int] = None
    rt: Optional[RtSummary] = None

    @property
    def is_judging(self) -> bool:
        return self.accuracy_pct is not None

    def to_dict(self) -> Dict:
        out = _drop_none({k: v for k, v in self.__dict__.items() if k != "rt"})
        if self.rt is not None:
            out["rt"] = self.rt.to_dict()
        return out


def _bucket_counts(values: List[Any]) -> Dict[str, int]:
    # Counter keeps first-encounter order of keys
    return dict(Counter(display_string(v) for v in values))


def _top(buckets: Dict[str, int], top_n: int) -> List[Dict[str, Any]]:
    ranked = sorted(buckets.items(), key=lambda kv: kv[1], reverse=True)
    return [{"value": k, "freq": v} for k, v in ranked[:top_n]]


def _rt_summary(attempts: List[Attempt], bucket_ms: int) -> Optional[RtSummary]:
    rts = [a.response_time_ms for a in attempts if is_number(a.response_time_ms)]
    if not rts:
        return None
    hist: Dict[str, int] = {}
    for rt in rts:
        key = bucket_key(rt / bucket_ms)
        hist[key] = hist.get(key, 0) + 1
    return RtSummary(count=len(rts), min=min(rts), max=max(rts), avg=mean(rts), histogram=hist)


def compute_stats(attempts: List[Attempt], top_n: int = DEFAULT_TOP_N,
                  rt_bucket_ms: int = RT_BUCKET_MS) -> StatsResult:
    """
    Summarize attempts. Correctness and response-time parts are filled only
    when at least one attempt carries them; the value branch is picked from
    the first attempt that has a value.
    """
    result = StatsResult(type="empty", count=len(attempts))
    if not attempts:
        return result

    correct = sum(1 for a in attempts if a.is_correct is True)
    incorrect = sum(1 for a in attempts if a.is_correct is False)
    if correct + incorrect > 0:
        result.correct = correct
        result.incorrect = incorrect
        result.accuracy_pct = round_half_up(100 * correct / (correct + incorrect))

    result.rt = _rt_summary(attempts, rt_bucket_ms)

    values = [a.value for a in attempts if a.has_value]
    if not values:
        result.type = None
        return result

    sample = values[0]
    if is_number(sample) and all(is_number(v) for v in values):
        hist: Dict[str, int] = {}
        for v in values:
            key = bucket_key(v)
            hist[key] = hist.get(key, 0) + 1
        result.type = "number"
        result.min = min(values)
        result.max = max(values)
        result.avg = mean(values)
        result.histogram = hist
        return result

    if isinstance(sample, bool) and all(isinstance(v, bool) for v in values):
        n_true = sum(1 for v in values if v)
        result.type = "boolean"
        result.true = n_true
        result.false = len(values) - n_true
        return result

    buckets = _bucket_counts(values)
    if is_number(sample) or isinstance(sample, bool):
        logger.debug(f"Mixed value types across {len(values)} attempts")
        result.type = "mixed"
    else:
        result.type = "string"
    result.top = _top(buckets, top_n)
    result.histogram = buckets
    return result
