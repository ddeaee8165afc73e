"""
Slide Interaction Analytics - Attempt Extractor
Normalizes one raw interaction node (array-like or single payload, possibly
carrying a JSON-encoded student response) into flat Attempt values.
"""

import json
import re
import logging
from dataclasses import dataclass, field
from numbers import Number
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


_INDEX_KEY = re.compile(r"^\d+$")


class _Missing:
    """Marker for an attempt that carries no value at all (distinct from null)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@dataclass(frozen=True)
class QuestionMeta:
    type: Optional[str] = None
    question: Optional[str] = None
    options: Optional[Tuple[Any, ...]] = None
    matching_left: Optional[Tuple[Any, ...]] = None
    matching_right: Optional[Tuple[Any, ...]] = None
    raw: Dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict) -> "QuestionMeta":
        qtype = data.get("type")
        text = data.get("question")
        options = data.get("options")
        matching = data.get("matching") if isinstance(data.get("matching"), dict) else {}
        left = matching.get("left")
        right = matching.get("right")
        return cls(
            type=qtype if isinstance(qtype, str) else None,
            question=text if isinstance(text, str) else None,
            options=tuple(options) if isinstance(options, (list, tuple)) else None,
            matching_left=tuple(left) if isinstance(left, (list, tuple)) else None,
            matching_right=tuple(right) if isinstance(right, (list, tuple)) else None,
            raw=dict(data),
        )


@dataclass(frozen=True)
class Attempt:
    student_id: str = ""
    value: Any = MISSING
    timestamp: Optional[float] = None
    is_correct: Optional[bool] = None
    response_time_ms: Optional[float] = None
    question: Optional[QuestionMeta] = None

    @property
    def has_value(self) -> bool:
        return self.value is not MISSING

    @property
    def question_type(self) -> Optional[str]:
        return self.question.type if self.question else None

    @property
    def question_text(self) -> Optional[str]:
        return self.question.question if self.question else None


def is_number(value: Any) -> bool:
    """True for real numbers; bools are excluded on purpose."""
    return isinstance(value, Number) and not isinstance(value, bool)


def safe_parse_json(value: Any) -> Optional[Any]:
    """Parse a JSON string, returning None for non-strings and malformed input."""
    if not isinstance(value, str):
        return None
    try:
        return json.loads(value)
    except ValueError:
        logger.debug(f"Value is not JSON: {value[:40]!r}")
        return None


def as_array_like(node: Any) -> Optional[List[Any]]:
    """
    Return the node as an ordered list when it is a sequence, or a mapping
    whose keys are all stringified integers (ordered numerically).
    Returns None for anything else.
    """
    if isinstance(node, (list, tuple)):
        return list(node)
    if isinstance(node, dict) and node:
        keys = list(node.keys())
        if all(isinstance(k, str) and _INDEX_KEY.match(k) for k in keys):
            return [node[k] for k in sorted(keys, key=int)]
    return None


class AttemptParser:
    """Helpers to read fields from one raw attempt payload."""

    @staticmethod
    def is_correct(node: Any) -> Optional[bool]:
        if isinstance(node, dict) and isinstance(node.get("isCorrect"), bool):
            return node["isCorrect"]
        return None

    @staticmethod
    def timestamp(node: Any) -> Optional[float]:
        if isinstance(node, dict) and is_number(node.get("timestamp")):
            return node["timestamp"]
        return None

    @staticmethod
    def raw_value(node: Any) -> Any:
        """The node's `value` (an explicit null is kept), else the node itself."""
        if isinstance(node, dict) and "value" in node:
            return node["value"]
        return node

    @staticmethod
    def question(node: Any) -> Optional[QuestionMeta]:
        if isinstance(node, dict) and isinstance(node.get("question"), dict):
            return QuestionMeta.from_dict(node["question"])
        return None

    @staticmethod
    def student_response(raw_value: Any) -> Optional[Dict]:
        """Nested quiz.student_response / student_response object from a JSON value."""
        parsed = safe_parse_json(raw_value)
        if not isinstance(parsed, dict):
            return None
        quiz = parsed.get("quiz")
        if isinstance(quiz, dict) and isinstance(quiz.get("student_response"), dict):
            return quiz["student_response"]
        if isinstance(parsed.get("student_response"), dict):
            return parsed["student_response"]
        return None

    @staticmethod
    def parse(node: Any) -> Attempt:
        """
        Build an Attempt from one payload. Correctness and response time are
        resolved as nested student response first, top-level second.
        """
        raw_value = AttemptParser.raw_value(node)
        top_correct = AttemptParser.is_correct(node)
        response = AttemptParser.student_response(raw_value)

        if response is None:
            value = raw_value
            is_correct = top_correct
            response_time = None
        else:
            if response.get("selectedText") is not None:
                value = response["selectedText"]
            elif response.get("selectedAnswer") is not None:
                value = response["selectedAnswer"]
            else:
                value = raw_value
            nested_correct = response.get("isCorrect")
            is_correct = nested_correct if isinstance(nested_correct, bool) else top_correct
            rt = response.get("responseTime")
            response_time = rt if is_number(rt) else None

        return Attempt(
            value=value,
            timestamp=AttemptParser.timestamp(node),
            is_correct=is_correct,
            response_time_ms=response_time,
            question=AttemptParser.question(node),
        )

    @staticmethod
    def extract(interaction_node: Any) -> List[Attempt]:
        """Flatten an interaction node into Attempts (student id left blank)."""
        nodes = as_array_like(interaction_node)
        if nodes is None:
            nodes = [interaction_node]
        return [AttemptParser.parse(n) for n in nodes]


extract_attempts = AttemptParser.extract
