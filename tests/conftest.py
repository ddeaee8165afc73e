# tests/conftest.py
import json

import pytest

from backend.calculator import SlideAnalytics


def response_value(selected, is_correct=None, response_time=None, nested_in_quiz=True):
    """JSON-encoded student response payload as the quiz widgets record it."""
    sr = {"selectedAnswer": selected}
    if is_correct is not None:
        sr["isCorrect"] = is_correct
    if response_time is not None:
        sr["responseTime"] = response_time
    payload = {"quiz": {"student_response": sr}} if nested_in_quiz else {"student_response": sr}
    return json.dumps(payload)


MCQ = {"type": "mcq", "question": "Which organelle performs photosynthesis?",
       "options": ["Chloroplast", "Mitochondrion", "Nucleus"]}
SLOPE = {"type": "integer", "question": "What is the slope of y = 3x + 2?"}


@pytest.fixture
def collection():
    return [
        {
            "studentId": "s1",
            "slides": {
                "slide-1": {
                    "slideTitle": "Photosynthesis",
                    "timeSpent": 10_000,
                    "interactions": {
                        "quiz-1": {
                            "0": {"value": response_value("Mitochondrion", False, 4_000), "timestamp": 200, "question": MCQ},
                            "1": {"value": response_value("Chloroplast", True, 2_000), "timestamp": 300, "question": MCQ},
                        },
                        "rating": {"value": 4},
                    },
                },
                "slide-2": {
                    "timeSpent": 5_000,
                    "interactions": {
                        "slope": [{"value": 3, "isCorrect": True, "timestamp": 50, "question": SLOPE}],
                    },
                },
            },
        },
        {
            "studentId": "s2",
            "slides": {
                "slide-1": {
                    "slideTitle": "Photosynthesis (v2)",
                    "timeSpent": 20_000,
                    "interactions": {
                        "quiz-1": [
                            {"value": response_value("Chloroplast", True, 6_400), "timestamp": 100, "question": MCQ},
                        ],
                        "rating": {"value": 2},
                        "notes": {"value": "{not json"},
                    },
                },
            },
        },
        {
            "studentId": "s3",
            "slides": {
                "slide-2": {
                    "interactions": {
                        "slope": {"0": {"value": 2, "isCorrect": False, "timestamp": 10, "question": SLOPE},
                                  "1": {"value": 3, "isCorrect": True, "timestamp": 20, "question": SLOPE}},
                    },
                },
            },
        },
    ]


@pytest.fixture
def analytics(collection):
    return SlideAnalytics(collection, module_id="biology", submodule_id="photosynthesis")
