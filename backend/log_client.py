"""
Interaction log sources
─────────────────────────────────────────────────────────────────────────────
The content platform's data layer owns the raw logs; these helpers only pull
a collection snapshot into memory:

  1. REST endpoint, paged envelope:
       GET {endpoint}/interactions?moduleId=..&submoduleId=..&skip=N&limit=N
       Response: { "data": [...], "paging": { "limit", "skip", "count" } }
     A bare JSON list is accepted as a single page.

  2. JSON file: a list of student records, or an envelope with "data".

  3. Mock: deterministic synthetic collection for demos and tests.

Auth: Bearer token or Basic Auth
"""

from __future__ import annotations

import json
import os
import logging
import random
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 200
DEFAULT_TIMEOUT = 60
MAX_STUDENTS = 20_000
RATE_LIMIT_SLEEP = 0.1


def _unwrap(body: Union[Dict, List]) -> List[Dict]:
    """Student records from an envelope or a bare list."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, list):
            return data
    return []


def load_collection(path: Union[str, Path]) -> List[Dict]:
    with open(path, "r", encoding="utf-8") as f:
        body = json.load(f)
    records = _unwrap(body)
    logger.info(f"Loaded {len(records)} student records from {path}")
    return records


class InteractionLogClient:
    """HTTP client for the platform's interaction log endpoint."""

    def __init__(
        self,
        endpoint: str,
        username: str = "",
        password: str = "",
        token: str = "",
        timeout: int = DEFAULT_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_retries: int = 3,
        rate_limit_sleep: float = RATE_LIMIT_SLEEP,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.username = username or os.getenv("ANALYTICS_USERNAME", "")
        self.password = password or os.getenv("ANALYTICS_PASSWORD", "")
        self.token = token or os.getenv("ANALYTICS_TOKEN", "")
        self.timeout = timeout
        self.page_size = page_size
        self.rate_limit_sleep = rate_limit_sleep

        self.session = requests.Session()
        retry = Retry(
            total=max_retries,
            backoff_factor=1.0,
            status_forcelist=[429, 500, 502, 503, 504],
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({"Accept": "application/json"})
        if self.token:
            self.session.headers["Authorization"] = f"Bearer {self.token}"
        elif self.username:
            self.session.auth = (self.username, self.password)

    def _url(self) -> str:
        if self.endpoint.endswith("interactions"):
            return self.endpoint
        return self.endpoint + "/interactions"

    def get_collection(
        self,
        module_id: Optional[str] = None,
        submodule_id: Optional[str] = None,
        max_students: int = MAX_STUDENTS,
        progress_cb: Optional[Callable[[int, int], None]] = None,
    ) -> List[Dict]:
        """Fetch every student record page by page."""
        url = self._url()
        params: Dict[str, Union[str, int]] = {"limit": self.page_size}
        if module_id:
            params["moduleId"] = module_id
        if submodule_id:
            params["submoduleId"] = submodule_id
        logger.info(f"Fetching interaction logs from {url} (module={module_id}, submodule={submodule_id})")

        records: List[Dict] = []
        skip = 0
        while True:
            resp = self.session.get(url, params={**params, "skip": skip}, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
            page = _unwrap(body)
            records.extend(page)

            total = None
            if isinstance(body, dict):
                total = (body.get("paging") or {}).get("count")
            if progress_cb:
                progress_cb(len(records), total or len(records))

            if isinstance(body, list) or len(page) < self.page_size:
                break
            if total is not None and len(records) >= total:
                break
            if max_students and len(records) >= max_students:
                logger.warning(f"Stopped at {len(records)} records (max_students={max_students})")
                break
            skip += len(page)
            time.sleep(self.rate_limit_sleep)

        logger.info(f"Fetched {len(records)} student records")
        return records[:max_students] if max_students else records

    def ping(self) -> bool:
        try:
            resp = self.session.get(self._url(), params={"limit": 1, "skip": 0}, timeout=10)
            return resp.status_code in (200, 400)
        except requests.RequestException as e:
            logger.warning(f"Ping failed: {e}")
            return False


class MockInteractionLogClient(InteractionLogClient):
    """Synthetic logs shaped like the real endpoint's records."""

    QUESTIONS = [
        ("q-photosynthesis", "mcq", "Which organelle performs photosynthesis?",
         ["Chloroplast", "Mitochondrion", "Nucleus", "Ribosome"], "Chloroplast"),
        ("q-slope", "integer", "What is the slope of y = 3x + 2?", None, 3),
        ("q-units", "multiselect", "Which are SI base units?",
         ["metre", "second", "litre", "kelvin"], ["metre", "second", "kelvin"]),
    ]

    def __init__(self, seed: int = 7, n_students: int = 30):
        super().__init__("mock://local", timeout=5, rate_limit_sleep=0)
        self.seed = seed
        self.n_students = n_students

    def ping(self) -> bool:
        return True

    def _attempt(self, rng: random.Random, question, ts: int) -> Dict:
        _, qtype, text, options, answer = question
        if qtype == "mcq":
            chosen = answer if rng.random() > 0.35 else rng.choice(options)
        elif qtype == "integer":
            chosen = answer if rng.random() > 0.4 else rng.randint(-2, 6)
        else:
            chosen = sorted(rng.sample(options, rng.randint(1, len(options))))
        is_correct = chosen == answer if qtype != "multiselect" else sorted(chosen) == sorted(answer)
        payload = {
            "quiz": {
                "student_response": {
                    "selectedAnswer": chosen,
                    "isCorrect": is_correct,
                    "responseTime": rng.randint(1500, 45000),
                }
            }
        }
        question_meta = {"type": qtype, "question": text}
        if options:
            question_meta["options"] = options
        return {"value": json.dumps(payload), "timestamp": ts, "question": question_meta}

    def get_collection(self, module_id=None, submodule_id=None, max_students=MAX_STUDENTS,
                       progress_cb=None, **kw) -> List[Dict]:
        rng = random.Random(self.seed)
        base_ts = 1_700_000_000_000
        records = []
        for i in range(min(self.n_students, max_students or self.n_students)):
            slides: Dict[str, Dict] = {}
            for s, question in enumerate(self.QUESTIONS, start=1):
                if rng.random() < 0.15:
                    continue
                n_attempts = rng.choice([1, 1, 1, 2, 2, 3])
                attempts = {
                    str(k): self._attempt(rng, question, base_ts + i * 60_000 + k * 5_000)
                    for k in range(n_attempts)
                }
                slides[f"slide-{s}"] = {
                    "slideTitle": f"Slide {s}",
                    "timeSpent": rng.randint(5_000, 180_000),
                    "interactions": {
                        question[0]: attempts,
                        "confidence": {"value": rng.randint(1, 5)},
                    },
                }
            records.append({"studentId": f"student-{i:03d}", "slides": slides})
        if progress_cb:
            progress_cb(len(records), len(records))
        logger.info(f"Generated {len(records)} mock student records")
        return records
