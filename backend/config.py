"""
Settings loader: config/analytics.yaml plus environment overrides.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = ROOT / "config" / "analytics.yaml"


@dataclass
class Settings:
    top_n: int = 10
    rt_bucket_ms: int = 1000
    untitled_question: str = "Untitled question"
    default_mcq_options: List[str] = field(default_factory=lambda: ["A", "B", "C", "D"])
    bindings_path: str = ".analytics/bindings.json"
    log_endpoint: str = ""
    page_size: int = 200
    timeout: int = 60


def _section(raw: Dict, name: str) -> Dict:
    value = raw.get(name) or {}
    return value if isinstance(value, dict) else {}


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Read settings from `path`, $ANALYTICS_CONFIG or the bundled file.
    A missing default file yields defaults; an explicit path must exist and parse.
    """
    explicit = path is not None or bool(os.getenv("ANALYTICS_CONFIG"))
    config_path = Path(path or os.getenv("ANALYTICS_CONFIG") or DEFAULT_CONFIG_PATH)

    raw: Dict = {}
    if config_path.exists():
        with open(config_path, "r") as f:
            raw = yaml.safe_load(f) or {}
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        logger.info(f"No config at {config_path}, using defaults")

    defaults = Settings()
    stats = _section(raw, "stats")
    judging = _section(raw, "judging")
    bindings = _section(raw, "bindings")
    source = _section(raw, "log_source")

    settings = Settings(
        top_n=int(stats.get("top_n", defaults.top_n)),
        rt_bucket_ms=int(stats.get("rt_bucket_ms", defaults.rt_bucket_ms)),
        untitled_question=str(judging.get("untitled_question", defaults.untitled_question)),
        default_mcq_options=list(judging.get("default_mcq_options", defaults.default_mcq_options)),
        bindings_path=str(bindings.get("path", defaults.bindings_path)),
        log_endpoint=str(source.get("endpoint") or defaults.log_endpoint),
        page_size=int(source.get("page_size", defaults.page_size)),
        timeout=int(source.get("timeout", defaults.timeout)),
    )
    settings.log_endpoint = os.getenv("ANALYTICS_ENDPOINT", settings.log_endpoint)
    settings.bindings_path = os.getenv("ANALYTICS_BINDINGS_PATH", settings.bindings_path)
    return settings
