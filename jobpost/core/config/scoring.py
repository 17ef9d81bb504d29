from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from jobpost.core.config.settings import settings

DEFAULT_SCORING_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "scoring.yaml"
REQUIRED_SECTIONS = ("weights", "compensation", "scorers")


class ScoringConfigError(RuntimeError):
    def __init__(self, path: Path, message: str):
        super().__init__(f"Scoring config '{path}': {message}")
        self.path = path


def scoring_config_path() -> Path:
    if settings.scoring_config_path:
        return Path(settings.scoring_config_path)
    return DEFAULT_SCORING_CONFIG_PATH


def load_scoring_config(path: Path) -> dict[str, Any]:
    """Read and check one rubric file. Weights, ladders and neutral scores all live here."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScoringConfigError(path, f"cannot be read ({exc})") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ScoringConfigError(path, f"invalid YAML ({exc})") from exc

    if not isinstance(parsed, dict):
        raise ScoringConfigError(path, "expected a top-level mapping")
    missing = [section for section in REQUIRED_SECTIONS if not isinstance(parsed.get(section), dict)]
    if missing:
        raise ScoringConfigError(path, f"missing sections: {', '.join(missing)}")
    return parsed


@lru_cache(maxsize=1)
def get_scoring_config() -> dict[str, Any]:
    return load_scoring_config(scoring_config_path())


def reset_scoring_config() -> None:
    get_scoring_config.cache_clear()


def get_scoring_value(path: str, default: Any = None) -> Any:
    """Dot-path lookup, e.g. 'scorers.recency.fresh_days'."""
    if not path:
        return default

    current: Any = get_scoring_config()
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def get_category_weights() -> dict[str, int]:
    raw = get_scoring_value("weights", {}) or {}
    weights = {str(key): int(value) for key, value in raw.items()}
    total = sum(weights.values())
    if total != 100:
        raise ValueError(f"Invalid scoring config: category weights sum to {total}, expected 100.")
    return weights
