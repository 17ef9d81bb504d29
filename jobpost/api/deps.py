from __future__ import annotations

from functools import lru_cache

from jobpost.ai.factory import get_completion_client
from jobpost.ai.types import CompletionClient
from jobpost.core.cache import TTLCache
from jobpost.core.config import settings
from jobpost.core.fingerprint_store import FingerprintStore, SqliteFingerprintStore
from jobpost.schemas.scoring import ScoreReport


@lru_cache(maxsize=1)
def completion_client() -> CompletionClient:
    return get_completion_client()


@lru_cache(maxsize=1)
def fingerprint_store() -> FingerprintStore:
    return SqliteFingerprintStore(settings.fingerprint_db_path)


@lru_cache(maxsize=1)
def score_cache() -> TTLCache[ScoreReport]:
    return TTLCache(max_entries=settings.score_cache_max_entries, ttl_s=settings.score_cache_ttl_s)
