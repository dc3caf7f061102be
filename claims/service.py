from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from claims.config import load_config
from claims.errors import DataServiceError, ValidationError
from claims.fetcher import FetchResult, RemoteFetcher
from claims.metrics_quality import compute_data_quality
from claims.records import PatientRecord, normalize_records
from claims.synthetic import fallback_dataset, synthetic_records

logger = logging.getLogger(__name__)

CACHE_KEY = "all_records"


@dataclass
class CacheEntry:
    records: List[PatientRecord]
    stored_at: float


class DataService:
    """Fetch -> normalize -> cache, exposing one stable record collection.

    A fresh remote result is cached under ``"all_records"`` for ``cache_ttl_seconds``.
    Fallback data is served but never cached, so the next call tries the source again.
    With ``fallback_on_error`` off, fetch and validation failures propagate instead.
    """

    def __init__(
        self,
        fetcher: RemoteFetcher,
        *,
        cache_ttl_seconds: float = 300.0,
        fallback_on_error: bool = True,
        mock_size: Optional[int] = None,
        expected_min_count: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fetcher = fetcher
        self.cache_ttl_seconds = cache_ttl_seconds
        self.fallback_on_error = fallback_on_error
        self.mock_size = mock_size
        self.expected_min_count = expected_min_count
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._inflight: Optional[asyncio.Future] = None
        self.degraded = False
        self.last_fetch: Optional[FetchResult] = None

    def _cached(self) -> Optional[List[PatientRecord]]:
        entry = self._cache.get(CACHE_KEY)
        if entry is None or self._clock() - entry.stored_at >= self.cache_ttl_seconds:
            return None
        return entry.records

    def _mock_records(self) -> List[PatientRecord]:
        return normalize_records(fallback_dataset(self.mock_size))

    def _top_up(self, records: List[PatientRecord]) -> int:
        # The fetcher pads raw rows; rows dropped by validation are made up here.
        target = self.expected_min_count
        if not target or len(records) >= target:
            return 0
        missing = target - len(records)
        logger.warning("degraded: %d valid records, expected at least %d; padding with %d synthetic records", len(records), target, missing)
        records.extend(normalize_records(synthetic_records(missing, start=len(records))))
        return missing

    async def _load(self) -> List[PatientRecord]:
        try:
            result = await self.fetcher.fetch_records()
            self.last_fetch = result
            records = normalize_records(result.records)
            if not records:
                raise ValidationError("No valid records received from source")
        except DataServiceError as exc:
            if not self.fallback_on_error:
                raise
            logger.warning("degraded: serving mock data after fetch failure: %s", exc)
            self.degraded = True
            return self._mock_records()

        topped_up = self._top_up(records)
        self.degraded = result.degraded or result.padded > 0 or topped_up > 0
        if not result.degraded:
            self._cache[CACHE_KEY] = CacheEntry(records=records, stored_at=self._clock())
        return records

    async def fetch_patient_records(self, use_cache: bool = True) -> List[PatientRecord]:
        if use_cache:
            cached = self._cached()
            if cached is not None:
                return list(cached)
        # Concurrent misses share one in-flight load.
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._load())
        records = await asyncio.shield(self._inflight)
        return list(records)

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        return {"size": len(self._cache), "items": list(self._cache.keys())}

    async def data_quality(self) -> Dict[str, Any]:
        return compute_data_quality(await self.fetch_patient_records())

    async def test_connection(self) -> bool:
        return await self.fetcher.ping()


@lru_cache(maxsize=1)
def get_data_service() -> DataService:
    config = load_config()
    return DataService(
        RemoteFetcher(config),
        cache_ttl_seconds=config.cache_ttl_seconds,
        fallback_on_error=config.fallback_on_failure,
        mock_size=config.expected_min_count,
        expected_min_count=config.expected_min_count,
    )
