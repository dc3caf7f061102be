from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from claims.config import SourceConfig
from claims.errors import DataServiceError, FetchTimeoutError, NetworkError
from claims.synthetic import fallback_dataset, synthetic_records

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class FetchResult:
    records: List[Dict[str, Any]] = field(default_factory=list)
    attempts: int = 0
    degraded: bool = False
    source: str = "remote"
    padded: int = 0
    error: Optional[str] = None


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Delay after failed attempt ``attempt`` (1-based): base, 2*base, 4*base ... capped."""
    return min(base * (2 ** (attempt - 1)), cap)


def extract_records(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        if payload.get("success") is False and "data" not in payload:
            raise DataServiceError(str(payload.get("error") or payload.get("message") or "Source reported failure"), "BAD_PAYLOAD")
        payload = payload.get("data")
    if not isinstance(payload, list):
        raise DataServiceError("Unexpected payload shape, expected a list or {'data': [...]}", "BAD_PAYLOAD")
    return [row for row in payload if isinstance(row, dict)]


class RemoteFetcher:
    """Pulls the raw record collection from the spreadsheet API.

    Attempts are sequential; each has its own timeout, and failed attempts wait an
    exponential backoff before the next one. Once retries are exhausted the fetcher
    serves deterministic fallback rows (``degraded=True``) instead of raising, unless
    ``fallback_on_failure`` is off.
    """

    def __init__(
        self,
        config: SourceConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
        anchor: Optional[date] = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._sleep = sleep
        self._anchor = anchor

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_seconds),
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _get(self, client: httpx.AsyncClient, params: Dict[str, str]) -> Any:
        try:
            response = await client.get(self.config.request_url, params=params)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Request timed out after {self.config.timeout_seconds}s") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Request failed: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise NetworkError(f"Invalid source URL: {exc}", code="INVALID_URL") from exc

        if response.is_error:
            raise NetworkError(f"HTTP {response.status_code}: {response.reason_phrase}", code=f"HTTP_{response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise DataServiceError("Response body is not valid JSON", "BAD_PAYLOAD") from exc
        return payload

    async def _attempt(self, client: httpx.AsyncClient, params: Dict[str, str]) -> List[Dict[str, Any]]:
        return extract_records(await self._get(client, params))

    def _fallback(self, *, attempts: int, error: Optional[str], source: str, degraded: bool) -> FetchResult:
        rows = fallback_dataset(self.config.expected_min_count, anchor=self._anchor)
        return FetchResult(records=rows, attempts=attempts, degraded=degraded, source=source, error=error)

    def _pad(self, result: FetchResult) -> FetchResult:
        target = self.config.expected_min_count
        if not target or len(result.records) >= target:
            return result
        missing = target - len(result.records)
        logger.warning(
            "degraded: source returned %d records, expected at least %d; padding with %d synthetic records",
            len(result.records),
            target,
            missing,
        )
        result.records = result.records + synthetic_records(missing, start=len(result.records), anchor=self._anchor)
        result.padded = missing
        return result

    async def fetch_records(self, *, action: Optional[str] = None, max_attempts: Optional[int] = None) -> FetchResult:
        if self.config.use_fallback_data:
            logger.info("Using fallback data (development mode)")
            return self._fallback(attempts=0, error=None, source="development", degraded=False)

        retries = max(1, max_attempts or self.config.max_retries)
        params = self.config.query_params(action)
        last_error: Optional[DataServiceError] = None

        async with self._client() as client:
            for attempt in range(1, retries + 1):
                try:
                    records = await self._attempt(client, params)
                    return self._pad(FetchResult(records=records, attempts=attempt))
                except DataServiceError as exc:
                    last_error = exc
                    logger.warning("Attempt %d/%d failed: %s", attempt, retries, exc)
                    if attempt == retries:
                        break
                    await self._sleep(backoff_delay(attempt, self.config.backoff_base_seconds, self.config.backoff_max_seconds))

        if not self.config.fallback_on_failure:
            raise last_error or NetworkError("Request failed after retries")
        logger.warning("degraded: serving fallback data after %d failed attempts", retries)
        return self._fallback(attempts=retries, error=str(last_error) if last_error else None, source="fallback", degraded=True)

    async def ping(self) -> bool:
        if self.config.use_fallback_data:
            return False
        try:
            async with self._client() as client:
                await self._get(client, self.config.query_params("ping"))
            return True
        except DataServiceError as exc:
            logger.warning("Connection test failed: %s", exc)
            return False
