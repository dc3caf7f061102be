from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

DEFAULT_SCRIPT_URL = "https://script.google.com/macros/s/claims-dashboard/exec"
DEFAULT_PROXY_URL = "http://localhost:3000/api/proxy"

_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class SourceConfig:
    script_url: str = DEFAULT_SCRIPT_URL
    proxy_url: str = DEFAULT_PROXY_URL
    use_proxy: bool = False
    timeout_seconds: float = 10.0
    max_retries: int = 3
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 10.0
    use_fallback_data: bool = False
    fallback_on_failure: bool = True
    expected_min_count: Optional[int] = None
    cache_ttl_seconds: float = 300.0
    query_action: Optional[str] = None
    query_limit: Optional[int] = None
    query_sheet: Optional[str] = None
    query_range: Optional[str] = None

    @property
    def request_url(self) -> str:
        return self.proxy_url if self.use_proxy else self.script_url

    def query_params(self, action: Optional[str] = None) -> Dict[str, str]:
        params = {
            "action": action or self.query_action,
            "limit": self.query_limit,
            "sheet": self.query_sheet,
            "range": self.query_range,
        }
        return {k: str(v) for k, v in params.items() if v not in (None, "")}


def _env_str(env: Mapping[str, str], key: str, default: Optional[str]) -> Optional[str]:
    value = env.get(key)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = (env.get(key) or "").strip().lower()
    if value in _TRUE_TOKENS:
        return True
    if value in _FALSE_TOKENS:
        return False
    return default


def _env_float(env: Mapping[str, str], key: str, default: float, *, minimum: float = 0.0) -> float:
    try:
        value = float(env[key])
    except Exception:
        return default
    return max(minimum, value)


def _env_int(env: Mapping[str, str], key: str, default: Optional[int], *, minimum: int = 0) -> Optional[int]:
    try:
        value = int(env[key])
    except Exception:
        return default
    return max(minimum, value)


def load_config(env: Optional[Mapping[str, str]] = None) -> SourceConfig:
    """Build a SourceConfig from ``CLAIMS_*`` environment variables.

    Unset or unparseable values keep their defaults.
    """
    env = os.environ if env is None else env
    return SourceConfig(
        script_url=_env_str(env, "CLAIMS_SCRIPT_URL", DEFAULT_SCRIPT_URL),
        proxy_url=_env_str(env, "CLAIMS_PROXY_URL", DEFAULT_PROXY_URL),
        use_proxy=_env_bool(env, "CLAIMS_USE_PROXY", False),
        timeout_seconds=_env_float(env, "CLAIMS_TIMEOUT_SECONDS", 10.0, minimum=0.1),
        max_retries=_env_int(env, "CLAIMS_MAX_RETRIES", 3, minimum=1),
        backoff_base_seconds=_env_float(env, "CLAIMS_BACKOFF_BASE_SECONDS", 1.0),
        backoff_max_seconds=_env_float(env, "CLAIMS_BACKOFF_MAX_SECONDS", 10.0),
        use_fallback_data=_env_bool(env, "CLAIMS_USE_FALLBACK_DATA", False),
        fallback_on_failure=_env_bool(env, "CLAIMS_FALLBACK_ON_FAILURE", True),
        expected_min_count=_env_int(env, "CLAIMS_EXPECTED_MIN_COUNT", None),
        cache_ttl_seconds=_env_float(env, "CLAIMS_CACHE_TTL_SECONDS", 300.0),
        query_action=_env_str(env, "CLAIMS_QUERY_ACTION", None),
        query_limit=_env_int(env, "CLAIMS_QUERY_LIMIT", None, minimum=1),
        query_sheet=_env_str(env, "CLAIMS_QUERY_SHEET", None),
        query_range=_env_str(env, "CLAIMS_QUERY_RANGE", None),
    )
