from __future__ import annotations

from typing import Optional


class DataServiceError(Exception):
    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class NetworkError(DataServiceError):
    def __init__(self, message: str = "Network connection failed", code: str = "NETWORK_ERROR") -> None:
        super().__init__(message, code)


class FetchTimeoutError(DataServiceError):
    def __init__(self, message: str = "Request timeout") -> None:
        super().__init__(message, "TIMEOUT_ERROR")


class ValidationError(DataServiceError):
    def __init__(self, message: str = "Data validation failed") -> None:
        super().__init__(message, "VALIDATION_ERROR")
