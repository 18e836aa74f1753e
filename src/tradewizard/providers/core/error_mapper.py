"""Domain concept for mapping provider exceptions to HTTP responses."""
import asyncio
from dataclasses import dataclass

import httpx
from fastapi import HTTPException
from pydantic import ValidationError

from tradewizard.providers.core.exceptions import (CircuitOpenError,
                                                   RateLimitExceededError,
                                                   UpstreamResponseError)


@dataclass(frozen=True)
class ProviderErrorMapper:
    """Maps provider/backend exceptions to HTTP (status_code, detail).

    Inject this into services to centralize error-to-HTTP mapping with the
    resource and upstream API names used in messages.
    """

    resource_name: str = "Resource"
    api_name: str = "API"

    def _not_found(self, symbol: str | None) -> str:
        if symbol is None:
            return f"{self.resource_name} not found"
        return f"{self.resource_name} '{symbol}' not found"

    def to_http(
        self,
        exc: Exception,
        symbol: str | None = None,
    ) -> tuple[int, str]:
        """Map a provider exception to (status_code, detail) for HTTP responses.

        Args:
            exc: The exception raised by the provider or service.
            symbol: Optional identifier to include in detail (e.g. a market slug).

        Returns:
            (status_code, detail) suitable for HTTPException(status_code=..., detail=...).
        """
        if isinstance(exc, ValidationError):
            return (502, f"Invalid {self.api_name} response")
        if isinstance(exc, ValueError):
            detail = str(exc) or self._not_found(None)
            if symbol is not None and "not found" in detail.lower():
                detail = self._not_found(symbol)
            return (404, detail)
        if isinstance(exc, RateLimitExceededError):
            return (429, f"{self.api_name} rate limit exceeded")
        if isinstance(exc, CircuitOpenError):
            return (503, f"{self.api_name} temporarily unavailable")
        if isinstance(exc, UpstreamResponseError):
            return (502, f"Invalid {self.api_name} response")
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            if status == 404:
                return (404, self._not_found(symbol))
            if status >= 500:
                return (502, f"{self.api_name} error")
            return (status, f"{self.api_name} error")
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
            detail = "Request timed out"
            if symbol is not None:
                detail = f"Request to {self.api_name} timed out for '{symbol}'"
            return (504, detail)
        if isinstance(exc, httpx.TransportError):
            return (502, f"{self.api_name} unreachable")
        if isinstance(exc, (KeyError, TypeError)):
            return (404, self._not_found(symbol))
        return (500, "Internal server error")

    def raise_http(
        self,
        exc: Exception,
        symbol: str | None = None,
    ) -> None:
        """Map provider exception to HTTP and raise HTTPException. Never returns."""
        status_code, detail = self.to_http(exc, symbol=symbol)
        raise HTTPException(status_code=status_code, detail=detail) from exc
