from __future__ import annotations

import json
import logging
import socket
from abc import ABC, abstractmethod
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from quote_dashboard.errors import (
    ProviderDataError,
    ProviderEmptyResponse,
    ProviderRateLimited,
    ProviderUnavailable,
)
from quote_dashboard.schemas.quote import Quote

logger = logging.getLogger(__name__)

USER_AGENT = "quote-dashboard/1.0"


class QuoteProvider(ABC):
    name: str = "provider"
    supports_batch: bool = False

    def __init__(self, base_url: str, timeout_seconds: float = 8.0):
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    def fetch_quote(self, symbol: str) -> Quote:
        raise NotImplementedError

    @abstractmethod
    def fetch_quotes(self, symbols: list[str]) -> list[Quote]:
        raise NotImplementedError

    def _get_text(self, params: dict[str, Any]) -> str:
        url = f"{self.base_url}?{urlencode(params, safe=',')}"
        request = Request(url, headers={"User-Agent": USER_AGENT, "Accept": "application/json"})
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                return response.read().decode("utf-8")
        except HTTPError as exc:
            if exc.code == 429:
                raise ProviderRateLimited(f"{self.name} HTTP 429") from exc
            raise ProviderUnavailable(f"{self.name} HTTP {exc.code}") from exc
        except (URLError, socket.timeout, TimeoutError, ConnectionError) as exc:
            raise ProviderUnavailable(f"{self.name} unreachable: {exc}") from exc

    def _get_json(self, params: dict[str, Any]) -> dict[str, Any]:
        body = self._get_text(params)
        if body is None or not body.strip():
            raise ProviderEmptyResponse(f"empty response from {self.name}")
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise ProviderDataError(f"{self.name} returned non-JSON body") from exc
        if not isinstance(payload, dict):
            raise ProviderDataError(f"{self.name} returned unexpected JSON type")
        return payload
