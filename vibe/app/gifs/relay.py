"""Client for the GIF relay that injects the provider key server-side."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Union

import httpx

from ..core.config import settings
from .klipy import GifProviderError

logger = logging.getLogger(__name__)

TokenSource = Union[str, Callable[[], Optional[str]], None]


class RelayGifProvider:
    """POST ``{query, contentFilter, page}`` to the relay and return the provider JSON."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        token: TokenSource = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url or settings.GIF_RELAY_URL
        self.timeout = timeout or settings.KLIPY_TIMEOUT
        self._token = token
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        token = self._token() if callable(self._token) else self._token
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def fetch(self, query: str, content_filter: str = "off", page: int = 1) -> Dict[str, Any]:
        body = {"query": query, "contentFilter": content_filter, "page": page}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.url, json=body, headers=self._headers())
                payload = response.json()
            except httpx.HTTPError as exc:
                logger.warning("GIF relay request failed: %s", exc)
                raise GifProviderError(str(exc)) from exc
            except ValueError as exc:
                logger.warning("GIF relay returned invalid JSON: %s", exc)
                raise GifProviderError("invalid JSON from relay") from exc
        if response.status_code >= 400 or (isinstance(payload, dict) and "error" in payload):
            message = payload.get("error") if isinstance(payload, dict) else None
            detail = message or (payload.get("detail") if isinstance(payload, dict) else None)
            raise GifProviderError(str(detail or f"relay returned {response.status_code}"))
        return payload
