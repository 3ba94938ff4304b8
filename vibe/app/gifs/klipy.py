"""HTTP client helpers for the Klipy GIF API."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, Union

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class GifProviderError(Exception):
    """Network, HTTP or payload failure while talking to the GIF provider.

    When the provider answered with an error status and a JSON body, that body
    and status are kept on ``payload`` and ``status_code``.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class Gif:
    id: str
    title: str
    preview_url: str
    url: str


class GifProvider(Protocol):
    async def fetch(self, query: str, content_filter: str, page: int) -> Dict[str, Any]:
        ...


class KlipyClient:
    """Call Klipy directly with the API key embedded in the URL path.

    ``customer_id`` is a fixed id or a callable returning the current user id;
    searches send it so the provider can personalize results.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        per_page: Optional[int] = None,
        timeout: Optional[float] = None,
        customer_id: Union[str, Callable[[], Optional[str]], None] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = settings.KLIPY_API_KEY if api_key is None else api_key
        self.base_url = base_url or settings.KLIPY_BASE_URL
        self.per_page = per_page or settings.KLIPY_PER_PAGE
        self.timeout = timeout or settings.KLIPY_TIMEOUT
        self.customer_id = customer_id
        self._transport = transport

    def request_for(self, query: str, content_filter: str, page: int) -> Tuple[str, Dict[str, Any]]:
        """Return the endpoint path and query parameters for a search or trending call."""

        if query:
            params: Dict[str, Any] = {
                "q": query,
                "content_filter": content_filter,
                "per_page": self.per_page,
                "page": page,
            }
            customer_id = self.customer_id() if callable(self.customer_id) else self.customer_id
            if customer_id:
                params["customer_id"] = customer_id
            return f"/{self.api_key}/gifs/search", params
        return f"/{self.api_key}/gifs/trending", {"per_page": self.per_page}

    async def fetch(self, query: str, content_filter: str = "off", page: int = 1) -> Dict[str, Any]:
        if not self.api_key:
            raise GifProviderError("Klipy API key is not configured")
        path, params = self.request_for(query, content_filter, page)
        kind = "search" if query else "trending"
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.get(path, params=params)
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as exc:
                logger.warning("Klipy %s request failed: %s", kind, exc)
                raise GifProviderError(
                    str(exc), status_code=exc.response.status_code, payload=_json_or_none(exc.response)
                ) from exc
            except httpx.HTTPError as exc:
                logger.warning("Klipy %s request failed: %s", kind, exc)
                raise GifProviderError(str(exc)) from exc
            except ValueError as exc:
                logger.warning("Klipy %s returned invalid JSON: %s", kind, exc)
                raise GifProviderError("invalid JSON from provider") from exc
        logger.info("Fetched %s GIFs page=%s filter=%s", kind, page, content_filter)
        return payload


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


async def fetch_gifs(query: str, content_filter: str = "off", page: int = 1) -> Dict[str, Any]:
    """Fetch a raw provider page using the server-side key from settings."""

    return await KlipyClient().fetch(query, content_filter, page)


def _rendition(files: Dict[str, Any], size: str) -> Optional[str]:
    return ((files.get(size) or {}).get("gif") or {}).get("url")


def parse_gifs(payload: Any) -> List[Gif]:
    """Extract GIFs from a provider payload; malformed payloads yield no results."""

    if not isinstance(payload, dict) or not payload.get("result"):
        return []
    data = payload.get("data")
    items = data.get("data") if isinstance(data, dict) else None
    if not isinstance(items, list):
        return []
    gifs = []
    for item in items:
        if not isinstance(item, dict):
            continue
        files = item.get("file") or {}
        url = _rendition(files, "md")
        if not url:
            continue
        preview = _rendition(files, "xs") or _rendition(files, "sm") or url
        gif_id = str(item.get("id") or item.get("slug") or url)
        gifs.append(Gif(id=gif_id, title=item.get("title") or "", preview_url=preview, url=url))
    return gifs
