"""Paginated GIF search session backing the picker."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from .klipy import Gif, GifProvider, GifProviderError, parse_gifs

logger = logging.getLogger(__name__)

ContentFilterSource = Callable[[], Awaitable[str]]


class GifSearch:
    """Trending or search results with append-on-scroll pagination.

    An empty query shows a single trending page. A search starts at page 1 and
    ``load_more`` appends the next page until a page comes back empty or a
    request fails; after that only a new ``search`` re-enables paging. The
    content filter is looked up again for every request.
    """

    def __init__(self, provider: GifProvider, content_filter: ContentFilterSource) -> None:
        self._provider = provider
        self._content_filter = content_filter
        self._generation = 0
        self.query = ""
        self.page = 0
        self.gifs: List[Gif] = []
        self.can_load_more = False
        self.loading = False
        self.error: Optional[Exception] = None

    async def search(self, query: str = "") -> List[Gif]:
        self._generation += 1
        generation = self._generation
        self.query = (query or "").strip()
        self.page = 1
        self.can_load_more = False
        self.error = None
        self.loading = True
        try:
            payload = await self._fetch(self.query, 1)
        except GifProviderError as exc:
            if generation != self._generation:
                return []
            logger.error("Error fetching gifs: %s", exc)
            self.gifs = []
            self.error = exc
            return []
        finally:
            if generation == self._generation:
                self.loading = False
        if generation != self._generation:
            logger.debug("Dropping superseded results for %r", query)
            return []
        self.gifs = parse_gifs(payload)
        self.can_load_more = bool(self.query) and bool(self.gifs)
        return list(self.gifs)

    async def load_more(self) -> List[Gif]:
        if not self.can_load_more or self.loading:
            return []
        generation = self._generation
        next_page = self.page + 1
        self.loading = True
        try:
            payload = await self._fetch(self.query, next_page)
        except GifProviderError as exc:
            if generation != self._generation:
                return []
            logger.error("Error fetching gifs page %s: %s", next_page, exc)
            self.error = exc
            self.can_load_more = False
            return []
        finally:
            if generation == self._generation:
                self.loading = False
        if generation != self._generation:
            logger.debug("Dropping page %s of a superseded search", next_page)
            return []
        page_gifs = parse_gifs(payload)
        if not page_gifs:
            logger.debug("No more GIFs for %r after page %s", self.query, self.page)
            self.can_load_more = False
            return []
        self.page = next_page
        known = {gif.id for gif in self.gifs}
        added = [gif for gif in page_gifs if gif.id not in known]
        self.gifs.extend(added)
        return added

    async def _fetch(self, query: str, page: int):
        level = await self._content_filter()
        return await self._provider.fetch(query, level, page)
