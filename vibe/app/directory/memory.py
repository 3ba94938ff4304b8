"""In-process directory that pushes every change to subscribers."""
from __future__ import annotations

import copy
from typing import Dict, List, Optional

from .base import CHATROOMS, Directory, Document, Query, messages_path


class MemoryDirectory(Directory):
    """Dictionary-backed directory; every create, update and delete is broadcast inline."""

    def __init__(self) -> None:
        super().__init__()
        self._collections: Dict[str, Dict[str, Document]] = {}

    async def _fetch(self, path: str, document_id: str) -> Optional[Document]:
        document = self._collections.get(path, {}).get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def _select(self, query: Query) -> List[Document]:
        documents = [copy.deepcopy(item) for item in self._collections.get(query.path, {}).values()]
        return query.apply(documents)

    async def _insert(self, path: str, document: Document) -> Document:
        self._collections.setdefault(path, {})[document["id"]] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def _replace(self, path: str, document_id: str, document: Document) -> Document:
        self._collections.setdefault(path, {})[document_id] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def _remove(self, path: str, document_id: str) -> None:
        self._collections.get(path, {}).pop(document_id, None)
        if path == CHATROOMS:
            self._collections.pop(messages_path(document_id), None)
