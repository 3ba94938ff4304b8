"""Local theme preference persisted as a single key in a JSON file."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, List

from .config import settings

logger = logging.getLogger(__name__)

THEME_KEY = "app_theme"
THEMES = ("light", "dark")


class ThemeStore:
    """Read and write the ``app_theme`` key of the local preference file."""

    def __init__(self, path: str | Path | None = None, *, default: str | None = None) -> None:
        self.path = Path(path or settings.THEME_STORE_PATH).expanduser()
        self.default = default or settings.DEFAULT_THEME

    def load(self) -> str:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return self.default
        except (OSError, ValueError) as exc:
            logger.error("Failed to load theme from %s: %s", self.path, exc)
            return self.default
        theme = data.get(THEME_KEY) if isinstance(data, dict) else None
        return theme if theme in THEMES else self.default

    def save(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme {theme!r}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({THEME_KEY: theme}), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save theme to %s: %s", self.path, exc)


class ThemePreference:
    """Process-wide theme state, loaded once at startup and saved on every toggle."""

    def __init__(self, store: ThemeStore) -> None:
        self._store = store
        self._theme = store.default
        self._listeners: List[Callable[[str], None]] = []

    @property
    def theme(self) -> str:
        return self._theme

    @property
    def is_dark(self) -> bool:
        return self._theme == "dark"

    def load(self) -> str:
        self._theme = self._store.load()
        return self._theme

    def listen(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register ``callback`` for theme changes; returns a function removing it."""

        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def set(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme {theme!r}")
        if theme == self._theme:
            return
        self._theme = theme
        self._store.save(theme)
        for listener in list(self._listeners):
            listener(theme)

    def toggle(self) -> str:
        self.set("light" if self._theme == "dark" else "dark")
        return self._theme
