"""GIF search gateway: direct Klipy calls or the key-injecting relay."""
from .klipy import Gif, GifProvider, GifProviderError, KlipyClient, parse_gifs
from .relay import RelayGifProvider
from .search import GifSearch

__all__ = [
    "Gif",
    "GifProvider",
    "GifProviderError",
    "GifSearch",
    "KlipyClient",
    "RelayGifProvider",
    "parse_gifs",
]
