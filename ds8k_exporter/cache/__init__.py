"""
Caches shared between scrapes.
"""

from ds8k_exporter.cache.token_cache import TOKEN_CACHE, TokenCache

__all__ = ["TOKEN_CACHE", "TokenCache"]
