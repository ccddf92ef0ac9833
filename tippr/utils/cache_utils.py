"""
Cache utilities for Tippr
Caches rendered league standings and drops them whenever the engine writes
"""

import functools

from flask import current_app

from tippr import cache


def standings_cache_key(league_id):
    return f"standings_league_{league_id}"


def cached_standings(f):
    """
    Decorator for functions ``f(league_id)`` that build a standings payload.

    The timeout comes from ``STANDINGS_CACHE_TIMEOUT``. A payload of ``None``
    is never cached.
    """

    @functools.wraps(f)
    def wrapped(league_id, *args, **kwargs):
        cache_key = standings_cache_key(league_id)

        result = cache.get(cache_key)
        if result is not None:
            current_app.logger.debug(f"Cache hit for key: {cache_key}")
            return result

        result = f(league_id, *args, **kwargs)
        if result is not None:
            timeout = current_app.config.get("STANDINGS_CACHE_TIMEOUT", 120)
            cache.set(cache_key, result, timeout=timeout)
            current_app.logger.debug(f"Cache set for key: {cache_key}")

        return result

    return wrapped


def invalidate_league_standings(league_ids):
    """
    Drop cached standings for every league in ``league_ids``.

    Called after a commit, so a cache backend failure is logged and never
    undoes a write that already happened.
    """
    for league_id in league_ids:
        cache_key = standings_cache_key(league_id)
        try:
            cache.delete(cache_key)
        except Exception as e:
            current_app.logger.error(f"Failed to invalidate {cache_key}: {e}")

