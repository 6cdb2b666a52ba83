import logging
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from fastapi_cache.decorator import cache

from core.config import settings

logger = logging.getLogger(__name__)

async def init_cache() -> None:
    """Initialize the in-memory response cache."""
    FastAPICache.init(
        backend=InMemoryBackend(),
        prefix=settings.cache["prefix"],
        key_builder=request_key_builder
    )
    logger.info("Cache initialized")

def request_key_builder(
    func: Callable,
    namespace: str = "",
    *,
    request: Optional[Request] = None,
    response: Optional[Response] = None,
    args: Tuple[Any, ...] = (),
    kwargs: Optional[Dict[str, Any]] = None
) -> str:
    """Key on path and query string only. Injected services never change the answer."""
    if request is None:
        return f"{namespace}:{func.__module__}.{func.__name__}"
    query = "&".join(f"{k}={v}" for k, v in sorted(request.query_params.items()))
    return f"{namespace}:{request.url.path}?{query}"

def cached(namespace: str, expire: Optional[int] = None):
    """Cache a static listing endpoint, unless caching is switched off."""
    def decorator(func):
        if not settings.cache["enabled"]:
            return func

        ttl = expire if expire is not None else settings.get_cache_ttl().get(namespace)
        return cache(expire=ttl, namespace=namespace, key_builder=request_key_builder)(func)

    return decorator
