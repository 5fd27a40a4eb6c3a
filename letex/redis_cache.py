import os
from typing import Optional

import redis

from letex.cache import cache_key, decode, encode
from letex.models import GeneratedSimulation

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "0"))  # 0 = never expire

# Lazy connection; nothing touches the network until the first command
_redis = redis.from_url(REDIS_URL, decode_responses=True)


def _key(prompt: str, mode: str, chain: str) -> str:
    return f"sim:{cache_key(prompt, mode, chain)}"


def get(prompt: str, mode: str, chain: str) -> Optional[GeneratedSimulation]:
    k = _key(prompt, mode, chain)
    raw = _redis.get(k)
    if not raw:
        return None
    sim = decode(raw)
    if sim is None:
        _redis.delete(k)
    return sim


def set(prompt: str, mode: str, chain: str, sim: GeneratedSimulation) -> None:
    k = _key(prompt, mode, chain)
    raw = encode(sim)
    if CACHE_TTL_SECONDS > 0:
        _redis.setex(k, CACHE_TTL_SECONDS, raw)
    else:
        _redis.set(k, raw)
