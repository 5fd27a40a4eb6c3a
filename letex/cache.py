import os, json, hashlib, time, logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from letex.models import GeneratedSimulation

log = logging.getLogger(__name__)

CACHE_DIR = Path(os.getenv("CACHE_DIR", "cache/simulations"))
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "0"))  # 0 = never expire
SCHEMA_VERSION = "sim-v1"


def cache_key(prompt: str, mode: str, chain: str, schema_version: str = SCHEMA_VERSION) -> str:
    h = hashlib.sha256()
    h.update((prompt or "").strip().encode("utf-8"))
    h.update(("\n" + (mode or "2d")).encode("utf-8"))
    h.update(("\n" + (chain or "")).encode("utf-8"))
    h.update(("\n" + schema_version).encode("utf-8"))
    return h.hexdigest()


def decode(raw: str) -> Optional[GeneratedSimulation]:
    """Turn a cached payload back into a simulation; None if it is corrupt."""
    try:
        return GeneratedSimulation.model_validate_json(raw)
    except ValidationError:
        log.warning("cache: dropping corrupt entry")
        return None


def encode(sim: GeneratedSimulation) -> str:
    return json.dumps(sim.model_dump(), ensure_ascii=False, separators=(",", ":"))


def get(prompt: str, mode: str, chain: str) -> Optional[GeneratedSimulation]:
    path = CACHE_DIR / f"{cache_key(prompt, mode, chain)}.json"
    if not path.exists():
        return None
    if CACHE_TTL_SECONDS > 0 and time.time() - path.stat().st_mtime > CACHE_TTL_SECONDS:
        path.unlink(missing_ok=True)
        return None
    sim = decode(path.read_text(encoding="utf-8"))
    if sim is None:
        path.unlink(missing_ok=True)
    return sim


def set(prompt: str, mode: str, chain: str, sim: GeneratedSimulation) -> None:
    CACHE_DIR.mkdir(parents=True, exist_ok=True)
    path = CACHE_DIR / f"{cache_key(prompt, mode, chain)}.json"
    tmp = path.with_suffix(".json.tmp")
    tmp.write_text(encode(sim), encoding="utf-8")
    tmp.replace(path)
    log.debug("cache: stored %s", path.name)
