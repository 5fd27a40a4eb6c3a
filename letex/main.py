import logging
import os
import time
import uuid
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from letex import cache as file_cache
from letex import config, llm_client, store
from letex.assembler import simulation_from_text
from letex.llm_client import GenerationError
from letex.llm_parsing import ParseError
from letex.models import GeneratedSimulation
from letex.store import StoreError
from letex.validators import collect_errors, validate_controls


if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)


def _select_cache():
    redis_url = os.getenv("REDIS_URL", "").strip()
    if redis_url and not os.getenv("PYTEST_CURRENT_TEST"):
        try:
            from letex import redis_cache
            return redis_cache
        except Exception:
            log.exception("cache: redis backend unavailable, using file cache")
    return file_cache


sim_cache = _select_cache()
sim_store: Optional[store.SimulationStore] = store.from_env()

app = FastAPI(title="LetEX")

allow_origins = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


class GenerateRequest(BaseModel):
    prompt: str = Field("", description="What to simulate, e.g. 'double pendulum with adjustable mass'")
    mode: Literal["2d", "3d"] = Field("2d", description="Canvas (2d) or Three.js (3d) output")
    use_cache: bool = Field(True, description="Serve an earlier result for the same prompt if one is cached")


class ParseRequest(BaseModel):
    raw: str


class ValidateRequest(BaseModel):
    simulation: Dict[str, Any]


class SaveRequest(BaseModel):
    simulation: GeneratedSimulation
    prompt: str = ""
    user_id: Optional[str] = None
    mode: Literal["2d", "3d"] = "2d"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status_endpoint(mode: Literal["2d", "3d"] = "2d") -> Dict[str, Any]:
    return llm_client.status(three_d=mode == "3d")


@app.get("/llm/probe")
def llm_probe_endpoint() -> Dict[str, Any]:
    return llm_client.probe()


@app.post("/generate")
def generate_endpoint(req: GenerateRequest):
    prompt = req.prompt.strip()
    if not prompt:
        return _error(400, "prompt is required")
    three_d = req.mode == "3d"
    chain = config.provider_chain(three_d)
    chain_key = config.chain_id(chain)

    if req.use_cache and chain:
        try:
            cached = sim_cache.get(prompt, req.mode, chain_key)
        except Exception:
            log.exception("cache: lookup failed")
            cached = None
        if cached is not None:
            log.info("generate: cache hit mode=%s", req.mode)
            return cached.model_dump()

    try:
        sim = llm_client.generate_simulation(prompt, three_d=three_d, providers=chain)
    except GenerationError as exc:
        log.warning("generate: %s", exc)
        return _error(502, str(exc))

    if chain:
        try:
            sim_cache.set(prompt, req.mode, chain_key, sim)
        except Exception:
            log.exception("cache: store failed")
    return sim.model_dump()


@app.post("/parse")
def parse_endpoint(req: ParseRequest):
    """Run a raw provider response through parse -> sanitize -> assemble."""
    try:
        sim = simulation_from_text(req.raw)
    except ParseError as exc:
        return _error(422, str(exc))
    return sim.model_dump()


@app.post("/validate")
def validate_endpoint(req: ValidateRequest):
    """
    Check a simulation's controls.
    Returns 200 and {"detail":{"valid":true,"controls":[...]}} on success,
            422 and {"detail":{"valid":false,"errors":[...]}} on failure.
    """
    try:
        controls = validate_controls(req.simulation)
    except ValueError:
        detail = {"valid": False, "errors": collect_errors(req.simulation)}
        return JSONResponse(status_code=422, content={"detail": detail})
    return {"detail": {"valid": True, "controls": [c.model_dump(by_alias=True, exclude_none=True) for c in controls]}}


def _store_or_503():
    if sim_store is None:
        return None, _error(503, "Simulation store not configured")
    return sim_store, None


@app.post("/simulations")
def save_simulation(req: SaveRequest):
    st, err = _store_or_503()
    if err:
        return err
    try:
        row = st.save(req.simulation, prompt=req.prompt, user_id=req.user_id, mode=req.mode)
    except StoreError as exc:
        return _error(502, str(exc))
    return JSONResponse(status_code=201, content=row)


@app.get("/simulations")
def list_simulations(category: str = "All", limit: int = 50, user_id: Optional[str] = None):
    st, err = _store_or_503()
    if err:
        return err
    if category not in store.CATEGORIES:
        return _error(400, f"unknown category '{category}'")
    try:
        rows: List[Dict[str, Any]] = st.list_for_user(user_id, limit) if user_id else st.list_recent(limit)
    except StoreError as exc:
        return _error(502, str(exc))
    return {"category": category, "items": [r for r in rows if store.matches_category(r, category)]}


@app.get("/simulations/{sim_id}")
def get_simulation(sim_id: str):
    st, err = _store_or_503()
    if err:
        return err
    try:
        row = st.get(sim_id)
    except StoreError as exc:
        return _error(502, str(exc))
    if row is None:
        return _error(404, "simulation not found")
    return store.simulation_from_row(row).model_dump()
