"""Client for the hosted simulations table (PostgREST, as exposed by Supabase)."""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional

import requests

from letex.assembler import simulation_from_record
from letex.models import GeneratedSimulation


log = logging.getLogger(__name__)

CATEGORIES = ["All", "Physics", "Chemistry", "Biology", "Math", "Space"]

_CATEGORY_RE = {
    "Physics": re.compile(r"gravity|pendulum|force|motion|wave|friction|magnet|optics"),
    "Chemistry": re.compile(r"molecule|atom|reaction|bond|fluid|gas"),
    "Biology": re.compile(r"cell|dna|life|evolution|population"),
    "Math": re.compile(r"fractal|chaos|graph|geometry|calculus|pi"),
    "Space": re.compile(r"orbit|planet|star|galaxy|solar|gravity|black hole"),
}


class StoreError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def categorize(title: str, prompt: str) -> List[str]:
    """Keyword categories for a stored simulation; the table carries no tags."""
    text = f"{title or ''} {prompt or ''}".lower()
    return [name for name, rx in _CATEGORY_RE.items() if rx.search(text)]


def matches_category(row: Dict[str, Any], category: str) -> bool:
    if not category or category == "All":
        return True
    return category in categorize(row.get("title") or "", row.get("prompt") or "")


def simulation_from_row(row: Dict[str, Any]) -> GeneratedSimulation:
    return simulation_from_record(row)


class SimulationStore:
    def __init__(self, base_url: str, api_key: str, table: str = "simulations", timeout_secs: int = 15) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.table = table
        self.timeout_secs = timeout_secs

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        headers.update(extra)
        return headers

    def _request(self, method: str, **kwargs: Any) -> Any:
        try:
            resp = requests.request(method, self.table_url, timeout=self.timeout_secs, **kwargs)
        except requests.RequestException as exc:
            raise StoreError(f"{method} {self.table} failed: {exc!r}") from exc
        if not 200 <= resp.status_code < 300:
            body = (resp.text or "")[:400]
            log.warning("store %s %s HTTP %s: %s", method, self.table, resp.status_code, body)
            raise StoreError(f"{method} {self.table} returned HTTP {resp.status_code}", resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise StoreError(f"{method} {self.table} returned a non-JSON body", resp.status_code) from exc

    def save(
        self,
        sim: GeneratedSimulation,
        prompt: str,
        user_id: Optional[str] = None,
        mode: str = "2d",
    ) -> Dict[str, Any]:
        """Insert one simulation verbatim and return the stored row (with id, created_at)."""
        row = sim.to_record()
        row.update({"prompt": prompt, "user_id": user_id, "mode": mode})
        data = self._request("POST", headers=self._headers(Prefer="return=representation"), json=row)
        saved = data[0] if isinstance(data, list) and data else data
        if not isinstance(saved, dict):
            raise StoreError("insert returned no row")
        log.info("store: saved simulation id=%s title=%r", saved.get("id"), sim.title)
        return saved

    def get(self, sim_id: str) -> Optional[Dict[str, Any]]:
        data = self._request("GET", headers=self._headers(), params={"select": "*", "id": f"eq.{sim_id}", "limit": "1"})
        if isinstance(data, list) and data:
            return data[0]
        return None

    def list_recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        params = {"select": "*", "order": "created_at.desc", "limit": str(max(1, int(limit)))}
        data = self._request("GET", headers=self._headers(), params=params)
        return data if isinstance(data, list) else []

    def list_for_user(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        params = {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
            "limit": str(max(1, int(limit))),
        }
        data = self._request("GET", headers=self._headers(), params=params)
        return data if isinstance(data, list) else []


def from_env() -> Optional[SimulationStore]:
    url = os.getenv("SUPABASE_URL", "").strip()
    key = os.getenv("SUPABASE_KEY", "").strip()
    if not url or not key:
        return None
    return SimulationStore(url, key, table=os.getenv("SUPABASE_TABLE", "simulations").strip() or "simulations")
