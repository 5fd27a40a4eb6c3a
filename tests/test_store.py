import json

import pytest
import requests

from letex import store
from letex.llm_client import demo_simulation
from letex.store import SimulationStore, StoreError


class FakeResp:
    def __init__(self, status, payload=None, text=None):
        self.status_code = status
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


@pytest.fixture
def calls(monkeypatch):
    """Record every outgoing request; tests push the responses to return."""
    log = {"requests": [], "responses": []}

    def fake_request(method, url, timeout=None, **kwargs):
        log["requests"].append({"method": method, "url": url, "timeout": timeout, **kwargs})
        return log["responses"].pop(0)

    monkeypatch.setattr(store.requests, "request", fake_request)
    return log


def _store():
    return SimulationStore("https://proj.supabase.co/", "anon-key")


def test_save_posts_row_and_returns_representation(calls):
    sim = demo_simulation()
    calls["responses"].append(FakeResp(201, [dict(sim.to_record(), id="42", created_at="now")]))

    row = _store().save(sim, prompt="orbits", user_id="u1", mode="2d")

    assert row["id"] == "42"
    req = calls["requests"][0]
    assert req["method"] == "POST"
    assert req["url"] == "https://proj.supabase.co/rest/v1/simulations"
    assert req["headers"]["apikey"] == "anon-key"
    assert req["headers"]["Authorization"] == "Bearer anon-key"
    assert req["headers"]["Prefer"] == "return=representation"
    assert req["json"]["prompt"] == "orbits"
    assert req["json"]["user_id"] == "u1"
    assert req["json"]["code"] == sim.code
    assert req["json"]["controls"] == sim.controls


def test_get_and_missing_row(calls):
    calls["responses"].extend([FakeResp(200, [{"id": "7", "title": "T"}]), FakeResp(200, [])])
    st = _store()
    assert st.get("7") == {"id": "7", "title": "T"}
    assert st.get("8") is None
    assert calls["requests"][0]["params"]["id"] == "eq.7"


def test_listing_orders_newest_first(calls):
    calls["responses"].extend([FakeResp(200, [{"id": "1"}]), FakeResp(200, [])])
    st = _store()
    assert st.list_recent(5) == [{"id": "1"}]
    assert st.list_for_user("u1", 0) == []
    recent, mine = calls["requests"]
    assert recent["params"]["order"] == "created_at.desc"
    assert recent["params"]["limit"] == "5"
    assert mine["params"]["user_id"] == "eq.u1"
    assert mine["params"]["limit"] == "1"


def test_http_error_raises_store_error(calls):
    calls["responses"].append(FakeResp(401, {"message": "JWT expired"}))
    with pytest.raises(StoreError) as exc:
        _store().list_recent()
    assert exc.value.status_code == 401


def test_transport_error_raises_store_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr(store.requests, "request", boom)
    with pytest.raises(StoreError) as exc:
        _store().get("1")
    assert exc.value.status_code is None


def test_categorize_and_filter():
    assert store.categorize("Planet orbits", "gravity well") == ["Physics", "Space"]
    assert store.categorize("Cell division", "mitosis") == ["Biology"]
    assert store.categorize("", "") == []
    row = {"title": "Double pendulum", "prompt": ""}
    assert store.matches_category(row, "Physics")
    assert store.matches_category(row, "All")
    assert not store.matches_category(row, "Chemistry")


def test_from_env(monkeypatch):
    assert store.from_env() is None
    monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "k")
    st = store.from_env()
    assert st.table_url == "https://proj.supabase.co/rest/v1/simulations"


def test_simulation_from_row():
    sim = demo_simulation()
    row = dict(sim.to_record(), id="1", prompt="orbits", user_id=None)
    assert store.simulation_from_row(row) == sim
