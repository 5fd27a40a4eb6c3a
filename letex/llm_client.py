from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from letex import config
from letex.assembler import simulation_from_text
from letex.config import ProviderConfig
from letex.llm_parsing import ParseError
from letex.llm_prompts import build_user_prompt, system_instruction
from letex.models import GeneratedSimulation


log = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Every provider in the chain failed to produce a usable simulation."""


"""
Each provider call returns the raw completion text or None; the shared
pipeline (parse -> sanitize -> assemble) turns text into a simulation.
A provider whose text cannot be parsed counts as failed and the next one is tried.
"""


def _extract_gemini_text(payload: Dict[str, Any]) -> Optional[str]:
    candidates = payload.get("candidates") if isinstance(payload, dict) else None
    for cand in candidates or []:
        if not isinstance(cand, dict):
            continue
        parts = (cand.get("content") or {}).get("parts") or []
        texts = [p.get("text") for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        text = "".join(texts)
        if text.strip():
            return text
    return None


def _extract_chat_text(payload: Dict[str, Any]) -> Optional[str]:
    try:
        text = payload.get("choices", [{}])[0].get("message", {}).get("content")
    except (AttributeError, IndexError, TypeError):
        return None
    if isinstance(text, str) and text.strip():
        return text
    return None


def _short_body(resp: Any) -> str:
    try:
        return (resp.text or "")[:400]
    except Exception:
        return str(getattr(resp, "status_code", "?"))


def _post(provider: ProviderConfig, **kwargs: Any) -> Optional[Any]:
    try:
        resp = requests.post(provider.endpoint, timeout=provider.timeout_secs, **kwargs)
    except requests.RequestException as exc:
        # Exception text can embed the request URL; log the type only
        log.warning("%s request error: %s", provider.label, type(exc).__name__)
        return None
    if resp.status_code != 200:
        log.warning("%s HTTP %s: %s", provider.label, resp.status_code, _short_body(resp))
        return None
    try:
        return resp.json()
    except ValueError:
        log.warning("%s: non-JSON HTTP body", provider.label)
        return None


def _call_gemini(provider: ProviderConfig, system: str, user: str) -> Optional[str]:
    body: Dict[str, Any] = {
        "systemInstruction": {"parts": [{"text": system}]},
        "contents": [{"role": "user", "parts": [{"text": user}]}],
        "generationConfig": {"temperature": provider.temperature},
    }
    if provider.max_tokens:
        body["generationConfig"]["maxOutputTokens"] = provider.max_tokens
    headers = {"x-goog-api-key": provider.api_key, "Content-Type": "application/json"}
    data = _post(provider, headers=headers, json=body)
    if data is None:
        return None
    return _extract_gemini_text(data)


def _call_chat_completions(provider: ProviderConfig, system: str, user: str) -> Optional[str]:
    headers = {
        "Authorization": f"Bearer {provider.api_key}",
        "Content-Type": "application/json",
    }
    if provider.name == "openrouter":
        headers["X-Title"] = "LetEX"
    body: Dict[str, Any] = {
        "model": provider.model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "temperature": provider.temperature,
    }
    if provider.max_tokens:
        body["max_tokens"] = provider.max_tokens
    data = _post(provider, headers=headers, json=body)
    if data is None:
        return None
    return _extract_chat_text(data)


def call_provider(provider: ProviderConfig, system: str, user: str) -> Optional[str]:
    """Send one prompt to one provider; return the completion text or None on failure."""
    started = time.time()
    if provider.kind == "gemini":
        text = _call_gemini(provider, system, user)
    else:
        text = _call_chat_completions(provider, system, user)
    if not text:
        log.warning("%s: empty response text", provider.label)
        return None
    log.info("%s responded chars=%d dur_ms=%d", provider.label, len(text), int((time.time() - started) * 1000))
    return text


def generate_simulation(
    prompt: str,
    three_d: bool = False,
    providers: Optional[List[ProviderConfig]] = None,
) -> GeneratedSimulation:
    """Try each provider in order and return the first simulation that parses.

    Raises GenerationError when the chain is exhausted. An empty chain serves
    the demo simulation unless ALLOW_DEMO_MODE is off.
    """
    chain = config.provider_chain(three_d) if providers is None else list(providers)
    if not chain:
        if config.demo_mode_allowed():
            log.warning("No provider credentials configured; serving demo simulation")
            return demo_simulation()
        raise GenerationError("No generation provider configured")

    system = system_instruction(three_d)
    user = build_user_prompt(prompt, three_d)
    log.info("llm providers_order=%s three_d=%s", [p.label for p in chain], three_d)

    last_error = "no provider attempted"
    for provider in chain:
        log.info("llm attempting provider=%s", provider.label)
        text = call_provider(provider, system, user)
        if text is None:
            last_error = f"{provider.label} returned no usable response"
            continue
        try:
            sim = simulation_from_text(text)
        except ParseError as exc:
            log.warning("%s: failed to parse response: %s", provider.label, exc)
            last_error = f"{provider.label}: {exc}"
            continue
        log.info("llm chosen provider=%s title=%r controls=%d", provider.label, sim.title, len(sim.controls))
        return sim
    raise GenerationError(f"All providers failed; last error: {last_error}")


def status(three_d: bool = False) -> Dict[str, Any]:
    chain = config.provider_chain(three_d)
    if not chain:
        return {
            "provider": None,
            "model": None,
            "has_token": False,
            "using": "demo" if config.demo_mode_allowed() else None,
            "chain": [],
        }
    return {
        "provider": chain[0].name,
        "model": chain[0].model,
        "has_token": True,
        "using": chain[0].name,
        "chain": [p.label for p in chain],
    }


def probe() -> Dict[str, Any]:
    """Report which modes can generate, without calling any provider."""
    two_d = config.provider_chain(False)
    three_d = config.provider_chain(True)
    demo = config.demo_mode_allowed()
    return {
        "ok": bool(two_d or three_d),
        "2d": two_d[0].name if two_d else ("demo" if demo else None),
        "3d": three_d[0].name if three_d else ("demo" if demo else None),
    }


_DEMO_CODE = """<!DOCTYPE html>
<html>
<head>
  <style>
    body { margin: 0; overflow: hidden; background: #0f172a; font-family: sans-serif; }
    canvas { display: block; width: 100%; height: 100%; }
  </style>
</head>
<body>
  <canvas id="simCanvas"></canvas>
  <script>
    const canvas = document.getElementById('simCanvas');
    const ctx = canvas.getContext('2d');
    let params = { g_force: 5, speed: 1, trails: true };
    let planets = [];

    window.addEventListener('message', (e) => {
      if (!e.data) return;
      const { id, value } = e.data;
      if (params.hasOwnProperty(id)) params[id] = value;
      if (id === 'reset') init();
    });

    function init() {
      planets = [
        { x: 0, y: 0, vx: 0, vy: 0, mass: 1000, color: '#fbbf24', fixed: true },
        { x: 200, y: 0, vx: 0, vy: 2, mass: 20, color: '#3b82f6' },
        { x: 350, y: 0, vx: 0, vy: 1.5, mass: 40, color: '#ef4444' },
        { x: 120, y: 0, vx: 0, vy: 3.5, mass: 5, color: '#a8a29e' }
      ];
    }

    function resize() {
      canvas.width = window.innerWidth;
      canvas.height = window.innerHeight;
    }
    window.addEventListener('resize', resize);
    resize();
    init();

    function update() {
      ctx.fillStyle = params.trails ? 'rgba(15, 23, 42, 0.15)' : 'rgba(15, 23, 42, 1)';
      ctx.fillRect(0, 0, canvas.width, canvas.height);
      const cx = canvas.width / 2;
      const cy = canvas.height / 2;
      for (let i = 0; i < planets.length; i++) {
        let p1 = planets[i];
        if (p1.fixed) continue;
        for (let j = 0; j < planets.length; j++) {
          if (i === j) continue;
          let p2 = planets[j];
          let dx = p2.x - p1.x;
          let dy = p2.y - p1.y;
          let dist = Math.max(5, Math.sqrt(dx * dx + dy * dy));
          let f = (params.g_force * p1.mass * p2.mass) / (dist * dist);
          p1.vx += (f * (dx / dist) / p1.mass) * params.speed;
          p1.vy += (f * (dy / dist) / p1.mass) * params.speed;
        }
        p1.x += p1.vx * params.speed;
        p1.y += p1.vy * params.speed;
      }
      for (let p of planets) {
        ctx.beginPath();
        ctx.arc(cx + p.x, cy + p.y, Math.sqrt(p.mass), 0, Math.PI * 2);
        ctx.fillStyle = p.color;
        ctx.fill();
      }
      requestAnimationFrame(update);
    }
    update();
  </script>
</body>
</html>"""


def demo_simulation() -> GeneratedSimulation:
    """Fixed orbit simulation served when no provider credentials exist."""
    return GeneratedSimulation(
        title="Solar System Orbit (Demo Mode)",
        description=(
            "A gravitational simulation of planets orbiting a star. "
            "This is running in Demo Mode because no API key was configured."
        ),
        instructions=(
            "Use the sliders to adjust the gravitational constant (G) and the simulation speed. "
            "Click 'Reset System' to restore the initial positions."
        ),
        code=_DEMO_CODE,
        controls=[
            {"id": "g_force", "type": "slider", "label": "Gravity (G)", "min": 1, "max": 20, "step": 0.5, "defaultValue": 5},
            {"id": "speed", "type": "slider", "label": "Sim Speed", "min": 0.1, "max": 3, "step": 0.1, "defaultValue": 1},
            {"id": "trails", "type": "toggle", "label": "Show Trails", "defaultValue": True},
            {"id": "reset", "type": "button", "label": "Reset System"},
        ],
    )
