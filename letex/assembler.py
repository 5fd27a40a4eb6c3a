from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from letex.llm_parsing import parse_response
from letex.models import GeneratedSimulation
from letex.sanitizer import sanitize_code


log = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Simulation"
DEFAULT_DESCRIPTION = "An interactive simulation generated by LetEX."
DEFAULT_INSTRUCTIONS = "Use the controls next to the simulation to change its parameters."


def _text_or_default(value: Any, default: str) -> str:
    if value is None:
        return default
    text = value if isinstance(value, str) else str(value)
    text = text.strip()
    return text or default


def assemble(metadata: Optional[Mapping[str, Any]], sanitized_code: str) -> GeneratedSimulation:
    """Merge parsed metadata with sanitized code, filling defaults. Never raises."""
    meta: Mapping[str, Any] = metadata if isinstance(metadata, Mapping) else {}
    controls = meta.get("controls")
    if not isinstance(controls, list):
        controls = []
    return GeneratedSimulation(
        title=_text_or_default(meta.get("title"), DEFAULT_TITLE),
        description=_text_or_default(meta.get("description"), DEFAULT_DESCRIPTION),
        instructions=_text_or_default(meta.get("instructions"), DEFAULT_INSTRUCTIONS),
        code=sanitized_code if isinstance(sanitized_code, str) else "",
        controls=list(controls),
    )


def simulation_from_text(raw: str) -> GeneratedSimulation:
    """Run the full pipeline on a provider response; ParseError propagates."""
    metadata, code = parse_response(raw)
    sanitized = sanitize_code(code)
    if sanitized != code:
        log.info("sanitizer rewrote uninitialized const declarations (%d -> %d chars)", len(code), len(sanitized))
    return assemble(metadata, sanitized)


def simulation_from_record(record: Dict[str, Any]) -> GeneratedSimulation:
    """Rebuild a simulation from a stored/cached record without re-sanitizing."""
    return assemble(record, record.get("code") or "")
