from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Tuple


SPLIT_DELIMITER = "|||SPLIT|||"


class ParseError(ValueError):
    """Raised when a provider response cannot be split into metadata and code."""


_OPEN_FENCE_RE = {
    "json": re.compile(r"^```(?:json)?[ \t]*\r?\n?", re.IGNORECASE),
    "html": re.compile(r"^```(?:html)?[ \t]*\r?\n?", re.IGNORECASE),
}
_CLOSE_FENCE_RE = re.compile(r"\r?\n?```\s*$")

# Shortest {...} run; nested objects are recovered with _balanced_json_slice
_OBJECT_RE = re.compile(r"\{[\s\S]*?\}")
_HTML_DOC_RE = re.compile(r"<!DOCTYPE html>[\s\S]*?</html>", re.IGNORECASE)
_HTML_MARKER_RE = re.compile(r"<(?:!doctype\s+html|html)\b", re.IGNORECASE)


def strip_fences(segment: str, lang: str) -> str:
    """Trim whitespace plus an optional ```lang opening and ``` closing fence."""
    s = (segment or "").strip()
    s = _OPEN_FENCE_RE[lang].sub("", s, count=1)
    s = _CLOSE_FENCE_RE.sub("", s, count=1)
    return s.strip()


def _balanced_json_slice(s: str, start: int = 0) -> Optional[str]:
    in_str = False
    esc = False
    depth = 0
    start_idx = -1
    for i in range(start, len(s)):
        ch = s[i]
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                return s[start_idx : i + 1]
    return None


def _load_metadata(segment: str) -> Dict[str, Any]:
    try:
        data = json.loads(segment)
    except json.JSONDecodeError as exc:
        raise ParseError(f"metadata segment is not valid JSON: {exc.msg} (line {exc.lineno} col {exc.colno})") from exc
    if not isinstance(data, dict):
        raise ParseError(f"metadata segment must be a JSON object, got {type(data).__name__}")
    return data


def _parse_split(parts: List[str]) -> Tuple[Dict[str, Any], str]:
    # Anything after a second delimiter (e.g. one echoed in a code comment) is dropped
    metadata = _load_metadata(strip_fences(parts[0], "json"))
    code = strip_fences(parts[1], "html")
    return metadata, code


def _parse_envelope(raw: str) -> Optional[Tuple[Dict[str, Any], str]]:
    """Single JSON object with the page in its `code` field; None if not that shape."""
    s = strip_fences(raw, "json")
    if not s.startswith("{"):
        return None
    try:
        doc = json.loads(s)
    except json.JSONDecodeError:
        return None
    if not isinstance(doc, dict):
        return None
    code = doc.get("code")
    if not isinstance(code, str) or not _HTML_MARKER_RE.search(code):
        return None
    metadata = {k: v for k, v in doc.items() if k != "code"}
    return metadata, code.strip()


def _controls_from_candidate(raw: str, match: "re.Match[str]") -> List[Any]:
    candidates = [match.group(0)]
    balanced = _balanced_json_slice(raw, match.start())
    if balanced and balanced != match.group(0):
        candidates.append(balanced)
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            controls = data.get("controls")
            return controls if isinstance(controls, list) else []
    return []


def parse_response(raw: str) -> Tuple[Dict[str, Any], str]:
    """Split a raw provider response into (metadata, code); raise ParseError on failure.

    Strategy:
    - `metadata|||SPLIT|||code`: first segment must decode to a JSON object,
      second segment is the code verbatim (fences removed).
    - No delimiter: a single JSON object carrying the page in `code`.
    - Otherwise scan for a `{...}` object and a `<!DOCTYPE html>...</html>`
      document; only `controls` is recovered from the object.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ParseError("empty provider response")

    parts = raw.split(SPLIT_DELIMITER)
    if len(parts) >= 2:
        return _parse_split(parts)

    # Must run before the regex fallback, which keeps only `controls`; a
    # whole-JSON reply keeps its title and text fields here
    envelope = _parse_envelope(raw)
    if envelope is not None:
        return envelope

    obj_match = _OBJECT_RE.search(raw)
    html_match = _HTML_DOC_RE.search(raw)
    if not obj_match or not html_match:
        raise ParseError("no split delimiter found")
    return {"controls": _controls_from_candidate(raw, obj_match)}, html_match.group(0)
