"""Lexical fixes for generated simulation code.

Models regularly emit `const planet;` and assign it later, which is a
SyntaxError in JavaScript and kills the whole <script> block. The rules below
turn uninitialized `const` declarations into `let`. They are plain regular
expressions with no notion of strings or comments, so text such as
"const speed" inside a string literal is rewritten too.
"""
from __future__ import annotations

import re
from typing import List, Tuple


# `const` at a word boundary, then a complete JS identifier (ASCII grammar)
_DECL = r"(?<![\w$])const\s+([A-Za-z_$][\w$]*)(?![\w$])"

# Order matters: the narrow rules run first, the catch-all last.
_RULES: List[Tuple[re.Pattern[str], str]] = [
    (re.compile(_DECL + r"\s*;", re.ASCII), r"let \1;"),
    (re.compile(_DECL + r"\s*,", re.ASCII), r"let \1,"),
    (re.compile(_DECL + r"[ \t]*(\r\n|\n|\r)", re.ASCII), r"let \1\2"),
    (re.compile(_DECL + r"(?!\s*=)", re.ASCII), r"let \1"),
]


def sanitize_code(code: str) -> str:
    """Rewrite uninitialized `const` declarations to `let`. Never raises."""
    if not isinstance(code, str):
        return ""
    # re.sub does not rescan its own output (`const const x`), so repeat to a
    # fixed point; every rewrite removes one `const`
    while True:
        out = code
        for pattern, repl in _RULES:
            out = pattern.sub(repl, out)
        if out == code:
            return out
        code = out
