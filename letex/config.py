from __future__ import annotations

import os
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


GEMINI_ENDPOINT_TEMPLATE = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
SAMBANOVA_ENDPOINT = "https://api.sambanova.ai/v1/chat/completions"


class ProviderConfig(BaseModel):
    """Everything needed to call one provider; passed explicitly to each call."""

    name: str
    kind: Literal["gemini", "openai"]
    endpoint: str
    api_key: str = Field(default="", repr=False)
    model: str
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    timeout_secs: int = 75

    @property
    def label(self) -> str:
        return f"{self.name}:{self.model}"


def llm_timeout_secs() -> int:
    return _env_int("LLM_TIMEOUT_SECS", 75)


def demo_mode_allowed() -> bool:
    return _env_flag("ALLOW_DEMO_MODE", "1")


def gemini_provider() -> Optional[ProviderConfig]:
    key = os.getenv("GEMINI_API_KEY", "").strip()
    if not key:
        return None
    model = os.getenv("GEMINI_MODEL", "gemini-2.5-flash").strip()
    return ProviderConfig(
        name="gemini",
        kind="gemini",
        endpoint=GEMINI_ENDPOINT_TEMPLATE.format(model=model),
        api_key=key,
        model=model,
        temperature=_env_float("GEMINI_TEMPERATURE", 0.7),
        max_tokens=_env_int("GEMINI_MAX_TOKENS", 32000),
        timeout_secs=llm_timeout_secs(),
    )


def openrouter_providers() -> List[ProviderConfig]:
    """Primary model first, then the fixed fallback model (skipped if identical)."""
    key = os.getenv("OPENROUTER_API_KEY", "").strip()
    if not key:
        return []
    primary = os.getenv("OPENROUTER_MODEL", "anthropic/claude-3.5-haiku").strip()
    fallback = os.getenv("OPENROUTER_FALLBACK_MODEL", "anthropic/claude-3.5-sonnet").strip()
    models = [primary] + ([fallback] if fallback and fallback != primary else [])
    return [
        ProviderConfig(
            name="openrouter",
            kind="openai",
            endpoint=OPENROUTER_ENDPOINT,
            api_key=key,
            model=model,
            temperature=_env_float("OPENROUTER_TEMPERATURE", 0.7),
            max_tokens=_env_int("OPENROUTER_MAX_TOKENS", 16000),
            timeout_secs=llm_timeout_secs(),
        )
        for model in models
    ]


def sambanova_provider() -> Optional[ProviderConfig]:
    key = os.getenv("SAMBANOVA_API_KEY", "").strip()
    if not key:
        return None
    return ProviderConfig(
        name="sambanova",
        kind="openai",
        endpoint=SAMBANOVA_ENDPOINT,
        api_key=key,
        model=os.getenv("SAMBANOVA_MODEL", "Meta-Llama-3.3-70B-Instruct").strip(),
        # Low temperature keeps the generated code consistent
        temperature=_env_float("SAMBANOVA_TEMPERATURE", 0.1),
        max_tokens=_env_int("SAMBANOVA_MAX_TOKENS", 8192),
        timeout_secs=llm_timeout_secs(),
    )


def provider_chain(three_d: bool = False) -> List[ProviderConfig]:
    """Ordered providers to try for one generation; unconfigured ones are skipped.

    2D: Gemini, then OpenRouter (primary, fallback model).
    3D: OpenRouter (primary, fallback model), then SambaNova.
    """
    chain: List[ProviderConfig] = []
    if three_d:
        chain.extend(openrouter_providers())
        samba = sambanova_provider()
        if samba:
            chain.append(samba)
    else:
        gemini = gemini_provider()
        if gemini:
            chain.append(gemini)
        chain.extend(openrouter_providers())
    return chain


def chain_id(chain: List[ProviderConfig]) -> str:
    return ",".join(p.label for p in chain) or "demo"
