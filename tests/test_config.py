from letex import config


def test_no_keys_means_empty_chain():
    assert config.provider_chain(False) == []
    assert config.provider_chain(True) == []
    assert config.chain_id([]) == "demo"


def test_2d_chain_order(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
    monkeypatch.setenv("SAMBANOVA_API_KEY", "sn-key")
    chain = config.provider_chain(False)
    assert [p.label for p in chain] == [
        "gemini:gemini-2.5-flash",
        "openrouter:anthropic/claude-3.5-haiku",
        "openrouter:anthropic/claude-3.5-sonnet",
    ]
    assert chain[0].endpoint.endswith("/models/gemini-2.5-flash:generateContent")
    assert chain[0].kind == "gemini"
    assert chain[1].kind == "openai"


def test_3d_chain_order_skips_gemini(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
    monkeypatch.setenv("SAMBANOVA_API_KEY", "sn-key")
    chain = config.provider_chain(True)
    assert [p.name for p in chain] == ["openrouter", "openrouter", "sambanova"]
    samba = chain[-1]
    assert samba.model == "Meta-Llama-3.3-70B-Instruct"
    assert samba.temperature == 0.1
    assert samba.max_tokens == 8192


def test_openrouter_fallback_equal_to_primary_is_not_repeated(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
    monkeypatch.setenv("OPENROUTER_MODEL", "x/model")
    monkeypatch.setenv("OPENROUTER_FALLBACK_MODEL", "x/model")
    assert config.chain_id(config.openrouter_providers()) == "openrouter:x/model"


def test_timeout_falls_back_on_garbage(monkeypatch):
    monkeypatch.setenv("LLM_TIMEOUT_SECS", "soon")
    assert config.llm_timeout_secs() == 75
    monkeypatch.setenv("LLM_TIMEOUT_SECS", "20")
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    assert config.gemini_provider().timeout_secs == 20


def test_demo_mode_flag(monkeypatch):
    assert config.demo_mode_allowed() is True
    monkeypatch.setenv("ALLOW_DEMO_MODE", "off")
    assert config.demo_mode_allowed() is False


def test_api_key_hidden_from_repr(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "super-secret-value")
    cfg = config.gemini_provider()
    assert "super-secret-value" not in repr(cfg)
    assert cfg.api_key == "super-secret-value"
