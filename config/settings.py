"""Global settings for Brainiark OS.

``SETTINGS`` is a plain dict so entry points (CLI flags, the Streamlit
console, tests) can override values at runtime.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


SETTINGS = {
    # Persistence
    "database_url": os.getenv("DATABASE_URL", "sqlite:///./brainiark.db"),

    # LLM defaults
    "openai_model": os.getenv("OPENAI_MODEL", "gpt-4o"),
    "chat_temperature": 0.7,
    "chat_max_tokens": 1000,
    "analysis_temperature": 0.3,
    "analysis_max_tokens": 2000,

    # Auth
    "jwt_algorithm": "HS256",
    "auth_token_ttl_days": 7,
    "auth_cookie_name": "brain_session",
    "reset_token_ttl_minutes": 30,
    "cookie_secure": _env_bool("COOKIE_SECURE"),

    # Onboarding / analysis
    "analysis_stale_minutes": 5,
    "evidence_list_limit": 50,
    "chat_evidence_limit": 10,

    # Crawling
    "crawl_request_interval": float(os.getenv("CRAWL_REQUEST_INTERVAL", "1.0")),
    "playwright_enabled": _env_bool("PLAYWRIGHT_ENABLED"),
    "headless_mode": _env_bool("HEADLESS_MODE", "true"),

    # API
    "cors_origins": [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
}


def get_secret(name: str, default: Optional[str] = None) -> Optional[str]:
    """Look up a secret from the environment, then Streamlit secrets.

    Args:
        name: Secret name, e.g. ``OPENAI_API_KEY``
        default: Value returned when the secret is not configured

    Returns:
        The secret value or ``default``
    """
    value = os.getenv(name)
    if value:
        return value

    try:
        import streamlit as st
        if name in st.secrets:
            return str(st.secrets[name])
    except Exception:
        # No secrets.toml or not running under Streamlit
        pass
    return default
