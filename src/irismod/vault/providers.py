"""
Provider detection from API key prefixes.

When a user stores a key, its prefix decides which provider and endpoint the
chat layer should use, and a per-provider pattern rejects obvious typos.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/openai/"


@dataclass(frozen=True, slots=True)
class ProviderProfile:
    """What a key prefix says about the provider behind it."""
    label: str
    provider_id: str
    endpoint: str
    valid_format: bool


_PROVIDERS = (
    ("AIza", "Gemini", "gemini", DEFAULT_ENDPOINT, re.compile(r"^AIza[0-9A-Za-z_-]{35}$")),
    ("gsk_", "Groq", "groq", "https://api.groq.com/openai/v1", re.compile(r"^gsk_[0-9A-Za-z_-]{48,}$")),
    ("sk-", "OpenAI", "openai", "https://api.openai.com/v1", re.compile(r"^sk-[0-9A-Za-z_-]{48,}$")),
)


def detect_provider(api_key: str) -> ProviderProfile:
    """Classify ``api_key`` by prefix; unknown prefixes count as a custom OpenAI-compatible provider."""
    for prefix, label, provider_id, endpoint, pattern in _PROVIDERS:
        if api_key.startswith(prefix):
            return ProviderProfile(label, provider_id, endpoint, bool(pattern.match(api_key)))
    return ProviderProfile("Custom", "custom", "https://api.openai.com/v1", len(api_key) >= 20)


def mask_key(api_key: str) -> str:
    """Short preview of a key for confirmation messages."""
    if len(api_key) <= 12:
        return "*" * len(api_key)
    return f"{api_key[:8]}...{api_key[-4:]}"
