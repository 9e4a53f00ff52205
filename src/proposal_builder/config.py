"""Configuration loader and LLM config builder.

Reads builder settings from a YAML config file with ``${ENV_VAR}``
interpolation. Empty LLM credentials fall back to ``GROQ_*`` environment
variables; the endpoint defaults to Groq's OpenAI-compatible API.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import BuilderConfig, LLMConfig

load_dotenv()

DEFAULT_ENDPOINT = "https://api.groq.com/openai/v1"

# ---------------------------------------------------------------------------
# YAML loading with ${ENV_VAR} interpolation
# ---------------------------------------------------------------------------

_ENV_RE = re.compile(r"\$\{([^}]+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${ENV_VAR}`` references in strings."""
    if isinstance(value, str):
        return _ENV_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(v) for v in value]
    return value


def apply_llm_fallbacks(config: BuilderConfig) -> BuilderConfig:
    """Fill empty LLM settings from environment variables and normalise the endpoint."""
    if not config.llm.api_key:
        config.llm.api_key = os.getenv("GROQ_API_KEY", "")
    if not config.llm.api_version:
        config.llm.api_version = os.getenv("PROPOSAL_LLM_API_VERSION", "")
    if not config.llm.endpoint:
        config.llm.endpoint = os.getenv("GROQ_BASE_URL", "") or DEFAULT_ENDPOINT
    config.llm.endpoint = config.llm.endpoint.rstrip("/")
    return config


def load_config(config_path: str | Path) -> BuilderConfig:
    """Load a ``BuilderConfig`` from a YAML file.

    Environment variables referenced as ``${VAR_NAME}`` are resolved before
    validation.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    resolved = _resolve_env_vars(raw)
    config = BuilderConfig.model_validate(resolved)
    return apply_llm_fallbacks(config)


# ---------------------------------------------------------------------------
# LLM config builder
# ---------------------------------------------------------------------------


def _is_azure_openai_endpoint(endpoint: str) -> bool:
    lower = endpoint.lower()
    return "openai.azure.com" in lower or "cognitiveservices.azure.com" in lower


def _build_single_entry(model: str, llm: LLMConfig) -> dict[str, Any]:
    """Build a single AG2 config_list entry for *model*.

    Azure OpenAI endpoints use deployment-based routing; anything else is
    treated as OpenAI-compatible via ``base_url``.
    """
    entry: dict[str, Any] = {
        "model": model,
        "api_key": llm.api_key,
    }
    endpoint = llm.endpoint
    if endpoint and _is_azure_openai_endpoint(endpoint):
        entry.update({
            "api_type": "azure",
            "azure_endpoint": endpoint,
            "api_version": llm.api_version,
            "azure_deployment": model,
        })
    elif endpoint:
        entry["base_url"] = endpoint
    return entry


def build_role_llm_config(role: str, config: BuilderConfig) -> dict[str, Any]:
    """Return an AG2-compatible ``llm_config`` dict for *role*.

    ``writer`` drives streaming chat turns, ``drafter`` one-shot section
    drafts; any other role (or an unset role model) uses ``models.default``.
    """
    models = config.models
    role_map: dict[str, str | None] = {
        "writer": models.writer,
        "drafter": models.drafter or models.writer,
    }
    chosen = role_map.get(role.lower()) or models.default
    entry = _build_single_entry(chosen, config.llm)
    return {
        "config_list": [entry],
        "timeout": config.timeout,
        "seed": config.seed,
    }
