"""Hydra structured config dataclasses.

These mirror the Pydantic ``BuilderConfig`` for Hydra schema validation.
At runtime the Hydra DictConfig is converted to ``BuilderConfig`` via
``cli._to_builder_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hydra.core.config_store import ConfigStore


@dataclass
class LLMConf:
    api_key: str = "${oc.env:GROQ_API_KEY,''}"
    api_version: str = "${oc.env:PROPOSAL_LLM_API_VERSION,''}"
    endpoint: str = "${oc.env:GROQ_BASE_URL,''}"


@dataclass
class ModelConf:
    default: str = "openai/gpt-oss-20b"
    writer: str | None = None
    drafter: str | None = None


@dataclass
class BrandConf:
    company_name: str = "ArgosMob Tech & AI Pvt. Ltd."
    website: str = "https://www.argosmob.in/"
    prepared_by: str = "Team Argos Mob"
    signatory: str = "Authorized Signatory, ArgosMob Tech & AI Pvt. Ltd."
    accent_color: str = "#E85D2B"
    dark_color: str = "#0B1220"
    body_font_size: int = 10
    watermark: str = "ArgosMob"


@dataclass
class BuilderConf:
    # --- Dispatch + CLI-only fields ---
    mode: str = "new"
    verbose: bool = False
    quiet: bool = False
    proposal_id: str | None = None
    format: str = "pdf"
    brief: str | None = None
    client_name: str | None = None
    project_title: str | None = None
    markdown_file: str | None = None
    section: str | None = None

    # --- BuilderConfig fields (1:1 mapping) ---
    store_dir: str = "proposals/"
    output_dir: str = "output/"

    llm: LLMConf = field(default_factory=LLMConf)
    models: ModelConf = field(default_factory=ModelConf)
    chat_endpoint: str | None = None

    timeout: int = 120
    temperature: float = 0.7
    max_tokens: int = 8192
    seed: int = 42

    history_limit: int = 20
    intro_min_length: int = 100
    list_limit: int = 20
    offline: bool = False

    brand: BrandConf = field(default_factory=BrandConf)


# Keys present in BuilderConf that are NOT part of BuilderConfig.
CLI_ONLY_KEYS = frozenset({
    "mode", "verbose", "quiet", "proposal_id", "format", "brief",
    "client_name", "project_title", "markdown_file", "section",
})


def register_configs() -> None:
    """Register the structured config schema with Hydra's ConfigStore."""
    cs = ConfigStore.instance()
    cs.store(name="builder_schema", node=BuilderConf)
