"""CLI entry point using Hydra.

Usage examples:
  proposal-builder mode=new brief="Food delivery app for Acme Foods"
  proposal-builder mode=resume proposal_id=<id>
  proposal-builder mode=list
  proposal-builder mode=revise proposal_id=<id>
  proposal-builder mode=export proposal_id=<id> format=docx output_dir=out/
  proposal-builder mode=render markdown_file=notes.md
  proposal-builder mode=draft proposal_id=<id> section=keyModules
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import hydra
from omegaconf import DictConfig, OmegaConf
from rich.table import Table

from ._hydra_conf import CLI_ONLY_KEYS, register_configs
from .config import apply_llm_fallbacks
from .errors import AICollaboratorError, NotFoundError, PersistenceError
from .logging_config import console, setup_logging
from .models import BuilderConfig
from .persistence import JsonFileProposalRepository

register_configs()

# ---------------------------------------------------------------------------
# Hydra DictConfig -> Pydantic BuilderConfig bridge
# ---------------------------------------------------------------------------


def _to_builder_config(cfg: DictConfig) -> BuilderConfig:
    """Convert a Hydra *DictConfig* to a Pydantic ``BuilderConfig``.

    CLI-only keys (``mode``, ``proposal_id``, etc.) are stripped before
    validation; LLM env-var fallbacks are applied afterwards.
    """
    container: dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]
    for key in CLI_ONLY_KEYS:
        container.pop(key, None)
    config = BuilderConfig.model_validate(container)
    return apply_llm_fallbacks(config)


def _require(cfg: DictConfig, key: str) -> str:
    value = cfg.get(key)
    if not value:
        console.print(f"[red]{key} is required for mode={cfg.get('mode')}[/]")
        sys.exit(1)
    return str(value)


def _repository(config: BuilderConfig) -> JsonFileProposalRepository:
    return JsonFileProposalRepository(config.store_dir)


# ---------------------------------------------------------------------------
# Mode handlers
# ---------------------------------------------------------------------------


def _new_mode(cfg: DictConfig) -> None:
    config = _to_builder_config(cfg)
    from .session import InteractiveSession

    session = InteractiveSession(config, _repository(config))
    proposal = session.new_proposal(
        project_brief=cfg.get("brief"),
        client_name=cfg.get("client_name"),
        project_title=cfg.get("project_title"),
    )
    console.print(f"[bold]Created proposal[/] {proposal.id}")
    session.run()


def _resume_mode(cfg: DictConfig) -> None:
    config = _to_builder_config(cfg)
    from .session import InteractiveSession

    session = InteractiveSession(config, _repository(config))
    session.load(_require(cfg, "proposal_id"))
    session.run()


def _list_mode(cfg: DictConfig) -> None:
    config = _to_builder_config(cfg)
    summaries = _repository(config).list_summaries(config.list_limit)
    if not summaries:
        console.print("[dim]No proposals yet.[/]")
        return
    table = Table(title="Proposals (newest first)")
    for column in ("ID", "Client", "Project", "Status", "Version", "Created"):
        table.add_column(column)
    for s in summaries:
        table.add_row(
            s.id, s.client_name or "-", s.project_title or "-", s.status.value,
            f"v{s.version}", s.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def _revise_mode(cfg: DictConfig) -> None:
    config = _to_builder_config(cfg)
    from .revision import revise
    from .session import InteractiveSession

    repository = _repository(config)
    forked = revise(repository, _require(cfg, "proposal_id"), brand=config.brand)
    console.print(f"[bold]Created revision[/] {forked.id} (v{forked.version} of {forked.parent_id})")
    session = InteractiveSession(config, repository)
    session.load(forked.id)
    session.run()


def _export_mode(cfg: DictConfig) -> None:
    config = _to_builder_config(cfg)
    from .sections import ensure_sections
    from .tools.document import build_document_layout

    proposal = ensure_sections(_repository(config).read(_require(cfg, "proposal_id")), config.brand)
    layout = build_document_layout(proposal, config.brand)
    fmt = str(cfg.get("format", "pdf")).lower()
    stem = Path(config.output_dir) / f"proposal-{proposal.id}-v{proposal.version}"

    if fmt == "pdf":
        from .tools.pdf_painter import paint_pdf
        out = paint_pdf(layout, stem.with_suffix(".pdf"))
    elif fmt == "docx":
        from .tools.docx_painter import paint_docx
        out = paint_docx(layout, stem.with_suffix(".docx"))
    elif fmt == "html":
        from .tools.html_painter import write_html
        out = write_html(layout, stem.with_suffix(".html"))
    else:
        console.print(f"[red]Unknown format {fmt!r}. Choose from: pdf, docx, html[/]")
        sys.exit(1)
    console.print(f"[green]Written to {out}[/]")


def _render_mode(cfg: DictConfig) -> None:
    from .tools.markdown_layout import render_markdown

    config = _to_builder_config(cfg)
    content = Path(_require(cfg, "markdown_file")).read_text(encoding="utf-8")
    for node in render_markdown(content, config.brand.accent_color, config.brand.body_font_size):
        console.print(node.model_dump(exclude_defaults=True))


def _draft_mode(cfg: DictConfig) -> None:
    config = _to_builder_config(cfg)
    from .agents.collaborator import make_transport
    from .agents.section_drafter import draft_section
    from .orchestrator import ChatOrchestrator
    from .sections import parse_section_key
    from .store import ProposalStore

    repository = _repository(config)
    store = ProposalStore(config.brand)
    proposal = store.load_proposal(repository.read(_require(cfg, "proposal_id")))
    key = parse_section_key(cfg.section) if cfg.get("section") else proposal.current_section

    text = draft_section(config, proposal, key)
    console.print(text, markup=False)

    orchestrator = ChatOrchestrator(store, make_transport(config), repository=repository, config=config)
    applied = orchestrator.apply_response(text, key)
    orchestrator.autosave()
    if applied:
        console.print(f"[green]Merged {len(applied)} field(s) into {key.value}[/]")
    else:
        console.print(f"[yellow]No section data found in the draft for {key.value}[/]")


_MODE_DISPATCH: dict[str, Any] = {
    "new": _new_mode,
    "resume": _resume_mode,
    "list": _list_mode,
    "revise": _revise_mode,
    "export": _export_mode,
    "render": _render_mode,
    "draft": _draft_mode,
}


# ---------------------------------------------------------------------------
# Hydra entry point
# ---------------------------------------------------------------------------


@hydra.main(config_path="conf", config_name="config", version_base=None)
def hydra_entry(cfg: DictConfig) -> None:
    """Hydra-managed CLI entry point."""
    setup_logging(verbose=cfg.get("verbose", False), quiet=cfg.get("quiet", False))

    mode = cfg.get("mode", "new")
    handler = _MODE_DISPATCH.get(mode)
    if handler is None:
        console.print(f"[red]Unknown mode: {mode!r}. Choose from: {', '.join(_MODE_DISPATCH)}[/]")
        sys.exit(1)

    try:
        handler(cfg)
    except (NotFoundError, PersistenceError, AICollaboratorError) as e:
        console.print(f"[red]{type(e).__name__}: {e.message}[/]")
        sys.exit(1)


def main() -> None:
    """Package entry point (``[project.scripts]`` target)."""
    hydra_entry()  # pylint: disable=no-value-for-parameter
