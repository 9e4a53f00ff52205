"""Interactive terminal session: the chat panel and preview in one loop.

Plain text is a chat turn on the current section. Slash commands:

``/confirm``       confirm the current section and open the next one
``/jump <key>``    re-open a confirmed section
``/offline``       manual entry instead of AI turns
``/online``        back to AI turns
``/manual``        enter the current section's data by hand
``/preview``       show the document as it stands (current section included)
``/status``        section progress table
``/quit``          leave (progress is auto-saved after every turn)
"""

from __future__ import annotations

import logging
from typing import Any

import yaml
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .advancement import AdvancementEngine
from .agents.collaborator import ChatTransport, make_transport
from .errors import ValidationError
from .logging_config import RichCallbacks, console
from .models import (
    BuilderConfig,
    ManualEntryRequest,
    ManualEntryTrigger,
    ProposalAggregate,
    SectionStatus,
    TurnResult,
    new_id,
)
from .orchestrator import ChatOrchestrator
from .persistence import ProposalRepository
from .sections import SECTION_KEYS, parse_section_key, section_meta
from .store import ProposalStore
from .tools.document import build_document_layout
from .tools.markdown_layout import to_plain_text

logger = logging.getLogger(__name__)

QUIT_COMMANDS = {"/quit", "/exit", "/q"}


class InteractiveSession:
    """Wires store, advancement engine, orchestrator and repository for one proposal."""

    def __init__(
        self,
        config: BuilderConfig,
        repository: ProposalRepository,
        transport: ChatTransport | None = None,
        out: Console | None = None,
    ) -> None:
        self.config = config
        self.repository = repository
        self.console = out or console
        self.store = ProposalStore(config.brand)
        self.engine = AdvancementEngine(self.store)
        self.orchestrator = ChatOrchestrator(
            self.store,
            transport or make_transport(config),
            engine=self.engine,
            repository=repository,
            config=config,
            callbacks=RichCallbacks(),
        )

    # ------------------------------------------------------------------
    # Opening a proposal
    # ------------------------------------------------------------------

    def new_proposal(self, **fields: Any) -> ProposalAggregate:
        """Create, persist and load a fresh proposal."""
        proposal = self.store.init_proposal(new_id(), **{k: v for k, v in fields.items() if v})
        self.repository.create(proposal)
        return proposal

    def load(self, proposal_id: str) -> ProposalAggregate:
        """Load a stored proposal into the session (NotFoundError propagates)."""
        return self.store.load_proposal(self.repository.read(proposal_id))

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        proposal = self.store.proposal
        if proposal is None:
            raise ValidationError("No proposal loaded")
        self.console.rule(f"[bold]{proposal.project_title or 'New proposal'}[/] v{proposal.version}")
        self.handle_result(self.orchestrator.start())
        try:
            while True:
                meta = section_meta(self.store.proposal.current_section)
                line = Prompt.ask(f"\n[bold]Section {meta.ordinal}: {meta.title}[/]", console=self.console)
                if not self.handle_input(line):
                    break
        finally:
            self.orchestrator.close()

    def handle_input(self, line: str) -> bool:
        """Process one line of input; False ends the session."""
        text = line.strip()
        if not text:
            return True
        if not text.startswith("/"):
            try:
                result = self.orchestrator.send_message(text)
            except ValidationError as e:
                self.console.print(e.message, style="red", markup=False, highlight=False)
                return True
            self.handle_result(result)
            return True

        command, _, arg = text.partition(" ")
        command = command.lower()
        if command in QUIT_COMMANDS:
            return False
        if command == "/confirm":
            self.handle_result(self.orchestrator.confirm_section())
        elif command == "/jump":
            self._jump(arg.strip())
        elif command == "/offline":
            self.orchestrator.offline = True
            self.console.print("[yellow]Offline mode:[/] messages open the manual entry form.")
        elif command == "/online":
            self.orchestrator.offline = False
            self.console.print("[green]Online mode.[/]")
        elif command == "/manual":
            request = self.orchestrator.manual_entry_request(ManualEntryTrigger.OFFLINE, "Manual entry")
            if request is not None:
                self._manual_entry(request)
        elif command == "/preview":
            self.show_preview()
        elif command == "/status":
            self.show_status()
        else:
            self.console.print(f"[red]Unknown command {command!r}.[/] Try /confirm, /jump, /preview, /status, /quit.")
        return True

    def _jump(self, arg: str) -> None:
        try:
            self.engine.reopen_section(parse_section_key(arg))
        except (ValueError, ValidationError) as e:
            self.console.print(f"[red]{e}[/]")
            return
        meta = section_meta(self.store.proposal.current_section)
        self.console.print(f"Re-opened Section {meta.ordinal}: {meta.title}")

    def handle_result(self, result: TurnResult | None) -> None:
        if result is None or result.ignored:
            return
        if result.manual_entry is not None:
            if result.error:
                self.console.print(self.store.messages[-1].content, style="red", markup=False, highlight=False)
            self._manual_entry(result.manual_entry)

    # ------------------------------------------------------------------
    # Manual entry form
    # ------------------------------------------------------------------

    def _manual_entry(self, request: ManualEntryRequest) -> None:
        title = section_meta(request.section_key).title
        if not Confirm.ask(f"Enter the {title} details manually?", default=True, console=self.console):
            return
        data = self.collect_fields(request.initial_data)
        self.handle_result(self.orchestrator.submit_manual_entry(data, request.trigger))
        if request.trigger == ManualEntryTrigger.OFFLINE:
            self.console.print("Saved. Use [bold]/confirm[/] when the section looks right.")

    def collect_fields(self, initial: dict[str, Any]) -> dict[str, Any]:
        """Prompt for every field, keeping the current value on an empty answer.

        Lists and objects are edited as one-line YAML, e.g. ``[a, b]``.
        """
        data: dict[str, Any] = {}
        for name, current in initial.items():
            if isinstance(current, (list, dict)):
                shown = yaml.safe_dump(current, default_flow_style=True, sort_keys=False).strip()
                raw = Prompt.ask(f"{name} [dim](YAML)[/]", default=shown, console=self.console)
                try:
                    data[name] = yaml.safe_load(raw)
                except yaml.YAMLError as e:
                    self.console.print(f"[red]Invalid YAML for {name}, keeping the current value:[/] {e}")
                    data[name] = current
            elif isinstance(current, bool):
                data[name] = Confirm.ask(name, default=current, console=self.console)
            else:
                raw = Prompt.ask(name, default=str(current), console=self.console)
                data[name] = _coerce_like(current, raw)
        return data

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def show_preview(self) -> None:
        layout = build_document_layout(self.store.proposal, self.config.brand, preview=True)
        for section in layout.sections:
            self.console.rule(f"{section.ordinal}. {section.title}")
            self.console.print(to_plain_text(section.nodes), markup=False, highlight=False)

    def show_status(self) -> None:
        proposal = self.store.proposal
        table = Table(title=f"{proposal.project_title or 'Proposal'} v{proposal.version} ({proposal.status.value})")
        table.add_column("#", justify="right")
        table.add_column("Section")
        table.add_column("Status")
        for key in SECTION_KEYS:
            meta = section_meta(key)
            status = proposal.sections[key].status
            marker = " <" if key == proposal.current_section else ""
            colour = "green" if status == SectionStatus.CONFIRMED else "white"
            table.add_row(str(meta.ordinal), meta.title + marker, f"[{colour}]{status.value}[/]")
        self.console.print(table)


def _coerce_like(current: Any, raw: str) -> Any:
    """Convert *raw* to the type of *current*, falling back to the string."""
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError:
            return raw
    if isinstance(current, float):
        try:
            return float(raw)
        except ValueError:
            return raw
    return raw
