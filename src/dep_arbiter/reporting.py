"""
Reporting and output formatting for resolution results.

Provides color-coded console output using Rich library.
"""

from typing import List, Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .dependency import Dependency
from .naming import bazel_name
from .rules import ArbiterRule
from .structured_logging import RecordingArbitrationObserver


class ResolutionReporter:
    """Formats and displays the outcome of a resolution pass."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_resolution(
        self,
        inputs: Sequence[str],
        raw_count: int,
        resolved: Mapping[str, Dependency],
        observer: Optional[RecordingArbitrationObserver] = None,
        verbose: bool = False,
    ) -> None:
        """
        Print resolution results in a user-friendly format.

        Args:
            inputs: Files or directories that were read
            raw_count: Number of dependency records before deduplication
            resolved: The canonical mapping
            observer: Recorded events of the pass, used for the decision summary
            verbose: Also list every decision that was made
        """
        self.console.print()
        self._print_header(inputs)
        self._print_summary(raw_count, resolved, observer)

        if observer is not None and verbose:
            self._print_decisions(observer)

        if resolved:
            self._print_dependencies(resolved)
        else:
            self.console.print("✅ No dependencies found to resolve.", style="green")

    def _print_header(self, inputs: Sequence[str]) -> None:
        header_text = "📦 Resolving: " + escape(", ".join(inputs))
        self.console.print(
            Panel(
                header_text,
                title="[bold blue]Dep-Arbiter[/bold blue]",
                border_style="blue",
            )
        )

    def _print_summary(
        self,
        raw_count: int,
        resolved: Mapping[str, Dependency],
        observer: Optional[RecordingArbitrationObserver],
    ) -> None:
        table = Table(title="📊 Summary", box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="center")

        table.add_row("Input records", str(raw_count))
        table.add_row("Resolved dependencies", f"[bold green]{len(resolved)}[/bold green]")

        if observer is not None:
            event_types = observer.event_types()
            table.add_row("Ignored (test scope)", str(event_types.count("dependency_ignored")))
            table.add_row(
                "Version conflicts arbitrated",
                str(event_types.count("dependency_selected")),
            )
            table.add_row("Pinned by rule", str(event_types.count("rule_pinned")))
            table.add_row(
                "Decided by winningVersion rule",
                str(event_types.count("rule_preferred")),
            )

        self.console.print(table)
        self.console.print()

    def _print_decisions(self, observer: RecordingArbitrationObserver) -> None:
        lines: List[str] = []
        for event_type, fields in observer.events:
            if event_type == "dependency_selected":
                chosen = fields["chosen"]
                lines.append(
                    f"• {escape(chosen.logical_identity)}: chose "
                    f"[green]{escape(chosen.version.label)}[/green] over "
                    f"{escape(fields['existing'].version.label)} / "
                    f"{escape(fields['candidate'].version.label)}"
                )
            elif event_type == "rule_pinned":
                dep = fields["dependency"]
                lines.append(
                    f"• {escape(dep.logical_identity)}: pinned to "
                    f"[yellow]{escape(dep.version.label)}[/yellow]"
                )
            elif event_type == "rule_preferred":
                chosen = fields["chosen"]
                lines.append(
                    f"• {escape(chosen.logical_identity)}: rule preferred "
                    f"[yellow]{escape(chosen.version.label)}[/yellow]"
                )

        if not lines:
            return

        self.console.print(
            Panel(
                "\n".join(lines),
                title="[bold]⚖️  Decisions[/bold]",
                border_style="cyan",
            )
        )

    def _print_dependencies(self, resolved: Mapping[str, Dependency]) -> None:
        table = Table(title="📋 Resolved Dependencies", box=box.SIMPLE, title_style="bold")
        table.add_column("Dependency", style="bold")
        table.add_column("Version", justify="center")
        table.add_column("Scope", justify="center")
        table.add_column("Bazel Name", style="dim")

        for identity, dep in resolved.items():
            table.add_row(
                escape(identity),
                escape(dep.version.label),
                dep.scope.value,
                escape(bazel_name(dep)),
            )

        self.console.print(table)
        self.console.print()

    def print_rules(self, rules: Sequence[ArbiterRule], source: str) -> None:
        """Print a rule list as loaded from ``source``."""
        table = Table(
            title=f"📜 Rules in {escape(source)}", box=box.ROUNDED, title_style="bold cyan"
        )
        table.add_column("#", justify="right")
        table.add_column("Kind")
        table.add_column("groupId")
        table.add_column("artifactId")
        table.add_column("pinnedVersion")
        table.add_column("winningVersion")

        for index, rule in enumerate(rules, 1):
            if rule.is_pin:
                kind = "[yellow]pin[/yellow]"
            elif rule.is_tie_break:
                kind = "[cyan]tie break[/cyan]"
            else:
                kind = "[dim]no-op[/dim]"
            table.add_row(
                str(index),
                kind,
                escape(rule.group_pattern),
                escape(rule.artifact_pattern),
                escape(rule.pinned_version or "-"),
                escape(rule.winning_version or "-"),
            )

        self.console.print(table)
