"""Report records and their table rendering."""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table


@dataclass(frozen=True)
class ReportEntry:
    """One unused (or removed) export."""
    file: str
    line: int
    kind: str
    name: str


@dataclass(frozen=True)
class ConsoleEntry:
    """One matched console statement."""
    file: str
    line: int
    statement: str


class ReportBuilder:
    """Accumulates entries in a stable order and renders them as rich tables."""

    def __init__(self):
        self.entries: List = []

    def __len__(self) -> int:
        return len(self.entries)

    def add(self, entry):
        self.entries.append(entry)

    def extend(self, entries: Iterable):
        self.entries.extend(entries)

    def sorted_entries(self) -> List:
        return sorted(self.entries, key=lambda e: (e.file, e.line))

    def exports_table(self, title: Optional[str] = None) -> Table:
        table = Table(title=title)
        table.add_column("File", style="magenta", no_wrap=False)
        table.add_column("Line", style="green", justify="right")
        table.add_column("Type", style="yellow")
        table.add_column("Name", style="cyan")
        for entry in self.sorted_entries():
            table.add_row(escape(entry.file), str(entry.line), entry.kind, escape(entry.name))
        return table

    def consoles_table(self, title: Optional[str] = None) -> Table:
        table = Table(title=title)
        table.add_column("File", style="magenta", no_wrap=False)
        table.add_column("Line", style="green", justify="right")
        table.add_column("Statement", style="cyan")
        for entry in self.sorted_entries():
            table.add_row(escape(entry.file), str(entry.line), escape(entry.statement))
        return table

    def render_unused_exports(self, console: Console, fixed: bool, skipped: Sequence[ReportEntry] = ()):
        """Print the unused-exports outcome the way the operator expects it.

        `skipped` holds unused exports a fix run could not strip; while any
        remain, no success message is printed.
        """
        if not self.entries and not skipped:
            console.print("[bold green]No unused exports found[/bold green]")
            return

        if not fixed:
            console.print("[bold yellow]The following exports have no external references "
                          "and the export keyword can be removed:[/bold yellow]")
            console.print(self.exports_table())
            console.print(f"\n[bold yellow]Unused exports:[/bold yellow] {len(self.entries)}")
            console.print("[dim]Pass the --fix flag to the script to remove unused exports[/dim]")
            return

        if self.entries:
            console.print("\n[bold]The following exports have been removed:[/bold]")
            console.print(self.exports_table(title="Removed Exports"))
        if skipped:
            remaining = ReportBuilder()
            remaining.extend(skipped)
            console.print("[bold yellow]These unused exports could not be removed automatically:[/bold yellow]")
            console.print(remaining.exports_table(title="Skipped Exports"))
            return
        console.print("[bold green]You have no unused exports now![/bold green]")

    def render_console_statements(self, console: Console, fixed: bool, callee: str, glob: str):
        if not self.entries:
            console.print(f"[bold green]Congratulations! You have no {escape(callee)} statements "
                          f"in {escape(glob)}[/bold green]")
            return

        if fixed:
            console.print(f"\n[bold]Removed {len(self.entries)} {escape(callee)} statements:[/bold]")
            console.print(self.consoles_table())
            return

        console.print(f"[bold yellow]Found {len(self.entries)} {escape(callee)} statements:[/bold yellow]")
        console.print(self.consoles_table())
        console.print(f"[dim]Pass a --fix argument to the script to remove all {escape(callee)} statements[/dim]")
