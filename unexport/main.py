"""unexport CLI - find exports nothing else imports, and strip their export keyword."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging

import typer
from rich.console import Console
from rich.markup import escape

from .analyzer.classifier import UnusedExportClassifier
from .analyzer.console_scanner import ConsoleScanner
from .analyzer.project import ProjectIndex
from .config import RunConfig, __version__, get_settings
from .errors import ConfigurationError
from .reaper.console_remover import ConsoleRemover
from .reaper.export_stripper import ExportStripper
from .report import ConsoleEntry, ReportBuilder, ReportEntry
from .utils.logger import configure_logging
from .utils.safe_console import SafeConsole

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="unexport",
    help="Find exports with no external references and remove the export keyword",
    add_completion=False
)
console = SafeConsole()

EXPORTS_EXAMPLE = "unexport exports --glob './(src|apps|libs)/**/*.(ts|tsx)'"
CONSOLES_EXAMPLE = "unexport consoles --glob './(src|apps|libs)/**/!(*.test|*.spec).(ts|tsx)'"


@dataclass
class ExportsResult:
    entries: List[ReportEntry] = field(default_factory=list)
    skipped: List[ReportEntry] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)
    fixed: bool = False


@dataclass
class ConsoleResult:
    entries: List[ConsoleEntry] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)
    fixed: bool = False


def load_project(config: RunConfig) -> ProjectIndex:
    """Load the analyzed file set described by a run configuration.

    Raises:
        ConfigurationError: If no project root or file set can be established
    """
    if not config.glob:
        raise ConfigurationError("Please provide a file glob to search")
    return ProjectIndex.load(config.glob, tsconfig_path=config.tsconfig_path, cwd=config.cwd)


def run_unused_exports(config: RunConfig, console: Optional[Console] = None) -> ExportsResult:
    """Classify every export of the project, optionally strip the unused ones.

    The whole project is classified before any file is edited. Files are
    saved once at the end; files without edits are never rewritten.
    """
    project = load_project(config)
    classifier = UnusedExportClassifier(project)
    unused = classifier.find_unused()

    result = ExportsResult(fixed=config.fix)
    if config.fix:
        stripper = ExportStripper(classifier.enumerator)
        outcome = stripper.strip_all([u.symbol for u in unused])
        stripped = {id(symbol) for symbol in outcome.stripped}
        for u in unused:
            (result.entries if id(u.symbol) in stripped else result.skipped).append(u.entry)
    else:
        result.entries = [u.entry for u in unused]

    result.written = [file.path for file in project.save_all()]

    if console is not None:
        report = ReportBuilder()
        report.extend(result.entries)
        report.render_unused_exports(console, fixed=config.fix, skipped=result.skipped)
    return result


def run_console_scan(config: RunConfig, console: Optional[Console] = None) -> ConsoleResult:
    """List (and with fix, delete) statements calling the configured callee."""
    project = load_project(config)
    scanner = ConsoleScanner(project, prefix=config.callee_prefix)
    remover = ConsoleRemover()

    report = ReportBuilder()
    for file in project:
        logger.info("Checking %s...", project.relative_path(file))
        matches = scanner.scan(file)
        for _, entry in matches:
            report.add(entry)
        if config.fix and matches:
            removed = remover.remove(file, [node for node, _ in matches])
            logger.info("Removed %d statements from %s", removed, project.relative_path(file))

    result = ConsoleResult(entries=list(report.entries), fixed=config.fix)
    result.written = [file.path for file in project.save_all()]

    if console is not None:
        report.render_console_statements(console, fixed=config.fix, callee=config.callee, glob=config.glob)
    return result


def _fail(error: ConfigurationError, example: str):
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    console.print(f"[dim]Example:[/dim] {escape(example)}")
    raise typer.Exit(1)


@app.command()
def exports(
    glob: Optional[str] = typer.Option(None, "--glob", "-g", help="Files to analyze, e.g. './src/**/*.(ts|tsx)'"),
    fix: bool = typer.Option(False, "--fix", help="Remove the export keyword from unused exports"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Path to tsconfig.json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug diagnostics"),
):
    """Report exports that no other file references."""
    configure_logging(verbose)
    settings = get_settings()
    config = RunConfig(
        glob=glob or settings.glob or "",
        fix=fix,
        tsconfig_path=Path(project or settings.tsconfig),
        cwd=Path.cwd(),
    )
    try:
        run_unused_exports(config, console=console)
    except ConfigurationError as e:
        _fail(e, EXPORTS_EXAMPLE)


@app.command()
def consoles(
    glob: Optional[str] = typer.Option(None, "--glob", "-g", help="Files to scan"),
    fix: bool = typer.Option(False, "--fix", help="Delete the matched statements"),
    callee: Optional[str] = typer.Option(None, "--callee", help="Object whose calls are matched (default: console)"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Path to tsconfig.json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug diagnostics"),
):
    """Report statements that call console.* (or another callee)."""
    configure_logging(verbose)
    settings = get_settings()
    config = RunConfig(
        glob=glob or settings.glob or "",
        fix=fix,
        tsconfig_path=Path(project or settings.tsconfig),
        cwd=Path.cwd(),
        callee=callee or settings.callee,
    )
    try:
        run_console_scan(config, console=console)
    except ConfigurationError as e:
        _fail(e, CONSOLES_EXAMPLE)


@app.command()
def version():
    """Print the installed version."""
    console.print(f"unexport {__version__}")


@app.callback()
def main():
    """unexport - find and remove unused exports in TypeScript/JavaScript projects."""
    pass


if __name__ == "__main__":
    app()
