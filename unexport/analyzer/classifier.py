"""Unused-export classification: exports with no reference outside their file."""
from dataclasses import dataclass
from typing import Iterator, List, Optional
import logging

from .exports import ExportEnumerator, ExportedSymbol
from .project import ProjectIndex, SourceFile
from .reference_tracker import ReferenceTracker
from ..errors import UnresolvableReferenceError
from ..report import ReportEntry

logger = logging.getLogger(__name__)


@dataclass
class UnusedExport:
    symbol: ExportedSymbol
    entry: ReportEntry


class UnusedExportClassifier:
    """Detect exported symbols with zero external references.

    Symbols that cannot be soundly resolved are never classified as unused.
    Classification only reads trees; it never edits a file.
    """

    def __init__(self, project: ProjectIndex, tracker: Optional[ReferenceTracker] = None,
                 enumerator: Optional[ExportEnumerator] = None):
        self.project = project
        self.tracker = tracker or ReferenceTracker(project)
        self.enumerator = enumerator or ExportEnumerator(self.tracker.collector)

    def classify(self) -> List[ReportEntry]:
        return [unused.entry for unused in self.find_unused()]

    def find_unused(self) -> List[UnusedExport]:
        unused = []
        for file in self.project:
            unused.extend(self._unused_in(file))
        logger.info("%d unused exports in %d files", len(unused), len(self.project))
        return unused

    def _unused_in(self, file: SourceFile) -> Iterator[UnusedExport]:
        for symbol in self.enumerator.exports_of(file):
            try:
                if self.tracker.has_external_reference(symbol):
                    continue
            except UnresolvableReferenceError as e:
                logger.debug("Skipping %s in %s: %s", symbol.name, file.path, e.reason)
                continue
            yield UnusedExport(symbol, self.entry_for(symbol))

    def entry_for(self, symbol: ExportedSymbol) -> ReportEntry:
        return ReportEntry(
            file=self.project.relative_path(symbol.file),
            line=symbol.line,
            kind=symbol.kind.value,
            name=symbol.name,
        )
