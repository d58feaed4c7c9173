from typing import List, Sequence, Tuple

from tree_sitter import Node

from ..analyzer.project import SourceFile
from .edits import line_removal


class ConsoleRemover:
    """Deletes whole statements from a file in a single batch edit."""

    def remove(self, file: SourceFile, statements: Sequence[Node]) -> int:
        """
        Removes the given statements (and the line breaks they leave behind).
        Statements nested inside another removed statement are skipped.

        Returns:
            Number of statements removed.
        """
        ranges: List[Tuple[int, int]] = []
        for node in sorted(statements, key=lambda n: (n.start_byte, -n.end_byte)):
            if ranges and node.start_byte < ranges[-1][1]:
                continue
            ranges.append((node.start_byte, node.end_byte))

        if not ranges:
            return 0

        file.apply_edits([line_removal(file.source, start, end) for start, end in ranges])
        return len(ranges)
