"""Finds statements that call a diagnostic object such as `console`."""
from typing import List, Optional, Tuple

from tree_sitter import Node

from .project import ProjectIndex, SourceFile
from ..report import ConsoleEntry


class ConsoleScanner:
    """Matches expression statements whose text starts with a callee prefix (default `console.`)."""

    def __init__(self, project: ProjectIndex, prefix: str = 'console.'):
        self.project = project
        self.prefix = prefix

    def scan(self, file: SourceFile) -> List[Tuple[Node, ConsoleEntry]]:
        matches = []
        relative = self.project.relative_path(file)
        stack = [file.root_node]
        while stack:
            node = stack.pop()
            if node.type == 'expression_statement':
                expression = self._expression_of(node)
                text = file.text_of(expression) if expression is not None else ''
                if text.startswith(self.prefix):
                    entry = ConsoleEntry(relative, file.line_of(node), text.split('(')[0])
                    matches.append((node, entry))
            # Reverse so the stack pops in source order
            stack.extend(reversed(node.named_children))
        return matches

    @staticmethod
    def _expression_of(statement: Node) -> Optional[Node]:
        for child in statement.named_children:
            if child.type != 'comment':
                return child
        return None
