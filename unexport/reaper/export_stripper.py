from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set, Tuple
import logging

from tree_sitter import Node

from ..analyzer.exports import DeclarationSite, ExportEnumerator, ExportedSymbol
from ..analyzer.project import Edit, SourceFile
from ..analyzer.scopes import pattern_names
from ..errors import UnsupportedMutationTarget
from .edits import line_removal

logger = logging.getLogger(__name__)


@dataclass
class StripResult:
    stripped: List[ExportedSymbol] = field(default_factory=list)
    skipped: List[Tuple[ExportedSymbol, str]] = field(default_factory=list)


class ExportStripper:
    """
    Removes the export marker from unused exported symbols with byte-range
    edits on the owning file, reparsing after every edit.
    """

    # Parent hops from a declaration node to the statement carrying `export`.
    # An ambient_declaration wrapper (`export declare ...`) adds one hop.
    EXPORT_BEARING_HOPS = {
        'function_declaration': 1,
        'generator_function_declaration': 1,
        'function_signature': 1,
        'class_declaration': 1,
        'abstract_class_declaration': 1,
        'interface_declaration': 1,
        'type_alias_declaration': 1,
        'enum_declaration': 1,
        'internal_module': 1,
        'module': 1,
        'variable_declarator': 2,
        # export default function main() {} / export default class Main {}
        'function_expression': 1,
        'function': 1,
        'generator_function': 1,
        'class': 1,
    }

    def __init__(self, enumerator: Optional[ExportEnumerator] = None):
        self.enumerator = enumerator or ExportEnumerator()

    def strip_all(self, symbols: List[ExportedSymbol]) -> StripResult:
        """Strip a batch of symbols; symbols that lose no marker are reported as skipped."""
        result = StripResult()
        batch = {(symbol.file.path, symbol.name) for symbol in symbols}
        for symbol in symbols:
            count, reason = self._strip(symbol, batch)
            # a destructuring statement shared with an earlier symbol may already be stripped
            if count or (symbol.resolvable and self._current(symbol.file, symbol.name) is None):
                result.stripped.append(symbol)
            else:
                result.skipped.append((symbol, reason or 'nothing to strip'))
        return result

    def strip(self, symbol: ExportedSymbol) -> int:
        """Remove the export marker from every strippable site of a symbol.

        The symbol is re-enumerated from the file's current tree before every
        edit, so nodes from an earlier revision are never touched.

        Returns:
            Number of declaration sites that lost their export marker
        """
        return self._strip(symbol, {(symbol.file.path, symbol.name)})[0]

    def _strip(self, symbol: ExportedSymbol, batch: Set[Tuple[Path, str]]) -> Tuple[int, Optional[str]]:
        if not symbol.resolvable:
            logger.warning("Not stripping %s in %s: %s", symbol.name, symbol.file.path, symbol.reason)
            return 0, symbol.reason

        file = symbol.file
        stripped = 0
        unsupported: Set[Tuple[Optional[str], str]] = set()
        last_reason = None

        # every edit removes at least one site, so the number of rounds is bounded
        for _ in range(len(symbol.sites) + 1):
            current = self._current(file, symbol.name)
            if current is None:
                break

            edits, count = None, 0
            for site in current.sites:
                key = (site.local_name, file.text_of(site.node))
                if key in unsupported:
                    continue
                try:
                    edits, count = self._edits_for(file, site, current, batch)
                    break
                except UnsupportedMutationTarget as e:
                    unsupported.add(key)
                    last_reason = e.reason
                    logger.warning("Skipping %s at %s:%d: %s", symbol.name, file.path, site.line, e.reason)

            if edits is None:
                break
            file.apply_edits(edits)
            stripped += count
            logger.info("Removed export from %s %s (%s)", current.kind.value, symbol.name, file.path)

        return stripped, last_reason

    def _current(self, file: SourceFile, name: str) -> Optional[ExportedSymbol]:
        for symbol in self.enumerator.exports_of(file):
            if symbol.name == name and symbol.resolvable:
                return symbol
        return None

    def export_bearing_node(self, site: DeclarationSite, batch: Set[Tuple[Path, str]] = frozenset()) -> Node:
        """The node whose export marker governs a declaration site.

        A destructuring declarator is only supported when it is the sole
        declarator of its statement and every name it binds is in `batch`.

        Raises:
            UnsupportedMutationTarget: If the marker cannot be located or toggled
        """
        if site.marker is not None:
            return site.marker

        node = site.node
        hops = self.EXPORT_BEARING_HOPS.get(node.type)
        if hops is None:
            raise UnsupportedMutationTarget(node.type, "no export marker for this declaration form")
        if node.type == 'variable_declarator' and node.child_by_field_name('name') != site.name_node:
            self._check_destructuring(site, batch)

        current = node
        for _ in range(hops):
            current = current.parent
            if current is None:
                break
        if current is not None and current.type == 'ambient_declaration':
            current = current.parent
        if current is None or current.type != 'export_statement':
            raise UnsupportedMutationTarget(node.type, "export marker not found on the enclosing statement")
        return current

    def _check_destructuring(self, site: DeclarationSite, batch: Set[Tuple[Path, str]]):
        declarator = site.node
        names = [site.file.text_of(n) for n in pattern_names(declarator.child_by_field_name('name'))]
        if self._declarator_count(declarator.parent) > 1 \
                or not all((site.file.path, name) in batch for name in names):
            raise UnsupportedMutationTarget(declarator.type, "destructuring pattern binds several names")

    def _edits_for(self, file: SourceFile, site: DeclarationSite, symbol: ExportedSymbol,
                   batch: Set[Tuple[Path, str]] = frozenset()) -> Tuple[List[Edit], int]:
        bearing = self.export_bearing_node(site, batch)
        source = file.source

        if bearing.type == 'export_specifier':
            shared = sum(1 for s in symbol.sites if s.marker == bearing)
            clause = bearing.parent
            specifiers = [c for c in clause.named_children if c.type == 'export_specifier']
            if len(specifiers) == 1:
                return [self._statement_removal(source, clause.parent)], shared
            start, end = self._list_item_range(clause, bearing)
            return [(start, end, b'')], shared

        if site.marker is not None:
            # export default name;
            shared = sum(1 for s in symbol.sites if s.marker == bearing)
            return [self._statement_removal(source, bearing)], shared

        declaration_list = site.node.parent if site.node.type == 'variable_declarator' else None
        if declaration_list is not None and self._declarator_count(declaration_list) > 1:
            return self._split_declarator(source, bearing, declaration_list, site.node), 1

        export_token = next((c for c in bearing.children if c.type == 'export'), None)
        declaration = bearing.child_by_field_name('declaration') or bearing.child_by_field_name('value')
        if export_token is None or declaration is None:
            raise UnsupportedMutationTarget(bearing.type, "export keyword not found")
        # Drops `export` and `default` up to the declaration itself
        return [(export_token.start_byte, declaration.start_byte, b'')], 1

    @staticmethod
    def _declarator_count(declaration_list: Node) -> int:
        return sum(1 for c in declaration_list.named_children if c.type == 'variable_declarator')

    def _split_declarator(self, source: bytes, statement: Node, declaration_list: Node,
                          declarator: Node) -> List[Edit]:
        """`export const a = 1, b = 2;` -> `const a = 1;` + `export const b = 2;`"""
        keyword_node = declaration_list.child_by_field_name('kind')
        keyword = keyword_node.text.decode('utf-8') if keyword_node is not None else 'var'
        prefix = 'declare ' if declaration_list.parent.type == 'ambient_declaration' else ''

        line_start = source.rfind(b'\n', 0, statement.start_byte) + 1
        indent = source[line_start:statement.start_byte]
        if indent.strip():
            indent = b''

        declarator_text = source[declarator.start_byte:declarator.end_byte]
        moved = f"{prefix}{keyword} ".encode('utf-8') + declarator_text + b";\n" + indent
        start, end = self._list_item_range(declaration_list, declarator)
        return [(statement.start_byte, statement.start_byte, moved), (start, end, b'')]

    @staticmethod
    def _list_item_range(container: Node, item: Node) -> Tuple[int, int]:
        """Byte range of a comma-separated item together with one adjacent comma."""
        children = container.children
        index = next(i for i, c in enumerate(children) if c == item)
        following = children[index + 1] if index + 1 < len(children) else None
        if following is not None and following.type == ',':
            after = children[index + 2] if index + 2 < len(children) else None
            if after is not None and after.type not in ('}', ';'):
                return item.start_byte, after.start_byte
            return item.start_byte, following.end_byte
        preceding = children[index - 1] if index > 0 else None
        if preceding is not None and preceding.type == ',':
            return preceding.start_byte, item.end_byte
        return item.start_byte, item.end_byte

    @staticmethod
    def _statement_removal(source: bytes, statement: Node) -> Edit:
        return line_removal(source, statement.start_byte, statement.end_byte)
