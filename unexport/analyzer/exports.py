"""Export enumeration: the exported top-level declarations of one file."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
import logging

from tree_sitter import Node

from .bindings import (
    NAMED_EXPRESSIONS, ModuleBindingCollector, ModuleBindings, declared_in, has_default_keyword, strip_quotes,
    unwrap_ambient,
)
from .project import SourceFile

logger = logging.getLogger(__name__)


class DeclarationKind(str, Enum):
    FUNCTION = 'Function'
    CLASS = 'Class'
    VARIABLE = 'Variable'
    INTERFACE = 'Interface'
    TYPE_ALIAS = 'TypeAlias'
    ENUM = 'Enum'
    NAMESPACE = 'Namespace'
    EXPRESSION = 'Expression'


KIND_BY_NODE_TYPE = {
    'function_declaration': DeclarationKind.FUNCTION,
    'generator_function_declaration': DeclarationKind.FUNCTION,
    'function_signature': DeclarationKind.FUNCTION,
    'function_expression': DeclarationKind.FUNCTION,
    'function': DeclarationKind.FUNCTION,
    'generator_function': DeclarationKind.FUNCTION,
    'arrow_function': DeclarationKind.FUNCTION,
    'class_declaration': DeclarationKind.CLASS,
    'abstract_class_declaration': DeclarationKind.CLASS,
    'class': DeclarationKind.CLASS,
    'variable_declarator': DeclarationKind.VARIABLE,
    'interface_declaration': DeclarationKind.INTERFACE,
    'type_alias_declaration': DeclarationKind.TYPE_ALIAS,
    'enum_declaration': DeclarationKind.ENUM,
    'internal_module': DeclarationKind.NAMESPACE,
    'module': DeclarationKind.NAMESPACE,
    'import_alias': DeclarationKind.NAMESPACE,
}


def kind_of(node: Node) -> DeclarationKind:
    return KIND_BY_NODE_TYPE.get(unwrap_ambient(node).type, DeclarationKind.EXPRESSION)


@dataclass
class DeclarationSite:
    """One declaration contributing to an exported name."""
    file: SourceFile
    node: Node
    name_node: Optional[Node]
    local_name: Optional[str]
    kind: DeclarationKind
    marker: Optional[Node] = None   # export_specifier or `export default x;` statement
    resolvable: bool = True
    reason: Optional[str] = None

    @property
    def line(self) -> int:
        return self.file.line_of(self.name_node if self.name_node is not None else self.node)

    @property
    def start_byte(self) -> int:
        return self.node.start_byte


@dataclass
class ExportedSymbol:
    """All declarations exported under one external name of a file."""
    file: SourceFile
    name: str
    sites: List[DeclarationSite] = field(default_factory=list)
    merged: bool = False

    @property
    def first_site(self) -> DeclarationSite:
        return self.sites[0]

    @property
    def kind(self) -> DeclarationKind:
        return self.first_site.kind

    @property
    def line(self) -> int:
        return self.first_site.line

    @property
    def resolvable(self) -> bool:
        return not self.merged and all(site.resolvable for site in self.sites)

    @property
    def reason(self) -> Optional[str]:
        if self.merged:
            return 'merged declaration'
        for site in self.sites:
            if not site.resolvable:
                return site.reason
        return None

    @property
    def local_names(self) -> List[str]:
        names = []
        for site in self.sites:
            if site.local_name is not None and site.local_name not in names:
                names.append(site.local_name)
        return names


class ExportEnumerator:
    """
    Lists the exported top-level declarations of a file, grouped by the
    external name they are exported under.
    """

    def __init__(self, collector: Optional[ModuleBindingCollector] = None):
        self.collector = collector or ModuleBindingCollector()

    def exports_of(self, file: SourceFile) -> List[ExportedSymbol]:
        bindings = self.collector.collect(file.root_node)
        symbols: Dict[Tuple[str, str], ExportedSymbol] = {}

        def add(key: Tuple[str, str], site: DeclarationSite):
            symbol = symbols.get(key)
            if symbol is None:
                symbol = symbols[key] = ExportedSymbol(file, key[1])
            if not any(s.node == site.node and s.marker == site.marker for s in symbol.sites):
                symbol.sites.append(site)

        for statement in file.root_node.named_children:
            if statement.type == 'export_statement':
                if statement.child_by_field_name('source') is None:
                    self._enumerate_export(file, statement, bindings, add)
            elif statement.type == 'ambient_declaration':
                self._enumerate_ambient_module(file, statement, add)

        result = list(symbols.values())
        for symbol in result:
            symbol.sites.sort(key=lambda s: s.start_byte)
            symbol.merged = self._is_merged(symbol, bindings)
            if file.has_syntax_errors:
                for site in symbol.sites:
                    site.resolvable = False
                    site.reason = 'file has syntax errors'
        result.sort(key=lambda s: s.first_site.start_byte)
        logger.debug("%s: %d exported names", file.path, len(result))
        return result

    def _enumerate_export(self, file: SourceFile, statement: Node, bindings: ModuleBindings, add):
        is_default = has_default_keyword(statement)
        declaration = statement.child_by_field_name('declaration')
        if declaration is not None:
            target = unwrap_ambient(declaration)
            if target.type == 'import_alias':
                # export import A = B.C
                name_node = target.named_children[0]
                local = file.text_of(name_node)
                add(('', local), DeclarationSite(file, target, name_node, local, DeclarationKind.NAMESPACE,
                                                 resolvable=False, reason='export import alias'))
                return
            declared = declared_in(declaration)
            if not declared:
                name = 'default' if is_default else file.text_of(target).split('{')[0].strip()
                add(('', name), DeclarationSite(file, target, None, None, kind_of(target),
                                                resolvable=False, reason='anonymous or ambient module export'))
                return
            for d in declared:
                local = file.text_of(d.name_node)
                external = 'default' if is_default else local
                add(('', external), DeclarationSite(file, d.node, d.name_node, local, kind_of(d.node)))
            return

        value = statement.child_by_field_name('value')
        if value is not None:
            if value.type == 'identifier':
                local = file.text_of(value)
                # Default export of an imported binding is a re-export, not a declaration
                for d in bindings.declarations.get(local, []):
                    add(('', 'default'), DeclarationSite(file, d.node, d.name_node, local, kind_of(d.node),
                                                         marker=statement))
                return
            name_node = value.child_by_field_name('name')
            if value.type in NAMED_EXPRESSIONS and name_node is not None:
                # export default function main() {}
                add(('', 'default'), DeclarationSite(file, value, name_node, file.text_of(name_node),
                                                     kind_of(value)))
                return
            add(('', 'default'), DeclarationSite(file, value, name_node, None, kind_of(value),
                                                 resolvable=False, reason='anonymous default export'))
            return

        for clause in statement.named_children:
            if clause.type != 'export_clause':
                continue
            for specifier in clause.named_children:
                if specifier.type != 'export_specifier':
                    continue
                name_node = specifier.child_by_field_name('name')
                alias_node = specifier.child_by_field_name('alias')
                local = strip_quotes(file.text_of(name_node))
                external = strip_quotes(file.text_of(alias_node)) if alias_node is not None else local
                for d in bindings.declarations.get(local, []):
                    add(('', external), DeclarationSite(file, d.node, d.name_node, local, kind_of(d.node),
                                                        marker=specifier))

    def _enumerate_ambient_module(self, file: SourceFile, statement: Node, add):
        """Exports inside `declare module "x" {}` and `declare global {}`."""
        inner = unwrap_ambient(statement)
        if inner.type == 'statement_block':
            scope, body = 'global', inner
        elif inner.type == 'module' and inner.child_by_field_name('name') is not None \
                and inner.child_by_field_name('name').type == 'string':
            scope = strip_quotes(file.text_of(inner.child_by_field_name('name')))
            body = inner.child_by_field_name('body')
        else:
            return
        if body is None:
            return
        for child in body.named_children:
            if child.type != 'export_statement':
                continue
            declaration = child.child_by_field_name('declaration')
            for d in declared_in(declaration) if declaration is not None else []:
                local = file.text_of(d.name_node)
                add((scope, local), DeclarationSite(file, d.node, d.name_node, local, kind_of(d.node),
                                                    resolvable=False, reason='ambient module declaration'))

    @staticmethod
    def _is_merged(symbol: ExportedSymbol, bindings: ModuleBindings) -> bool:
        """Mixed declaration kinds under one name (function overloads excepted)."""
        kinds = {site.kind for site in symbol.sites}
        for local in symbol.local_names:
            for d in bindings.declarations.get(local, []):
                kinds.add(kind_of(d.node))
        return len(kinds) > 1
