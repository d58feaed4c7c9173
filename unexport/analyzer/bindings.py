from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tree_sitter import Node

from .scopes import declaration_name, pattern_names


@dataclass
class ImportBinding:
    """A local name bound by an import (ESM or CommonJS require)."""
    local_name: str
    source_module: str
    node: Node                          # the local identifier or specifier
    original_name: Optional[str] = None  # exported name, 'default'; None for namespaces
    is_namespace: bool = False


@dataclass
class ReExport:
    """An `export ... from 'mod'` clause entry."""
    source_module: str
    node: Node
    kind: str                            # 'named', 'star' or 'namespace'
    original_name: Optional[str] = None  # name taken from the source module
    exported_name: Optional[str] = None  # name this module exports it under


@dataclass
class LocalExport:
    """An external name under which a module exports one of its own bindings."""
    exported_name: str
    local_name: str
    node: Node


@dataclass
class Declared:
    """A top-level declaration and the identifier it binds."""
    node: Node
    name_node: Node


@dataclass
class ModuleBindings:
    imports: Dict[str, ImportBinding] = field(default_factory=dict)
    reexports: List[ReExport] = field(default_factory=list)
    local_exports: List[LocalExport] = field(default_factory=list)
    declarations: Dict[str, List[Declared]] = field(default_factory=dict)

    def export_names_for(self, local_name: str) -> List[str]:
        """External names under which a local binding is exported."""
        return [e.exported_name for e in self.local_exports if e.local_name == local_name]

    def exports_name(self, name: str) -> bool:
        """True if the module explicitly exports a name (star exports aside)."""
        if any(e.exported_name == name for e in self.local_exports):
            return True
        return any(r.exported_name == name for r in self.reexports if r.kind != 'star')


# Function and class expressions that may carry their own name
NAMED_EXPRESSIONS = {'function_expression', 'function', 'generator_function', 'class'}


def strip_quotes(text: str) -> str:
    return text.strip('"\'`')


def has_default_keyword(export_statement: Node) -> bool:
    return any(child.type == 'default' for child in export_statement.children)


def unwrap_ambient(declaration: Node) -> Node:
    """`declare function f()` -> the function_signature inside."""
    if declaration.type == 'ambient_declaration':
        for child in declaration.named_children:
            return child
    return declaration


def declared_in(declaration: Node) -> List[Declared]:
    """Names bound by a (possibly ambient) top-level declaration."""
    target = unwrap_ambient(declaration)
    if target.type in ('lexical_declaration', 'variable_declaration'):
        found = []
        for declarator in target.named_children:
            if declarator.type == 'variable_declarator':
                for name_node in pattern_names(declarator.child_by_field_name('name')):
                    found.append(Declared(declarator, name_node))
        return found
    name_node = declaration_name(target)
    if name_node is None:
        return []
    return [Declared(target, name_node)]


class ModuleBindingCollector:
    """
    Maps a file's module-level names to where they come from and where they go:
    imports, re-exports, local exports and top-level declarations.
    """

    def collect(self, root_node: Node) -> ModuleBindings:
        bindings = ModuleBindings()
        for statement in root_node.named_children:
            kind = statement.type
            if kind == 'import_statement':
                self._collect_import(statement, bindings)
            elif kind == 'export_statement':
                self._collect_export(statement, bindings)
            elif kind in ('lexical_declaration', 'variable_declaration'):
                self._collect_require(statement, bindings)
                self._add_declarations(statement, bindings)
            elif kind == 'ambient_declaration' or kind.endswith('_declaration') \
                    or kind in ('internal_module', 'module', 'function_signature'):
                self._add_declarations(statement, bindings)
            elif kind == 'expression_statement':
                # `module Foo {}` / `namespace Foo {}` parse as expressions in some grammars
                inner = statement.named_children[0] if statement.named_children else None
                if inner is not None and inner.type in ('internal_module', 'module'):
                    self._add_declarations(inner, bindings)
        return bindings

    @staticmethod
    def _add_declarations(declaration: Node, bindings: ModuleBindings):
        for declared in declared_in(declaration):
            name = declared.name_node.text.decode('utf-8', errors='replace')
            bindings.declarations.setdefault(name, []).append(declared)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _collect_import(self, statement: Node, bindings: ModuleBindings):
        source_node = statement.child_by_field_name('source')
        for child in statement.named_children:
            if child.type == 'import_require_clause':
                # import x = require('mod')
                require_source = child.child_by_field_name('source')
                local = next((n for n in child.named_children if n.type == 'identifier'), None)
                if local is not None and require_source is not None:
                    self._bind(bindings, local, strip_quotes(_text(require_source)), None, True)
                return
        if source_node is None:
            return

        module_name = strip_quotes(_text(source_node))
        for clause in statement.named_children:
            if clause.type != 'import_clause':
                continue
            # import x, { y } from 'mod' / import * as ns from 'mod'
            for child in clause.named_children:
                if child.type == 'identifier':
                    self._bind(bindings, child, module_name, 'default')
                elif child.type == 'namespace_import':
                    for ns_child in child.named_children:
                        if ns_child.type == 'identifier':
                            self._bind(bindings, ns_child, module_name, None, True)
                elif child.type == 'named_imports':
                    for specifier in child.named_children:
                        if specifier.type != 'import_specifier':
                            continue
                        name_node = specifier.child_by_field_name('name')
                        alias_node = specifier.child_by_field_name('alias')
                        original = strip_quotes(_text(name_node))
                        self._bind(bindings, alias_node or name_node, module_name, original)

    @staticmethod
    def _bind(bindings: ModuleBindings, local: Node, module_name: str,
              original: Optional[str], is_namespace: bool = False):
        local_name = _text(local)
        bindings.imports[local_name] = ImportBinding(
            local_name=local_name,
            source_module=module_name,
            node=local,
            original_name=original,
            is_namespace=is_namespace,
        )

    def _collect_require(self, statement: Node, bindings: ModuleBindings):
        """const x = require('mod') / const { a, b: c } = require('mod')"""
        for declarator in statement.named_children:
            if declarator.type != 'variable_declarator':
                continue
            name_node = declarator.child_by_field_name('name')
            module_name = self._required_module(declarator.child_by_field_name('value'))
            if name_node is None or module_name is None:
                continue
            if name_node.type == 'identifier':
                self._bind(bindings, name_node, module_name, None, True)
            elif name_node.type == 'object_pattern':
                for prop in name_node.named_children:
                    if prop.type == 'shorthand_property_identifier_pattern':
                        self._bind(bindings, prop, module_name, _text(prop))
                    elif prop.type == 'pair_pattern':
                        key = prop.child_by_field_name('key')
                        value = prop.child_by_field_name('value')
                        if key is not None and value is not None and value.type == 'identifier':
                            self._bind(bindings, value, module_name, strip_quotes(_text(key)))

    @staticmethod
    def _required_module(value: Optional[Node]) -> Optional[str]:
        if value is None or value.type != 'call_expression':
            return None
        function_node = value.child_by_field_name('function')
        args_node = value.child_by_field_name('arguments')
        if function_node is None or _text(function_node) != 'require':
            return None
        if args_node is None or args_node.named_child_count == 0:
            return None
        first_arg = args_node.named_children[0]
        if first_arg.type != 'string':
            return None
        return strip_quotes(_text(first_arg))

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def _collect_export(self, statement: Node, bindings: ModuleBindings):
        source_node = statement.child_by_field_name('source')
        if source_node is not None:
            self._collect_reexport(statement, strip_quotes(_text(source_node)), bindings)
            return

        declaration = statement.child_by_field_name('declaration')
        if declaration is not None:
            self._add_declarations(declaration, bindings)
            is_default = has_default_keyword(statement)
            for declared in declared_in(declaration):
                local_name = _text(declared.name_node)
                bindings.local_exports.append(LocalExport(
                    exported_name='default' if is_default else local_name,
                    local_name=local_name,
                    node=declared.name_node,
                ))
            return

        value = statement.child_by_field_name('value')
        if value is not None:
            # export default foo; / export default function foo() {}
            if has_default_keyword(statement) and value.type == 'identifier':
                bindings.local_exports.append(LocalExport('default', _text(value), statement))
            elif value.type in NAMED_EXPRESSIONS and value.child_by_field_name('name') is not None:
                name_node = value.child_by_field_name('name')
                bindings.local_exports.append(LocalExport('default', _text(name_node), name_node))
            return

        for clause in statement.named_children:
            if clause.type != 'export_clause':
                continue
            for specifier in clause.named_children:
                if specifier.type != 'export_specifier':
                    continue
                name_node = specifier.child_by_field_name('name')
                alias_node = specifier.child_by_field_name('alias')
                local_name = strip_quotes(_text(name_node))
                exported = strip_quotes(_text(alias_node)) if alias_node is not None else local_name
                bindings.local_exports.append(LocalExport(exported, local_name, specifier))

    @staticmethod
    def _collect_reexport(statement: Node, module_name: str, bindings: ModuleBindings):
        for child in statement.named_children:
            if child.type == 'namespace_export':
                # export * as ns from 'mod'
                name = next((n for n in child.named_children), None)
                if name is not None:
                    bindings.reexports.append(ReExport(
                        module_name, child, 'namespace', None, strip_quotes(_text(name))))
                return
            if child.type == 'export_clause':
                for specifier in child.named_children:
                    if specifier.type != 'export_specifier':
                        continue
                    name_node = specifier.child_by_field_name('name')
                    alias_node = specifier.child_by_field_name('alias')
                    original = strip_quotes(_text(name_node))
                    exported = strip_quotes(_text(alias_node)) if alias_node is not None else original
                    bindings.reexports.append(ReExport(module_name, specifier, 'named', original, exported))
                return
        # export * from 'mod'
        bindings.reexports.append(ReExport(module_name, statement, 'star'))


def _text(node: Node) -> str:
    return node.text.decode('utf-8', errors='replace')
