"""Lexical scope analysis over tree-sitter TypeScript/JavaScript trees.

Answers two questions for an identifier-like node:

- is it a use of a name, or the name being declared (binding position)?
- does the name resolve to the module-level binding, or is it shadowed by a
  declaration in an enclosing function, block or type scope?

TypeScript keeps values and types in separate declaration spaces, so a
type parameter ``T`` never shadows a value ``T``. Declarations carry a space
bit mask and a shadowing check only fires when the spaces overlap.
"""
from typing import Dict, Iterator, List, Optional

from tree_sitter import Node

VALUE = 1
TYPE = 2
BOTH = VALUE | TYPE

FUNCTION_NODES = {
    'function_declaration', 'generator_function_declaration', 'function_expression',
    'function', 'generator_function', 'arrow_function', 'method_definition',
    'function_signature', 'method_signature', 'abstract_method_signature',
    'call_signature', 'construct_signature', 'function_type', 'constructor_type',
}

# Function-like nodes whose own name is visible only inside themselves
SELF_NAMED_EXPRESSIONS = {'function_expression', 'function', 'generator_function', 'class'}

CLASS_NODES = {'class_declaration', 'abstract_class_declaration', 'class'}

TYPE_PARAMETER_OWNERS = CLASS_NODES | {'interface_declaration', 'type_alias_declaration'}

BLOCK_NODES = {'statement_block', 'switch_body'}

# node type -> declaration space of the name it introduces
DECLARATION_SPACES = {
    'function_declaration': VALUE,
    'generator_function_declaration': VALUE,
    'function_signature': VALUE,
    'class_declaration': BOTH,
    'abstract_class_declaration': BOTH,
    'interface_declaration': TYPE,
    'type_alias_declaration': TYPE,
    'enum_declaration': BOTH,
    'internal_module': BOTH,
    'module': BOTH,
}

# node types whose 'name' field is a declaration, not a use
NAME_DECLARING = set(DECLARATION_SPACES) | {
    'function_expression', 'function', 'generator_function', 'class',
    'type_parameter', 'index_signature', 'mapped_type_clause',
    'tuple_parameter', 'optional_tuple_parameter',
}

JSX_NAME_PARENTS = {'jsx_opening_element', 'jsx_closing_element', 'jsx_self_closing_element'}


def field_is(parent: Optional[Node], field: str, node: Node) -> bool:
    """True when node is (one of) the parent's children under a field name."""
    if parent is None:
        return False
    return any(child == node for child in parent.children_by_field_name(field))


def pattern_names(pattern: Optional[Node]) -> List[Node]:
    """Identifier nodes bound by a binding pattern (destructuring included)."""
    if pattern is None:
        return []
    kind = pattern.type
    if kind in ('identifier', 'shorthand_property_identifier_pattern'):
        return [pattern]
    if kind in ('required_parameter', 'optional_parameter'):
        return pattern_names(pattern.child_by_field_name('pattern'))
    if kind == 'pair_pattern':
        return pattern_names(pattern.child_by_field_name('value'))
    if kind in ('assignment_pattern', 'object_assignment_pattern'):
        return pattern_names(pattern.child_by_field_name('left'))
    if kind in ('object_pattern', 'array_pattern', 'rest_pattern', 'formal_parameters'):
        names = []
        for child in pattern.named_children:
            names.extend(pattern_names(child))
        return names
    return []


def declaration_name(node: Node) -> Optional[Node]:
    """The identifier naming a declaration; the head of A.B for namespaces."""
    name = node.child_by_field_name('name')
    if name is None:
        return None
    while name.type == 'nested_identifier':
        name = name.child_by_field_name('object') or name.named_children[0]
    if name.type in ('identifier', 'type_identifier'):
        return name
    return None


def statement_declarations(statement: Node) -> Iterator[tuple]:
    """Yield (name_node, space) for every name a statement declares."""
    kind = statement.type
    if kind == 'export_statement':
        declaration = statement.child_by_field_name('declaration')
        if declaration is not None:
            yield from statement_declarations(declaration)
    elif kind in ('ambient_declaration', 'expression_statement'):
        # `namespace Foo {}` parses as an expression statement
        for child in statement.named_children:
            if kind == 'ambient_declaration' or child.type == 'internal_module':
                yield from statement_declarations(child)
    elif kind in ('lexical_declaration', 'variable_declaration'):
        for declarator in statement.named_children:
            if declarator.type == 'variable_declarator':
                for name in pattern_names(declarator.child_by_field_name('name')):
                    yield name, VALUE
    elif kind in DECLARATION_SPACES:
        name = declaration_name(statement)
        if name is not None:
            yield name, DECLARATION_SPACES[kind]
    elif kind == 'import_statement':
        for child in statement.named_children:
            if child.type == 'import_clause':
                for node in _import_clause_names(child):
                    yield node, BOTH
            elif child.type == 'import_require_clause':
                for node in child.named_children:
                    if node.type == 'identifier':
                        yield node, BOTH
                        break
    elif kind == 'import_alias':
        for node in statement.named_children:
            if node.type == 'identifier':
                yield node, BOTH
                break


def _import_clause_names(clause: Node) -> Iterator[Node]:
    for child in clause.named_children:
        if child.type == 'identifier':
            yield child
        elif child.type == 'namespace_import':
            for ns_child in child.named_children:
                if ns_child.type == 'identifier':
                    yield ns_child
        elif child.type == 'named_imports':
            for specifier in child.named_children:
                if specifier.type != 'import_specifier':
                    continue
                local = specifier.child_by_field_name('alias') or specifier.child_by_field_name('name')
                if local is not None and local.type == 'identifier':
                    yield local


class ScopeAnalyzer:
    """Scope queries for one parsed file (one tree revision)."""

    def __init__(self, root: Node):
        self.root = root
        self._declarations: Dict[int, Dict[str, int]] = {}

    # ------------------------------------------------------------------
    # Candidate filtering
    # ------------------------------------------------------------------

    def is_reference(self, node: Node) -> bool:
        """True when the node is a use of a name in an ordinary position.

        Import statements and re-exports are excluded here; their specifiers
        are handled as module bindings, not as lexical uses.
        """
        parent = node.parent
        if parent is None:
            return False
        if self.is_binding_position(node):
            return False
        if parent.type == 'export_specifier' and field_is(parent, 'alias', node):
            return False
        if parent.type == 'nested_type_identifier' and field_is(parent, 'name', node):
            return False
        if parent.type in JSX_NAME_PARENTS and node.type == 'identifier':
            text = node.text.decode('utf-8', errors='replace')
            if text[:1].islower():
                return False
        ancestor = parent
        while ancestor is not None:
            if ancestor.type == 'import_statement':
                return False
            if ancestor.type == 'export_statement':
                return ancestor.child_by_field_name('source') is None
            ancestor = ancestor.parent
        return True

    def is_binding_position(self, node: Node) -> bool:
        """True when the node is the name introduced by a declaration."""
        parent = node.parent
        if parent is None:
            return False
        if parent.type in NAME_DECLARING and field_is(parent, 'name', node):
            return True
        if parent.type == 'infer_type':
            return True
        if parent.type == 'import_alias':
            return parent.named_children[0] == node
        if parent.type == 'nested_identifier':
            top = parent
            while top.parent is not None and top.parent.type == 'nested_identifier':
                top = top.parent
            return top.parent is not None and top.parent.type in ('internal_module', 'module') \
                and field_is(top.parent, 'name', top)
        return self._in_binding_pattern(node)

    def _in_binding_pattern(self, node: Node) -> bool:
        current = node
        while current.parent is not None:
            parent = current.parent
            kind = parent.type
            if kind == 'variable_declarator':
                return field_is(parent, 'name', current)
            if kind in ('required_parameter', 'optional_parameter'):
                return field_is(parent, 'pattern', current)
            if kind == 'formal_parameters':
                return True
            if kind == 'arrow_function':
                return field_is(parent, 'parameter', current)
            if kind == 'catch_clause':
                return field_is(parent, 'parameter', current)
            if kind == 'for_in_statement':
                return field_is(parent, 'left', current) and parent.child_by_field_name('kind') is not None
            if kind in ('object_pattern', 'array_pattern', 'rest_pattern'):
                current = parent
                continue
            if kind == 'pair_pattern':
                if not field_is(parent, 'value', current):
                    return False
                current = parent
                continue
            if kind in ('assignment_pattern', 'object_assignment_pattern'):
                if not field_is(parent, 'left', current):
                    return False
                current = parent
                continue
            return False
        return False

    @staticmethod
    def reference_space(node: Node) -> int:
        if node.type == 'type_identifier':
            return TYPE
        if node.parent is not None and node.parent.type in ('nested_type_identifier', 'nested_identifier'):
            return BOTH
        return VALUE

    # ------------------------------------------------------------------
    # Shadowing
    # ------------------------------------------------------------------

    def resolves_to_module(self, node: Node) -> bool:
        """True unless an enclosing non-module scope declares the same name."""
        name = node.text.decode('utf-8', errors='replace')
        space = self.reference_space(node)
        scope = node.parent
        while scope is not None and scope.type != 'program':
            declared = self.declarations_in(scope).get(name, 0)
            if declared & space:
                return False
            scope = scope.parent
        return True

    def declarations_in(self, scope: Node) -> Dict[str, int]:
        """Names declared directly by a scope node, with their spaces."""
        cached = self._declarations.get(scope.id)
        if cached is not None:
            return cached

        names: Dict[str, int] = {}

        def add(name_node: Optional[Node], space: int):
            if name_node is not None:
                text = name_node.text.decode('utf-8', errors='replace')
                names[text] = names.get(text, 0) | space

        kind = scope.type
        if kind in BLOCK_NODES:
            for statement in self._block_statements(scope):
                for name_node, space in statement_declarations(statement):
                    add(name_node, space)
        elif kind in ('internal_module', 'module'):
            pass  # the body is a statement_block
        elif kind in FUNCTION_NODES:
            if kind in SELF_NAMED_EXPRESSIONS:
                add(scope.child_by_field_name('name'), VALUE)
            parameters = scope.child_by_field_name('parameters')
            for name_node in pattern_names(parameters):
                add(name_node, VALUE)
            add(scope.child_by_field_name('parameter'), VALUE)
            self._add_type_parameters(scope, add)
            body = scope.child_by_field_name('body')
            if body is not None:
                for name_node in self._hoisted_vars(body):
                    add(name_node, VALUE)
        elif kind in TYPE_PARAMETER_OWNERS:
            if kind in SELF_NAMED_EXPRESSIONS:
                add(scope.child_by_field_name('name'), BOTH)
            self._add_type_parameters(scope, add)
        elif kind == 'for_statement':
            initializer = scope.child_by_field_name('initializer')
            if initializer is not None:
                for name_node, space in statement_declarations(initializer):
                    add(name_node, space)
        elif kind == 'for_in_statement':
            if scope.child_by_field_name('kind') is not None:
                for name_node in pattern_names(scope.child_by_field_name('left')):
                    add(name_node, VALUE)
        elif kind == 'catch_clause':
            for name_node in pattern_names(scope.child_by_field_name('parameter')):
                add(name_node, VALUE)

        self._declarations[scope.id] = names
        return names

    @staticmethod
    def _block_statements(block: Node) -> Iterator[Node]:
        for child in block.named_children:
            if child.type in ('switch_case', 'switch_default'):
                yield from child.children_by_field_name('body')
            else:
                yield child

    @staticmethod
    def _add_type_parameters(owner: Node, add):
        type_parameters = owner.child_by_field_name('type_parameters')
        if type_parameters is None:
            return
        for parameter in type_parameters.named_children:
            if parameter.type == 'type_parameter':
                add(parameter.child_by_field_name('name'), TYPE)

    @staticmethod
    def _hoisted_vars(body: Node) -> Iterator[Node]:
        """'var' declarations anywhere in a function body, nested functions excluded."""
        stack = [body]
        while stack:
            current = stack.pop()
            if current.type == 'variable_declaration':
                for declarator in current.named_children:
                    if declarator.type == 'variable_declarator':
                        yield from pattern_names(declarator.child_by_field_name('name'))
            for child in current.named_children:
                if child.type not in FUNCTION_NODES and child.type not in CLASS_NODES:
                    stack.append(child)
