"""Reference tracker for mapping exported declarations to their usage across the project."""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple
import logging
import re

import networkx as nx
from tree_sitter import Node, Query, QueryCursor

from .bindings import ImportBinding, ModuleBindingCollector, ModuleBindings, ReExport
from .exports import DeclarationSite, ExportedSymbol
from .project import ProjectIndex, SourceFile
from .resolver import ModuleResolver
from .scopes import ScopeAnalyzer
from ..errors import UnresolvableReferenceError

logger = logging.getLogger(__name__)

TYPED_NAME_QUERY = """
(identifier) @name
(type_identifier) @name
(shorthand_property_identifier) @name
"""

UNTYPED_NAME_QUERY = """
(identifier) @name
(shorthand_property_identifier) @name
"""


@dataclass
class Reference:
    """A located use of an exported symbol."""
    file: SourceFile
    node: Node
    reference_type: str = 'usage'  # 'usage', 'import', 're-export', 'namespace'

    @property
    def line(self) -> int:
        return self.node.start_point[0] + 1

    @property
    def column(self) -> int:
        return self.node.start_point[1] + 1

    def is_external_to(self, file: SourceFile) -> bool:
        return self.file.path != file.path


class ReferenceTracker:
    """Finds every reference to an exported declaration across the project.

    NAME INDEX + BINDING CONFIRMATION: each file gets an index from identifier
    text to candidate nodes; a candidate only counts once scope analysis
    confirms it resolves to the module-level binding, and import chains
    (aliases, namespaces, re-exports) connect the binding across files.
    """

    def __init__(self, project: ProjectIndex, resolver: Optional[ModuleResolver] = None):
        self.project = project
        self.resolver = resolver or ModuleResolver(project)
        self.collector = ModuleBindingCollector()
        self._queries: Dict[str, Query] = {}
        # path -> (revision, value)
        self._bindings: Dict[Path, Tuple[int, ModuleBindings]] = {}
        self._scopes: Dict[Path, Tuple[int, ScopeAnalyzer]] = {}
        self._name_index: Dict[Path, Tuple[int, Dict[str, List[Node]]]] = {}
        self._broken_imports: Dict[Path, Tuple[int, bool]] = {}
        self._graph: Optional[nx.DiGraph] = None
        self._graph_key: Optional[tuple] = None

    # ------------------------------------------------------------------
    # Per-file caches, keyed by revision
    # ------------------------------------------------------------------

    def bindings(self, file: SourceFile) -> ModuleBindings:
        cached = self._bindings.get(file.path)
        if cached is None or cached[0] != file.revision:
            cached = (file.revision, self.collector.collect(file.root_node))
            self._bindings[file.path] = cached
        return cached[1]

    def scopes(self, file: SourceFile) -> ScopeAnalyzer:
        cached = self._scopes.get(file.path)
        if cached is None or cached[0] != file.revision:
            cached = (file.revision, ScopeAnalyzer(file.root_node))
            self._scopes[file.path] = cached
        return cached[1]

    def candidates(self, file: SourceFile, name: str) -> List[Node]:
        """Identifier-like nodes spelled `name`, in source order."""
        cached = self._name_index.get(file.path)
        if cached is None or cached[0] != file.revision:
            cached = (file.revision, self._build_name_index(file))
            self._name_index[file.path] = cached
        return cached[1].get(name, [])

    def _build_name_index(self, file: SourceFile) -> Dict[str, List[Node]]:
        query = self._queries.get(file.language)
        if query is None:
            source = TYPED_NAME_QUERY if file.is_typed else UNTYPED_NAME_QUERY
            query = Query(file.parser.ts_language, source)
            self._queries[file.language] = query

        captures = QueryCursor(query).captures(file.root_node)
        index: Dict[str, List[Node]] = {}
        for node in captures.get('name', []):
            index.setdefault(file.text_of(node), []).append(node)
        for nodes in index.values():
            nodes.sort(key=lambda n: n.start_byte)
        return index

    # ------------------------------------------------------------------
    # Module graph
    # ------------------------------------------------------------------

    def module_graph(self) -> nx.DiGraph:
        """Importer -> exporter edges carrying the import/re-export links.

        Rebuilt whenever any file's revision changes.
        """
        key = tuple((f.path, f.revision) for f in self.project)
        if self._graph is not None and self._graph_key == key:
            return self._graph

        graph = nx.DiGraph()
        for file in self.project:
            graph.add_node(file.path)
        for file in self.project:
            bindings = self.bindings(file)
            links: List = list(bindings.imports.values()) + list(bindings.reexports)
            for link in links:
                target = self.resolver.resolve(file, link.source_module)
                if target is None:
                    continue
                if not graph.has_edge(file.path, target.path):
                    graph.add_edge(file.path, target.path, links=[])
                graph.edges[file.path, target.path]['links'].append(link)

        logger.debug("Module graph: %d files, %d edges", graph.number_of_nodes(), graph.number_of_edges())
        self._graph = graph
        self._graph_key = key
        return graph

    def importers_of(self, file: SourceFile) -> Iterator[Tuple[SourceFile, List]]:
        graph = self.module_graph()
        if file.path not in graph:
            return
        for importer_path in sorted(graph.predecessors(file.path)):
            importer = self.project.file_at(importer_path)
            if importer is not None:
                yield importer, graph.edges[importer_path, file.path]['links']

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def references_of(self, site: DeclarationSite) -> List[Reference]:
        """Every reference to the binding a declaration site introduces.

        Raises:
            UnresolvableReferenceError: If the site cannot be soundly resolved
        """
        return list(self.iter_references(site))

    def iter_references(self, site: DeclarationSite) -> Iterator[Reference]:
        """Lazily yield references: same-file usages first, then other files.

        Raises:
            UnresolvableReferenceError: If the site cannot be soundly resolved
        """
        if not site.resolvable or site.local_name is None:
            raise UnresolvableReferenceError(site.local_name or '<anonymous>', site.reason or 'not resolvable')

        home = site.file
        exported_names = self.bindings(home).export_names_for(site.local_name)
        self._check_broken_files(home, [site.local_name] + exported_names)

        yield from self._local_usages(home, site.local_name)

        visited: Set[Tuple[Path, str]] = set()
        for exported in exported_names:
            yield from self._exported_references(home, exported, visited)

    def _check_broken_files(self, home: SourceFile, names: List[str]):
        """Fail when another file that fails to parse might reference the binding.

        Raises:
            UnresolvableReferenceError: If such a file mentions one of the names
                or has an import/require inside a syntax error
        """
        for file in self.project:
            if file.path == home.path or not file.has_syntax_errors:
                continue
            if any(self._mentions(file, name) for name in names) or self._has_broken_import(file):
                raise UnresolvableReferenceError(
                    names[0], f"{self.project.relative_path(file)} has syntax errors")

    @staticmethod
    def _mentions(file: SourceFile, name: str) -> bool:
        """Word match on the raw text; a broken tree may not hold the identifier."""
        pattern = rf'(?<![\w$]){re.escape(name)}(?![\w$])'
        return re.search(pattern, file.source.decode('utf-8', errors='replace')) is not None

    def _has_broken_import(self, file: SourceFile) -> bool:
        """True if an ERROR node of the file contains `import` or `require`."""
        cached = self._broken_imports.get(file.path)
        if cached is None or cached[0] != file.revision:
            found = False
            stack = [file.root_node]
            while stack and not found:
                node = stack.pop()
                if node.type == 'ERROR':
                    text = file.text_of(node)
                    found = 'import' in text or 'require' in text
                stack.extend(node.children)
            cached = (file.revision, found)
            self._broken_imports[file.path] = cached
        return cached[1]

    def has_external_reference(self, symbol: ExportedSymbol) -> bool:
        """True iff some site of the symbol is referenced from another file.

        Raises:
            UnresolvableReferenceError: If the symbol cannot be soundly resolved
        """
        if not symbol.resolvable:
            raise UnresolvableReferenceError(symbol.name, symbol.reason or 'not resolvable')

        seen_locals: Set[str] = set()
        for site in symbol.sites:
            if site.local_name in seen_locals:
                continue
            seen_locals.add(site.local_name)
            for reference in self.iter_references(site):
                if reference.is_external_to(symbol.file):
                    logger.debug("%s:%s referenced from %s:%d (%s)", symbol.file.path, symbol.name,
                                 reference.file.path, reference.line, reference.reference_type)
                    return True
        return False

    def _local_usages(self, file: SourceFile, name: str, reference_type: str = 'usage') -> Iterator[Reference]:
        """Uses of a module-level name within one file."""
        scopes = self.scopes(file)
        for node in self.candidates(file, name):
            if scopes.is_reference(node) and scopes.resolves_to_module(node):
                yield Reference(file, node, reference_type)

    def _exported_references(self, home: SourceFile, exported: str,
                             visited: Set[Tuple[Path, str]]) -> Iterator[Reference]:
        """References reaching `home` through the external name `exported`."""
        key = (home.path, exported)
        if key in visited:
            return
        visited.add(key)

        for importer, links in self.importers_of(home):
            importer_bindings = self.bindings(importer)
            for link in links:
                if isinstance(link, ImportBinding):
                    if link.is_namespace:
                        yield from self._namespace_member_references(importer, link.local_name, exported)
                    elif link.original_name == exported:
                        yield Reference(importer, link.node, 'import')
                        yield from self._alias_references(importer, link.local_name, visited)
                elif isinstance(link, ReExport):
                    yield from self._reexport_references(importer, importer_bindings, link, exported, visited)

    def _reexport_references(self, importer: SourceFile, importer_bindings: ModuleBindings, link: ReExport,
                             exported: str, visited: Set[Tuple[Path, str]]) -> Iterator[Reference]:
        if link.kind == 'named':
            if link.original_name == exported:
                yield Reference(importer, link.node, 're-export')
                yield from self._exported_references(importer, link.exported_name, visited)
        elif link.kind == 'star':
            # `export *` never forwards 'default' and is shadowed by the module's own exports
            if exported != 'default' and not importer_bindings.exports_name(exported):
                yield from self._exported_references(importer, exported, visited)
        elif link.kind == 'namespace':
            yield from self._namespace_reexport_references(importer, link.exported_name, exported)

    def _alias_references(self, file: SourceFile, local: str,
                          visited: Set[Tuple[Path, str]]) -> Iterator[Reference]:
        """Uses of an imported alias, following it if the file exports it again."""
        yield from self._local_usages(file, local)
        for exported in self.bindings(file).export_names_for(local):
            yield from self._exported_references(file, exported, visited)

    def _namespace_member_references(self, file: SourceFile, namespace: str, member: str) -> Iterator[Reference]:
        """`ns.member` style accesses; an escaping `ns` counts as using every member."""
        for reference in self._local_usages(file, namespace, 'namespace'):
            node = reference.node
            parent = node.parent
            accessed = self._accessed_member(node, parent)
            if accessed is None:
                # Escapes (passed around, spread, re-exported): assume every member is used
                yield reference
            elif accessed[0] == member:
                yield Reference(file, accessed[1], 'namespace')

    @staticmethod
    def _accessed_member(node: Node, parent: Optional[Node]) -> Optional[Tuple[str, Node]]:
        """(member name, member node) for `node.member` / node['member'] / node.Type."""
        if parent is None:
            return None
        if parent.type == 'member_expression' and parent.child_by_field_name('object') == node:
            prop = parent.child_by_field_name('property')
            if prop is not None:
                return prop.text.decode('utf-8', errors='replace'), prop
        elif parent.type == 'nested_type_identifier' and parent.child_by_field_name('module') == node:
            name = parent.child_by_field_name('name')
            if name is not None:
                return name.text.decode('utf-8', errors='replace'), name
        elif parent.type == 'nested_identifier' and parent.child_by_field_name('object') == node:
            prop = parent.child_by_field_name('property')
            if prop is not None:
                return prop.text.decode('utf-8', errors='replace'), prop
        elif parent.type == 'subscript_expression' and parent.child_by_field_name('object') == node:
            index = parent.child_by_field_name('index')
            if index is not None and index.type == 'string':
                return index.text.decode('utf-8', errors='replace').strip('"\'`'), index
        return None

    def _namespace_reexport_references(self, file: SourceFile, namespace: str,
                                       member: str) -> Iterator[Reference]:
        """`export * as ns from` in `file`: follow named imports of `ns` to `alias.member`."""
        for importer, links in self.importers_of(file):
            for link in links:
                if isinstance(link, ImportBinding) and not link.is_namespace and link.original_name == namespace:
                    yield from self._namespace_member_references(importer, link.local_name, member)
                elif isinstance(link, ReExport) and link.kind == 'named' and link.original_name == namespace:
                    # forwarded again; the namespace escapes analysis
                    yield Reference(importer, link.node, 're-export')
