"""Cross-file reference resolution: imports, aliases, re-exports and namespaces."""
import pytest

from unexport.analyzer.exports import ExportEnumerator
from unexport.analyzer.reference_tracker import ReferenceTracker
from unexport.errors import UnresolvableReferenceError


def _symbol(project, relative, name):
    file = project.file_at(project.root_path() / relative)
    for symbol in ExportEnumerator().exports_of(file):
        if symbol.name == name:
            return symbol
    raise AssertionError(f"{name} is not exported from {relative}")


def _relative(project, reference):
    return project.relative_path(reference.file)


class TestImports:
    def test_named_import_and_call(self, load_project):
        project = load_project({
            'src/a.ts': """
                export function f() {}
            """,
            'src/b.ts': """
                import { f } from './a';
                f();
            """,
        })
        tracker = ReferenceTracker(project)
        symbol = _symbol(project, 'src/a.ts', 'f')
        refs = tracker.references_of(symbol.first_site)
        assert [(r.reference_type, r.line) for r in refs] == [('import', 1), ('usage', 2)]
        assert tracker.has_external_reference(symbol)

    def test_aliased_import(self, load_project):
        project = load_project({
            'src/a.ts': "export const value = 1;\n",
            'src/b.ts': """
                import { value as v } from './a';
                console.log(v);
            """,
        })
        tracker = ReferenceTracker(project)
        refs = tracker.references_of(_symbol(project, 'src/a.ts', 'value').first_site)
        usages = [r for r in refs if r.reference_type == 'usage']
        assert len(usages) == 1
        assert usages[0].node.text == b'v'

    def test_same_file_usages_respect_shadowing(self, load_project):
        project = load_project({
            'src/a.ts': """
                export const value = 1;
                function shadow(value: number) { return value; }
                function plain() { return value; }
            """,
        })
        tracker = ReferenceTracker(project)
        symbol = _symbol(project, 'src/a.ts', 'value')
        refs = tracker.references_of(symbol.first_site)
        assert [r.line for r in refs] == [3]
        assert not tracker.has_external_reference(symbol)

    def test_default_import(self, load_project):
        project = load_project({
            'src/a.ts': "export default function main() {}\n",
            'src/b.ts': """
                import start from './a';
                start();
            """,
        })
        tracker = ReferenceTracker(project)
        assert tracker.has_external_reference(_symbol(project, 'src/a.ts', 'default'))


class TestReExports:
    def test_renamed_reexport_chain(self, load_project):
        project = load_project({
            'src/a.ts': "export function h() {}\n",
            'src/b.ts': "export { h as h2 } from './a';\n",
            'src/c.ts': """
                import { h2 } from './b';
                h2();
            """,
        })
        tracker = ReferenceTracker(project)
        refs = tracker.references_of(_symbol(project, 'src/a.ts', 'h').first_site)
        assert [(_relative(project, r), r.reference_type) for r in refs] == [
            ('./src/b.ts', 're-export'),
            ('./src/c.ts', 'import'),
            ('./src/c.ts', 'usage'),
        ]

    def test_star_reexport_forwards_names(self, load_project):
        project = load_project({
            'src/a.ts': "export const shared = 1;\n",
            'src/index.ts': "export * from './a';\n",
            'src/app.ts': """
                import { shared } from './index';
                console.log(shared);
            """,
        })
        tracker = ReferenceTracker(project)
        assert tracker.has_external_reference(_symbol(project, 'src/a.ts', 'shared'))

    def test_star_reexport_does_not_forward_default(self, load_project):
        project = load_project({
            'src/a.ts': "export default class Widget {}\n",
            'src/index.ts': "export * from './a';\n",
            'src/app.ts': """
                import Widget from './index';
                new Widget();
            """,
        })
        tracker = ReferenceTracker(project)
        assert not tracker.has_external_reference(_symbol(project, 'src/a.ts', 'default'))

    def test_reexport_of_imported_binding(self, load_project):
        project = load_project({
            'src/a.ts': "export const token = 'x';\n",
            'src/b.ts': """
                import { token } from './a';
                export { token };
            """,
            'src/c.ts': """
                import { token } from './b';
                console.log(token);
            """,
        })
        tracker = ReferenceTracker(project)
        refs = tracker.references_of(_symbol(project, 'src/a.ts', 'token').first_site)
        assert ('./src/c.ts', 'usage') in [(_relative(project, r), r.reference_type) for r in refs]

    def test_cyclic_star_exports_terminate(self, load_project):
        project = load_project({
            'src/a.ts': """
                export * from './b';
                export const fromA = 1;
            """,
            'src/b.ts': """
                export * from './a';
                export const fromB = 2;
            """,
        })
        tracker = ReferenceTracker(project)
        assert not tracker.has_external_reference(_symbol(project, 'src/a.ts', 'fromA'))


class TestNamespaces:
    def test_member_access_counts_only_for_that_member(self, load_project):
        project = load_project({
            'src/a.ts': """
                export const A = 1;
                export const B = 2;
            """,
            'src/b.ts': """
                import * as ns from './a';
                console.log(ns.A);
            """,
        })
        tracker = ReferenceTracker(project)
        assert tracker.has_external_reference(_symbol(project, 'src/a.ts', 'A'))
        assert not tracker.has_external_reference(_symbol(project, 'src/a.ts', 'B'))

    def test_escaping_namespace_uses_every_member(self, load_project):
        project = load_project({
            'src/a.ts': """
                export const A = 1;
                export const B = 2;
            """,
            'src/b.ts': """
                import * as ns from './a';
                console.log(ns);
            """,
        })
        tracker = ReferenceTracker(project)
        assert tracker.has_external_reference(_symbol(project, 'src/a.ts', 'A'))
        assert tracker.has_external_reference(_symbol(project, 'src/a.ts', 'B'))

    def test_qualified_type_reference(self, load_project):
        project = load_project({
            'src/a.ts': "export interface Shape { size: number }\n",
            'src/b.ts': """
                import * as geo from './a';
                let s: geo.Shape;
            """,
        })
        tracker = ReferenceTracker(project)
        assert tracker.has_external_reference(_symbol(project, 'src/a.ts', 'Shape'))


class TestUnresolvable:
    def test_anonymous_default_raises(self, load_project):
        project = load_project({'src/a.ts': "export default { a: 1 };\n"})
        tracker = ReferenceTracker(project)
        with pytest.raises(UnresolvableReferenceError):
            tracker.has_external_reference(_symbol(project, 'src/a.ts', 'default'))

    def test_broken_file_mentioning_the_name_raises(self, load_project):
        project = load_project({
            'src/a.ts': "export const limit = 1;\n",
            'src/b.ts': "const x = (limit;\n",
        })
        tracker = ReferenceTracker(project)
        with pytest.raises(UnresolvableReferenceError):
            tracker.references_of(_symbol(project, 'src/a.ts', 'limit').first_site)

    def test_graph_tracks_revisions(self, load_project):
        project = load_project({
            'src/a.ts': "export const x = 1;\n",
            'src/b.ts': "const y = 2;\n",
        })
        tracker = ReferenceTracker(project)
        a = project.file_at(project.root_path() / 'src/a.ts')
        b = project.file_at(project.root_path() / 'src/b.ts')
        assert list(tracker.importers_of(a)) == []

        b.apply_edits([(0, 0, b"import { x } from './a';\n")])
        importers = list(tracker.importers_of(a))
        assert [importer for importer, _ in importers] == [b]
