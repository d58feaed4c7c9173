"""Module specifier resolution against the analyzed file set."""
from unexport.analyzer.resolver import ModuleResolver


def _file(project, relative):
    return project.file_at(project.root_path() / relative)


def test_relative_specifier_with_extension_probing(load_project):
    project = load_project({'src/a.ts': '', 'src/sub/b.ts': ''})
    resolver = ModuleResolver(project)
    b = _file(project, 'src/sub/b.ts')
    assert resolver.resolve(b, '../a') is _file(project, 'src/a.ts')


def test_js_specifier_maps_to_ts_source(load_project):
    project = load_project({'src/a.ts': '', 'src/b.ts': ''})
    resolver = ModuleResolver(project)
    assert resolver.resolve(_file(project, 'src/b.ts'), './a.js') is _file(project, 'src/a.ts')


def test_directory_index(load_project):
    project = load_project({'src/lib/index.ts': '', 'src/b.ts': ''})
    resolver = ModuleResolver(project)
    assert resolver.resolve(_file(project, 'src/b.ts'), './lib') is _file(project, 'src/lib/index.ts')


def test_paths_alias(load_project):
    project = load_project(
        {'src/lib/util.ts': '', 'src/b.ts': ''},
        tsconfig={"compilerOptions": {"baseUrl": ".", "paths": {"@lib/*": ["src/lib/*"]}}},
    )
    resolver = ModuleResolver(project)
    assert resolver.resolve(_file(project, 'src/b.ts'), '@lib/util') is _file(project, 'src/lib/util.ts')


def test_base_url_specifier(load_project):
    project = load_project(
        {'src/lib/util.ts': '', 'src/b.ts': ''},
        tsconfig={"compilerOptions": {"baseUrl": "src"}},
    )
    resolver = ModuleResolver(project)
    assert resolver.resolve(_file(project, 'src/b.ts'), 'lib/util') is _file(project, 'src/lib/util.ts')


def test_packages_and_unloaded_files_do_not_resolve(load_project):
    project = load_project({'src/b.ts': ''}, glob='src/b.ts')
    resolver = ModuleResolver(project)
    b = _file(project, 'src/b.ts')
    assert resolver.resolve(b, 'react') is None
    assert resolver.resolve(b, './missing') is None
