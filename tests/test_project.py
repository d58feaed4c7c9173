"""Tests for project loading, glob expansion, tsconfig parsing and file lifecycle."""
import json
import re

import pytest

from unexport.analyzer.project import FileState, ProjectIndex, translate_glob
from unexport.analyzer.tsconfig import load_tsconfig, strip_json_comments
from unexport.errors import ConfigurationError


def _matches(glob, path):
    return re.match(translate_glob(glob) + r'\Z', path) is not None


class TestGlobTranslation:
    def test_double_star_matches_any_depth(self):
        assert _matches('**/*.ts', 'a.ts')
        assert _matches('**/*.ts', 'deep/er/a.ts')
        assert not _matches('**/*.ts', 'a.tsx')

    def test_alternative_groups(self):
        assert _matches('*.(ts|tsx)', 'a.tsx')
        assert _matches('*.{ts,tsx}', 'a.ts')
        assert not _matches('*.(ts|tsx)', 'a.js')

    def test_negated_extglob(self):
        glob = '!(*.test|*.spec).(ts|tsx)'
        assert _matches(glob, 'service.ts')
        assert not _matches(glob, 'service.test.ts')
        assert not _matches(glob, 'service.spec.tsx')

    def test_unbalanced_group_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            translate_glob('src/(a|b.ts')


class TestTsConfig:
    def test_comments_and_trailing_commas(self, tmp_path):
        path = tmp_path / 'tsconfig.json'
        path.write_text("""
        {
          // line comment
          "compilerOptions": {
            /* block */
            "baseUrl": "./src",
            "paths": { "@app/*": ["app/*"], },
          },
        }
        """)
        config = load_tsconfig(path)
        assert config.base_url == (tmp_path / 'src').resolve()
        assert config.paths == {"@app/*": ["app/*"]}

    def test_comment_markers_inside_strings_survive(self):
        text = '{"a": "http://x/*y*/"}'
        assert json.loads(strip_json_comments(text)) == {"a": "http://x/*y*/"}

    def test_extends_chain(self, tmp_path):
        (tmp_path / 'base.json').write_text('{"compilerOptions": {"baseUrl": "."}}')
        (tmp_path / 'tsconfig.json').write_text('{"extends": "./base", "compilerOptions": {}}')
        config = load_tsconfig(tmp_path / 'tsconfig.json')
        assert config.base_url == tmp_path.resolve()

    def test_shared_base_is_not_a_cycle(self, tmp_path):
        """Two parents extending the same base config load fine."""
        (tmp_path / 'base.json').write_text('{"compilerOptions": {"baseUrl": "src"}}')
        (tmp_path / 'a.json').write_text('{"extends": "./base.json"}')
        (tmp_path / 'b.json').write_text('{"extends": "./base.json"}')
        (tmp_path / 'tsconfig.json').write_text('{"extends": ["./a.json", "./b.json"]}')
        config = load_tsconfig(tmp_path / 'tsconfig.json')
        assert config.base_url == (tmp_path / 'src').resolve()

    def test_circular_extends(self, tmp_path):
        (tmp_path / 'a.json').write_text('{"extends": "./tsconfig.json"}')
        (tmp_path / 'tsconfig.json').write_text('{"extends": "./a.json"}')
        with pytest.raises(ConfigurationError):
            load_tsconfig(tmp_path / 'tsconfig.json')

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_tsconfig(tmp_path / 'missing.json')

    def test_invalid_json(self, tmp_path):
        (tmp_path / 'tsconfig.json').write_text('{ nope')
        with pytest.raises(ConfigurationError):
            load_tsconfig(tmp_path / 'tsconfig.json')


class TestProjectIndex:
    def test_load_matches_glob_and_sorts(self, load_project):
        project = load_project({
            'src/b.ts': 'export const b = 1;\n',
            'src/a.ts': 'export const a = 1;\n',
            'src/view.tsx': 'export const V = () => <div />;\n',
            'src/readme.md': '# not source\n',
        })
        names = [f.path.name for f in project]
        assert names == ['a.ts', 'b.ts', 'view.tsx']
        assert project.file_at(project.root_path() / 'src/view.tsx').language == 'tsx'

    def test_node_modules_are_never_loaded(self, load_project):
        project = load_project({
            'src/a.ts': 'export const a = 1;\n',
            'src/node_modules/dep/index.ts': 'export const dep = 1;\n',
        })
        assert [f.path.name for f in project] == ['a.ts']

    def test_relative_path_is_dot_prefixed(self, load_project):
        project = load_project({'src/lib/a.ts': 'export const a = 1;\n'})
        assert project.relative_path(project.files[0]) == './src/lib/a.ts'

    def test_file_of_maps_node_to_file(self, load_project):
        project = load_project({'src/a.ts': 'export const a = 1;\n', 'src/b.ts': 'export const b = 2;\n'})
        b = project.files[1]
        node = b.root_node.named_children[0]
        assert project.file_of(node) is b

    def test_empty_pattern(self, ts_project):
        root = ts_project({'src/a.ts': ''})
        with pytest.raises(ConfigurationError):
            ProjectIndex.load('', cwd=root)

    def test_zero_matches(self, ts_project):
        root = ts_project({'src/a.ts': ''})
        with pytest.raises(ConfigurationError):
            ProjectIndex.load('lib/**/*.ts', cwd=root)

    def test_missing_tsconfig(self, tmp_path):
        (tmp_path / 'src').mkdir()
        (tmp_path / 'src' / 'a.ts').write_text('export const a = 1;\n')
        with pytest.raises(ConfigurationError):
            ProjectIndex.load('src/**/*.ts', cwd=tmp_path)

    def test_files_outside_project_root(self, tmp_path):
        (tmp_path / 'app').mkdir()
        (tmp_path / 'app' / 'tsconfig.json').write_text('{}')
        (tmp_path / 'other').mkdir()
        (tmp_path / 'other' / 'a.ts').write_text('export const a = 1;\n')
        with pytest.raises(ConfigurationError):
            ProjectIndex.load('other/*.ts', tsconfig_path='app/tsconfig.json', cwd=tmp_path)


class TestSourceFileLifecycle:
    def test_fresh_file_is_clean_and_not_rewritten(self, load_project):
        project = load_project({'src/a.ts': 'export const a = 1;\n'})
        file = project.files[0]
        assert file.state is FileState.CLEAN
        assert project.save_all() == []
        assert file.state is FileState.SERIALIZED

    def test_edit_marks_dirty_and_save_writes(self, load_project):
        project = load_project({'src/a.ts': 'export const a = 1;\n'})
        file = project.files[0]
        file.apply_edits([(0, len(b'export '), b'')])
        assert file.is_dirty
        assert file.revision == 1
        assert file.root_node.named_children[0].type == 'lexical_declaration'
        assert project.save_all() == [file]
        assert file.path.read_text() == 'const a = 1;\n'

    def test_edits_apply_in_descending_order(self, load_project):
        project = load_project({'src/a.ts': 'let a = 1;\n'})
        file = project.files[0]
        file.apply_edits([(4, 5, b'first'), (8, 9, b'2')])
        assert file.source == b'let first = 2;\n'

    def test_overlapping_edits_are_rejected(self, load_project):
        project = load_project({'src/a.ts': 'let a = 1;\n'})
        with pytest.raises(ValueError):
            project.files[0].apply_edits([(0, 5, b''), (3, 8, b'')])

    def test_serialized_file_cannot_be_edited(self, load_project):
        project = load_project({'src/a.ts': 'let a = 1;\n'})
        file = project.files[0]
        file.save()
        with pytest.raises(ValueError):
            file.apply_edits([(0, 3, b'var')])
