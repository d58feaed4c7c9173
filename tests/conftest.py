"""Shared fixtures: small TypeScript projects written into tmp_path."""
import json
import textwrap

import pytest

from unexport.analyzer.parser import LanguageParser
from unexport.analyzer.project import ProjectIndex


@pytest.fixture
def ts_project(tmp_path):
    """Write a tsconfig plus source files and return the project root.

    Usage: root = ts_project({'src/a.ts': '...'}, tsconfig={...})
    """
    def _write(files, tsconfig=None):
        config = tsconfig if tsconfig is not None else {"compilerOptions": {"target": "es2020"}}
        config_text = config if isinstance(config, str) else json.dumps(config, indent=2)
        (tmp_path / 'tsconfig.json').write_text(config_text)
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip('\n'))
        return tmp_path
    return _write


@pytest.fixture
def load_project(ts_project):
    """Write files and load them as a ProjectIndex."""
    def _load(files, glob='src/**/*.(ts|tsx)', tsconfig=None):
        root = ts_project(files, tsconfig)
        return ProjectIndex.load(glob, cwd=root)
    return _load


@pytest.fixture
def parse():
    """Parse a TypeScript snippet and return its root node."""
    def _parse(code, language='typescript'):
        parser = LanguageParser.for_language(language)
        return parser.parse_source(textwrap.dedent(code).encode('utf-8')).root_node
    return _parse


def find_nodes(root, node_type, text=None):
    """All nodes of a type (and text) in source order."""
    found = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == node_type and (text is None or node.text.decode('utf-8') == text):
            found.append(node)
        stack.extend(reversed(node.children))
    return found


def source_of(project, relative):
    return project.file_at(project.root_path() / relative).source.decode('utf-8')
