"""Project index: the analyzed file set and its parsed trees."""
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple
import logging
import os
import re

from tree_sitter import Node, Tree

from .parser import LanguageParser
from .tsconfig import TsConfig, load_tsconfig
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

# (start_byte, end_byte, replacement)
Edit = Tuple[int, int, bytes]


class FileState(Enum):
    """Lifecycle of a loaded file: Clean -> Dirty -> Serialized."""
    CLEAN = 'clean'
    DIRTY = 'dirty'
    SERIALIZED = 'serialized'


class SourceFile:
    """One loaded source file: its bytes, its tree and its mutation state."""

    def __init__(self, path: Path, language: str, source: bytes):
        self.path = Path(path)
        self.language = language
        self.source = source
        self.parser = LanguageParser.for_language(language)
        self.tree: Tree = self.parser.parse_source(source)
        self.revision = 0
        self._state = FileState.CLEAN

    def __repr__(self) -> str:
        return f"SourceFile({str(self.path)!r}, {self._state.value})"

    @property
    def root_node(self) -> Node:
        return self.tree.root_node

    @property
    def is_typed(self) -> bool:
        return self.parser.is_typed

    @property
    def has_syntax_errors(self) -> bool:
        return self.tree.root_node.has_error

    @property
    def state(self) -> FileState:
        return self._state

    @property
    def is_dirty(self) -> bool:
        return self._state is FileState.DIRTY

    def text_of(self, node: Node) -> str:
        return self.source[node.start_byte:node.end_byte].decode('utf-8', errors='replace')

    def line_of(self, node: Node) -> int:
        return node.start_point[0] + 1

    def apply_edits(self, edits: Sequence[Edit]):
        """Apply byte-range replacements and reparse.

        Edits are applied in descending offset order so earlier offsets stay
        valid; overlapping edits are rejected.

        Raises:
            ValueError: If edits overlap or the file was already serialized
        """
        if not edits:
            return
        if self._state is FileState.SERIALIZED:
            raise ValueError(f"{self.path} was already serialized")

        ordered = sorted(edits, key=lambda e: (e[0], e[1]), reverse=True)
        for (start, end, _), (prev_start, _, _) in zip(ordered[1:], ordered):
            if end > prev_start:
                raise ValueError(f"Overlapping edits in {self.path}")

        modified = bytearray(self.source)
        for start, end, replacement in ordered:
            modified[start:end] = replacement

        self.source = bytes(modified)
        self.tree = self.parser.parse_source(self.source)
        self.revision += 1
        self._state = FileState.DIRTY

    def save(self) -> bool:
        """Persist the file if it was edited. Returns True when written.

        Clean files are skipped so untouched files never get rewritten.
        """
        written = False
        if self._state is FileState.DIRTY:
            with open(self.path, 'wb') as f:
                f.write(self.source)
            written = True
        self._state = FileState.SERIALIZED
        return written


# Characters that make a path segment a pattern rather than a literal name
_MAGIC = re.compile(r'[*?\[\]{}()!@+|]')


def translate_glob(pattern: str) -> str:
    """Translate a glob (with ** , {a,b} and extglob groups) to a regex."""
    out = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == '*' and pattern[i:i + 2] == '**':
            if pattern[i:i + 3] == '**/':
                out.append('(?:.*/)?')
                i += 3
            else:
                out.append('.*')
                i += 2
            continue
        if c in '?*+@!' and i + 1 < n and pattern[i + 1] == '(':
            body, i = _group_body(pattern, i + 1)
            alternatives = '|'.join(translate_glob(alt) for alt in _split_top(body, '|'))
            if c == '!':
                out.append(f'(?:(?!(?:{alternatives}))[^/]*?)')
            else:
                suffix = {'?': '?', '*': '*', '+': '+', '@': ''}[c]
                out.append(f'(?:{alternatives}){suffix}')
            continue
        if c == '(':
            body, i = _group_body(pattern, i)
            out.append('(?:' + '|'.join(translate_glob(alt) for alt in _split_top(body, '|')) + ')')
            continue
        if c == '{':
            body, i = _group_body(pattern, i, '{', '}')
            out.append('(?:' + '|'.join(translate_glob(alt) for alt in _split_top(body, ',')) + ')')
            continue
        if c == '*':
            out.append('[^/]*')
        elif c == '?':
            out.append('[^/]')
        elif c == '[':
            close = pattern.find(']', i + 1)
            if close == -1:
                out.append(re.escape(c))
            else:
                chars = pattern[i + 1:close]
                if chars.startswith('!'):
                    chars = '^' + chars[1:]
                out.append(f'[{chars}]')
                i = close
        else:
            out.append(re.escape(c))
        i += 1
    return ''.join(out)


def _group_body(pattern: str, start: int, open_char: str = '(', close_char: str = ')') -> Tuple[str, int]:
    """Return the text inside a bracket group and the index after it."""
    depth = 0
    for j in range(start, len(pattern)):
        if pattern[j] == open_char:
            depth += 1
        elif pattern[j] == close_char:
            depth -= 1
            if depth == 0:
                return pattern[start + 1:j], j + 1
    raise ConfigurationError(f"Unbalanced '{open_char}' in glob: {pattern}")


def _split_top(body: str, separator: str) -> List[str]:
    """Split on a separator that is not nested inside another group."""
    parts, depth, current = [], 0, []
    for c in body:
        if c in '({':
            depth += 1
        elif c in ')}':
            depth -= 1
        if c == separator and depth == 0:
            parts.append(''.join(current))
            current = []
        else:
            current.append(c)
    parts.append(''.join(current))
    return parts


class ProjectIndex:
    """Loads the requested file set and owns every parsed tree for the run."""

    EXCLUDED_DIRS = {'node_modules', '.git'}

    def __init__(self, root: Path, files: List[SourceFile], tsconfig: Optional[TsConfig] = None):
        self.root = Path(root)
        self.tsconfig = tsconfig
        self.files = sorted(files, key=lambda f: str(f.path))
        self._by_path = {f.path: f for f in self.files}

    def __iter__(self) -> Iterator[SourceFile]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @classmethod
    def load(cls, pattern: str, tsconfig_path: str | Path | None = None,
             cwd: str | Path | None = None) -> 'ProjectIndex':
        """Load and parse every file matching a glob pattern.

        Args:
            pattern: Glob relative to cwd (or absolute); supports **, {a,b}
                and extglob groups such as (src|lib) or !(*.test)
            tsconfig_path: Compiler configuration; defaults to ./tsconfig.json
            cwd: Directory that relative paths are resolved against

        Raises:
            ConfigurationError: If no project root or file set can be established
        """
        if not pattern or not pattern.strip():
            raise ConfigurationError("No file glob was provided")

        cwd = Path(cwd or os.getcwd()).resolve()
        tsconfig_path = Path(tsconfig_path) if tsconfig_path else Path('tsconfig.json')
        if not tsconfig_path.is_absolute():
            tsconfig_path = cwd / tsconfig_path
        tsconfig = load_tsconfig(tsconfig_path)
        root = tsconfig.root

        matched = cls._discover_files(pattern.strip(), cwd)
        if not matched:
            raise ConfigurationError(f"The glob '{pattern}' did not match any source files")
        if not any(cls._is_under(path, root) for path in matched):
            raise ConfigurationError(
                f"None of the files matched by '{pattern}' are inside the project root {root}"
            )

        files = []
        for path in matched:
            language = LanguageParser.language_for(path)
            try:
                source = path.read_bytes()
            except OSError as e:
                raise ConfigurationError(f"Cannot read {path}: {e}") from e
            files.append(SourceFile(path, language, source))
            logger.debug("Loaded %s (%s)", path, language)

        logger.info("Loaded %d files under %s", len(files), root)
        return cls(root, files, tsconfig)

    @classmethod
    def _discover_files(cls, pattern: str, cwd: Path) -> List[Path]:
        """Expand a glob into existing source files with a supported extension."""
        path_pattern = Path(pattern)
        if path_pattern.is_absolute():
            anchor = Path(path_pattern.anchor)
            segments = list(path_pattern.parts[1:])
        else:
            anchor = cwd
            segments = [s for s in pattern.replace('\\', '/').split('/') if s not in ('', '.')]

        # Walk only below the literal prefix of the pattern
        base = anchor
        while len(segments) > 1 and not _MAGIC.search(segments[0]):
            base = base / segments.pop(0)
        base = base.resolve()
        if not base.is_dir():
            return []

        regex = re.compile(translate_glob('/'.join(segments)) + r'\Z')
        found = []
        for path in cls._walk(base):
            relative = path.relative_to(base).as_posix()
            if regex.match(relative) and LanguageParser.language_for(path):
                found.append(path.resolve())
        return sorted(set(found))

    @classmethod
    def _walk(cls, base: Path) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if d not in cls.EXCLUDED_DIRS)
            for name in sorted(filenames):
                yield Path(dirpath) / name

    @staticmethod
    def _is_under(path: Path, root: Path) -> bool:
        try:
            path.relative_to(root)
            return True
        except ValueError:
            return False

    def root_path(self) -> Path:
        return self.root

    def relative_path(self, file: SourceFile) -> str:
        """Path used in reports: ./relative/to/root, or absolute if outside."""
        if self._is_under(file.path, self.root):
            return './' + file.path.relative_to(self.root).as_posix()
        return str(file.path)

    def file_at(self, path: str | Path) -> Optional[SourceFile]:
        return self._by_path.get(Path(path).resolve())

    def file_of(self, node: Node) -> SourceFile:
        """Return the file whose current tree contains the node.

        Raises:
            KeyError: If the node belongs to no loaded tree
        """
        root = node
        while root.parent is not None:
            root = root.parent
        for file in self.files:
            if file.tree.root_node.id == root.id:
                return file
        raise KeyError(f"Node {node.type} does not belong to this project")

    def dirty_files(self) -> List[SourceFile]:
        return [f for f in self.files if f.is_dirty]

    def save_all(self) -> List[SourceFile]:
        """Serialize every file once; return the ones actually written."""
        written = []
        for file in self.files:
            if file.state is FileState.SERIALIZED:
                continue
            if file.save():
                logger.info("Saved %s", file.path)
                written.append(file)
        return written
