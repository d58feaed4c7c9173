import os
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

from .tsconfig import TsConfig

if TYPE_CHECKING:
    from .project import ProjectIndex, SourceFile


class ModuleResolver:
    """
    Resolves module specifiers to files of the analyzed set.
    Only files loaded into the project participate; anything else (packages,
    files outside the glob) resolves to None.
    """

    EXTENSIONS = ['.ts', '.tsx', '.d.ts', '.mts', '.cts', '.js', '.jsx', '.mjs', '.cjs']

    # ESM-style specifiers name the emitted file; the source has a TS extension
    EMITTED_TO_SOURCE = {
        '.js': ['.ts', '.tsx'],
        '.jsx': ['.tsx'],
        '.mjs': ['.mts'],
        '.cjs': ['.cts'],
    }

    def __init__(self, project: 'ProjectIndex', tsconfig: Optional[TsConfig] = None):
        self.project = project
        self.root = project.root_path().resolve()
        tsconfig = tsconfig if tsconfig is not None else project.tsconfig
        self.base_url: Optional[Path] = tsconfig.base_url if tsconfig else None
        # Anchor tsconfig paths: {"@app/*": ["src/*"]} -> {"@app/*": ["<base>/src/*"]}
        self.ts_aliases: Dict[str, List[str]] = {}
        if tsconfig and tsconfig.paths:
            paths_base = tsconfig.base_url or tsconfig.paths_base or self.root
            for alias, targets in tsconfig.paths.items():
                self.ts_aliases[alias] = [str(paths_base / t) for t in targets]
        self._cache: Dict[tuple, Optional['SourceFile']] = {}

    def resolve(self, current_file: 'SourceFile', specifier: str) -> Optional['SourceFile']:
        """
        Determines the analyzed file an import specifier refers to.

        Args:
            current_file: The file containing the import.
            specifier: The string used in the import statement (e.g., './utils', '@app/x').
        """
        if not specifier:
            return None
        key = (current_file.path, specifier)
        if key not in self._cache:
            self._cache[key] = self._resolve(current_file.path, specifier)
        return self._cache[key]

    def _resolve(self, current_path: Path, specifier: str) -> Optional['SourceFile']:
        # 1. Relative Imports
        if specifier.startswith('.') or specifier.startswith('/'):
            candidate = (current_path.parent / specifier)
            return self._probe(candidate)

        # 2. Path Aliases (tsconfig)
        for alias, targets in self.ts_aliases.items():
            matched = self._match_alias(alias, specifier)
            if matched is None:
                continue
            for target in targets:
                resolved = self._probe(Path(str(target).replace('*', matched)))
                if resolved:
                    return resolved

        # 3. baseUrl-relative (non-relative specifiers inside the project)
        if self.base_url:
            return self._probe(self.base_url / specifier)

        return None

    @staticmethod
    def _match_alias(alias: str, specifier: str) -> Optional[str]:
        """Return the text matched by '*' in the alias, '' for exact aliases."""
        if '*' not in alias:
            return '' if alias == specifier else None
        prefix, _, suffix = alias.partition('*')
        if specifier.startswith(prefix) and specifier.endswith(suffix) \
                and len(specifier) >= len(prefix) + len(suffix):
            return specifier[len(prefix):len(specifier) - len(suffix)]
        return None

    def _probe(self, path: Path) -> Optional['SourceFile']:
        """
        Probes the analyzed set using TS resolution rules:
        1. Exact match
        2. Emitted extension mapped back to source (.js -> .ts)
        3. Appended extensions (.ts, .tsx, ...)
        4. Directory index files
        """
        path = Path(os.path.normpath(str(path)))
        exact = self.project.file_at(path)
        if exact:
            return exact

        for source_ext in self.EMITTED_TO_SOURCE.get(path.suffix, []):
            found = self.project.file_at(path.with_suffix(source_ext))
            if found:
                return found

        for ext in self.EXTENSIONS:
            found = self.project.file_at(path.with_name(path.name + ext))
            if found:
                return found

        for ext in self.EXTENSIONS:
            found = self.project.file_at(path / f"index{ext}")
            if found:
                return found

        return None

