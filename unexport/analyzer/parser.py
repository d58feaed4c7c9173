"""Tree-sitter parser for TypeScript and JavaScript sources."""
from pathlib import Path
from typing import Dict, Optional

from tree_sitter import Language, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript


class LanguageParser:
    """Multi-grammar parser using the tree-sitter v0.25+ API."""

    SUPPORTED_LANGUAGES = {
        '.ts': 'typescript',
        '.mts': 'typescript',
        '.cts': 'typescript',
        '.tsx': 'tsx',
        '.js': 'javascript',
        '.jsx': 'javascript',
        '.mjs': 'javascript',
        '.cjs': 'javascript',
    }

    _instances: Dict[str, 'LanguageParser'] = {}

    def __init__(self, language: str):
        """Initialize parser for given language (typescript, tsx, javascript).

        Args:
            language: One of 'typescript', 'tsx', 'javascript'

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.ts_language = self._create_language()
        self.parser = Parser(self.ts_language)

    def _create_language(self) -> Language:
        """Wrap the grammar capsule with Language() as the v0.25+ API requires.

        Raises:
            ValueError: If language is not supported
        """
        if self.language == 'typescript':
            return Language(tstypescript.language_typescript())
        if self.language == 'tsx':
            return Language(tstypescript.language_tsx())
        if self.language == 'javascript':
            return Language(tsjavascript.language())
        raise ValueError(f"Unsupported language: {self.language}")

    @property
    def is_typed(self) -> bool:
        """True for grammars that know type_identifier and friends."""
        return self.language in ('typescript', 'tsx')

    def parse_source(self, source_code: bytes) -> Tree:
        """Parse raw source bytes."""
        return self.parser.parse(source_code)

    @classmethod
    def for_language(cls, language: str) -> 'LanguageParser':
        """Return the shared parser for a language, creating it on first use."""
        if language not in cls._instances:
            cls._instances[language] = cls(language)
        return cls._instances[language]

    @classmethod
    def language_for(cls, file_path: str | Path) -> Optional[str]:
        """Map a file extension to its grammar name, or None."""
        return cls.SUPPORTED_LANGUAGES.get(Path(file_path).suffix.lower())

