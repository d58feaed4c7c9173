"""tsconfig.json loading.

tsconfig files are JSON with comments and trailing commas, and may inherit
from another config through ``extends``. Only the options that matter for
module resolution are kept: ``baseUrl`` and ``paths``.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional
import json
import logging
import re

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

# Strings are matched first so that comment markers inside them survive
_COMMENT_RE = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r'"(?:\\.|[^"\\])*"|,(\s*[}\]])')


@dataclass
class TsConfig:
    """Compiler options relevant to resolving module specifiers."""
    path: Path
    base_url: Optional[Path] = None
    paths: Dict[str, List[str]] = field(default_factory=dict)
    paths_base: Optional[Path] = None  # directory that 'paths' targets are relative to

    @property
    def root(self) -> Path:
        """Project root: the directory holding the tsconfig file."""
        return self.path.parent


def strip_json_comments(content: str) -> str:
    """Remove // and /* */ comments and trailing commas from JSONC text."""
    def _drop_comment(match: re.Match) -> str:
        text = match.group(0)
        return text if text.startswith('"') else ''

    def _drop_comma(match: re.Match) -> str:
        if match.group(1) is not None:
            return match.group(1)
        return match.group(0)

    content = _COMMENT_RE.sub(_drop_comment, content)
    return _TRAILING_COMMA_RE.sub(_drop_comma, content)


def _read_jsonc(path: Path) -> dict:
    try:
        content = path.read_text(encoding='utf-8-sig')
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    try:
        data = json.loads(strip_json_comments(content))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return data


def _resolve_extends(config_path: Path, target: str) -> Optional[Path]:
    """Locate the file named by 'extends'. Package presets are not followed."""
    if not target.startswith('.') and not Path(target).is_absolute():
        logger.debug("Ignoring non-relative extends %r in %s", target, config_path)
        return None
    candidate = (config_path.parent / target).resolve()
    if candidate.is_file():
        return candidate
    with_suffix = candidate.with_name(candidate.name + '.json')
    if with_suffix.is_file():
        return with_suffix
    raise ConfigurationError(f"{config_path}: extended config not found: {target}")


def load_tsconfig(path: str | Path) -> TsConfig:
    """Load a tsconfig file, following relative 'extends' chains.

    Raises:
        ConfigurationError: If the file (or an extended file) is missing or invalid
    """
    path = Path(path).resolve()
    if not path.is_file():
        raise ConfigurationError(f"tsconfig not found: {path}")

    config = TsConfig(path=path)
    _merge_into(config, path, chain=frozenset())
    return config


def _merge_into(config: TsConfig, path: Path, chain: FrozenSet[Path]):
    """Apply a config file and its ancestors; nearer files win.

    `chain` holds the files on the current extends path only, so two
    parents sharing a common base are not mistaken for a cycle.
    """
    if path in chain:
        raise ConfigurationError(f"Circular 'extends' chain at {path}")
    chain = chain | {path}

    data = _read_jsonc(path)
    extends = data.get('extends')
    parents = extends if isinstance(extends, list) else [extends] if extends else []
    for parent in parents:
        parent_path = _resolve_extends(path, parent)
        if parent_path is not None:
            _merge_into(config, parent_path, chain)

    options = data.get('compilerOptions') or {}
    if 'baseUrl' in options:
        config.base_url = (path.parent / options['baseUrl']).resolve()
    if 'paths' in options:
        config.paths = dict(options['paths'] or {})
        config.paths_base = path.parent.resolve()
