"""Configuration for unexport.

Inner components only ever see an explicit RunConfig. Environment variables
(and an optional .env file) are read by Settings, which only the CLI uses to
fill in defaults for flags the operator did not pass.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from dotenv import load_dotenv

__version__ = "1.0.0"

DEFAULT_TSCONFIG = "tsconfig.json"
DEFAULT_CALLEE = "console"


@dataclass(frozen=True)
class RunConfig:
    """Everything a run needs: which files, which project, whether to edit."""
    glob: str
    fix: bool = False
    tsconfig_path: Optional[Path] = None
    cwd: Optional[Path] = None
    callee: str = DEFAULT_CALLEE

    @property
    def callee_prefix(self) -> str:
        return f"{self.callee}."


class Settings:
    """Environment-backed defaults with .env support."""

    def __init__(self, env_file: Optional[Path] = None):
        """Load .env from the working directory (or the given file).

        Variables already present in the environment take precedence.
        """
        load_dotenv(env_file or Path.cwd() / ".env", override=False)

    @property
    def glob(self) -> Optional[str]:
        """Default file glob (UNEXPORT_GLOB)."""
        return os.getenv("UNEXPORT_GLOB") or None

    @property
    def tsconfig(self) -> str:
        """Compiler configuration path (UNEXPORT_TSCONFIG), default ./tsconfig.json."""
        return os.getenv("UNEXPORT_TSCONFIG") or DEFAULT_TSCONFIG

    @property
    def callee(self) -> str:
        """Object whose statements the console scan targets (UNEXPORT_CALLEE)."""
        return os.getenv("UNEXPORT_CALLEE") or DEFAULT_CALLEE


# Singleton instance
_settings = None


def get_settings() -> Settings:
    """Get or create the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
