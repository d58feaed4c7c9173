"""Logging setup and terminal-safe output helpers.

Detects terminal encoding and provides ASCII alternatives for Unicode icons
so reports render on terminals that don't support UTF-8.
"""
import locale
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler


# Unicode to ASCII icon mapping for non-UTF-8 terminals
ICON_MAP = {
    # Status icons
    '✓': '[OK]',
    '✔': '[OK]',
    '✅': '[OK]',
    '✗': '[FAIL]',
    '✘': '[FAIL]',
    '❌': '[FAIL]',
    '⚠️': '[WARN]',
    '⚠': '[WARN]',
    '⚡': '[!]',

    # Arrows
    '→': '->',
    '←': '<-',
    '⇒': '=>',

    # Symbols
    '…': '...',
    '•': '*',
    '─': '-',
    '│': '|',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    # Try stdout encoding first
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    # Fallback to locale
    encoding = locale.getpreferredencoding(False)
    if encoding:
        return encoding.lower()

    return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Route the package's diagnostics through a rich handler on stderr.

    Args:
        verbose: DEBUG level when True, WARNING otherwise

    Returns:
        The package logger
    """
    level = logging.DEBUG if verbose else logging.WARNING
    package_logger = logging.getLogger('unexport')
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)

    handler = RichHandler(console=Console(stderr=True), show_time=verbose, show_path=verbose,
                          markup=False, rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter('%(message)s'))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return package_logger
