"""Exception types raised across the analyzer and reaper layers."""


class UnexportError(Exception):
    """Base class for all errors raised by unexport."""


class ConfigurationError(UnexportError):
    """No usable project root, compiler configuration or file set.

    Fatal: the CLI reports it and exits with status 1 before any analysis.
    """


class UnresolvableReferenceError(UnexportError):
    """A declaration whose references cannot be soundly computed.

    Raised by the reference tracker and handled by the classifier, which
    excludes the symbol instead of assuming it is unused.
    """

    def __init__(self, name: str, reason: str):
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class UnsupportedMutationTarget(UnexportError):
    """An export-bearing node whose export marker cannot be toggled."""

    def __init__(self, node_type: str, reason: str):
        super().__init__(f"{node_type}: {reason}")
        self.node_type = node_type
        self.reason = reason
