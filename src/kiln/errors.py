"""Exception hierarchy for kiln."""


class KilnError(Exception):
    """Base class for kiln failures reported to the user."""


class ConfigLoadError(KilnError):
    """Raised when the configuration cannot be loaded or is invalid."""


class StageConstructionError(KilnError):
    """Raised when a stage factory cannot build its command."""


class InvalidSubcommandError(KilnError):
    """Raised for a positional subcommand no stage recognizes."""


class StageExecutionError(KilnError):
    """Raised when a constructed stage command fails at run time."""


class OutcomeConsumedError(RuntimeError):
    """Raised when a single-use outcome or command is consumed twice."""
