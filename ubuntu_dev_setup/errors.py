"""
Exception taxonomy and process exit codes for ubuntu-dev-setup.
"""

# ----------------------------------------------------------------
# Exit Codes
# ----------------------------------------------------------------
EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PRIVILEGE = 2
EXIT_UNSUPPORTED_HOST = 3
EXIT_INTERRUPTED = 130


# ----------------------------------------------------------------
# Exceptions
# ----------------------------------------------------------------
class ProvisionError(Exception):
    """Base class for every error raised by ubuntu-dev-setup."""

    exit_code: int = EXIT_FATAL


class UnsupportedHostError(ProvisionError):
    """The host is not Ubuntu (or an Ubuntu derivative)."""

    exit_code = EXIT_UNSUPPORTED_HOST


class PrivilegeError(ProvisionError):
    """Invoked as root, or sudo credentials could not be validated."""

    exit_code = EXIT_PRIVILEGE


class StepFailure(ProvisionError):
    """Raised by a step action to report a classified failure."""


class RecoverableStepFailure(StepFailure):
    pass


class FatalStepFailure(StepFailure):
    """Aborts the run even when the raising step is declared non-fatal."""


class ProfileWriteError(ProvisionError, OSError):
    """
    The shell profile could not be read or written.

    first_write is True when the failing write was the first profile
    mutation of the run; later steps assume the file is writable, so the
    orchestrator treats that case as fatal.
    """

    def __init__(self, message: str, first_write: bool = False):
        super().__init__(message)
        self.first_write = first_write
