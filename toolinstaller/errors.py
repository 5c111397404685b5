"""
Exception hierarchy for the tool installer.
"""

from typing import Optional


class InstallerError(Exception):
    """Base class for all installer errors."""


class InvalidArgument(InstallerError, ValueError):
    """Malformed or empty request, rejected before any job is created."""


class NotFound(InstallerError, LookupError):
    """Unknown tool, tool set, job or batch id."""


class InvalidTransition(InstallerError):
    """A job was asked to move to a state its current state does not allow."""


class SpawnError(InstallerError):
    """The install script could not be launched at all."""

    def __init__(self, message: str, script_path: Optional[str] = None):
        super().__init__(message)
        self.script_path = script_path


class ScriptFailure(InstallerError):
    """The install script ran but did not succeed."""

    def __init__(self, message: str,
                 exit_code: Optional[int] = None,
                 error_output: str = "",
                 timed_out: bool = False):
        super().__init__(message)
        self.exit_code = exit_code
        self.error_output = error_output
        self.timed_out = timed_out
