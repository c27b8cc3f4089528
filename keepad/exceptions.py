"""
keepAD Exceptions
=================

Errors raised by the directory client, the external tool runners and the
procedures. Per-item failures are caught by the procedures; the two fatal
seizure preconditions propagate to the CLI.
"""


class KeepadError(Exception):
    """Base class for all keepAD errors."""


class DirectoryError(KeepadError):
    """A directory lookup or mutation failed."""

    def __init__(self, message: str, dn: str = ""):
        super().__init__(message)
        self.dn = dn


class ToolError(KeepadError):
    """An external maintenance tool failed or could not be started."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class ConfirmationError(KeepadError):
    """The operator did not type the confirmation phrase."""


class NoOfflineRolesError(KeepadError):
    """Every role holder answered the probe, so there is nothing to seize."""
