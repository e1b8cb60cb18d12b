"""Domain errors for the tsuru installer."""

from typing import Optional


class InstallerError(RuntimeError):
    """Raised when provisioning cannot continue safely."""


class ConfigurationError(InstallerError):
    """Invalid TLS material or install configuration. Raised before any daemon call."""


class TransportError(InstallerError):
    """Connection, TLS handshake or timeout failure talking to the daemon."""


class DaemonRejected(InstallerError):
    """The daemon answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFound(InstallerError):
    """The named container does not exist on the daemon."""


class ComponentInstallError(InstallerError):
    """Install of a single component failed."""

    def __init__(self, component: str, cause: Exception):
        super().__init__(f"Failed to install component '{component}': {cause}")
        self.component = component
        self.cause = cause
