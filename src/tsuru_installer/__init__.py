"""
tsuru-installer - bootstrap a tsuru platform on a single Docker host
"""

__version__ = "0.1.0"

from .core import TsuruInstaller
from .errors import InstallerError
from .models import InstallConfig, Machine

__all__ = ["InstallConfig", "InstallerError", "Machine", "TsuruInstaller"]
