"""
vmbuilder - vSphere clone-and-template driver
Clones a template, prepares the VM and turns it back into a template
"""

__version__ = "0.1.0"
__author__ = "vmbuilder Development Team"

from .client import VMBuilderClient
from .config import (ConnectConfig, CloneConfig, HardwareConfig, ShutdownConfig,
                     BuildConfig, load_build_config)
from .exceptions import (VMBuilderError, ConnectionError, AuthenticationError,
                         ResolutionError, PreconditionError, TaskError, TimeoutError,
                         StateError, OperationCancelledError, ConfigurationError)

__all__ = [
    "VMBuilderClient",
    "ConnectConfig",
    "CloneConfig",
    "HardwareConfig",
    "ShutdownConfig",
    "BuildConfig",
    "load_build_config",
    "VMBuilderError",
    "ConnectionError",
    "AuthenticationError",
    "ResolutionError",
    "PreconditionError",
    "TaskError",
    "TimeoutError",
    "StateError",
    "OperationCancelledError",
    "ConfigurationError",
]
