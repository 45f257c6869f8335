"""Plugport: extension points, registration and runtime resolution."""

from plugport.config import create_registry, load_settings
from plugport.core.exceptions import (
    CandidateError,
    ExtensionNotFoundError,
    InvalidFactoryError,
    PlugportError,
)
from plugport.core.types import (
    ConnectOptions,
    ExtensionInfo,
    MultiConnection,
    SingleConnection,
)
from plugport.ext import ExtensionRegistry, PackageScanner, get_registry


__version__ = "0.1.0"

__all__ = [
    "ExtensionRegistry",
    "PackageScanner",
    "get_registry",
    "ConnectOptions",
    "ExtensionInfo",
    "SingleConnection",
    "MultiConnection",
    "PlugportError",
    "InvalidFactoryError",
    "ExtensionNotFoundError",
    "CandidateError",
    "create_registry",
    "load_settings",
    "__version__",
]
