from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING

# pymongo is only imported when the mongo layer is accessed
if TYPE_CHECKING:
    from . import mongo

from .config import CONFIG_FILE_ENV, ENV_PREFIX, Config
from .dot_dict import DotDict, DotDictPathNotFoundError
from .exceptions import (
    BootstrapError,
    ConfigError,
    FailPointError,
    FailPointInstallError,
    FailPointReleaseError,
    HarnessError,
    VersionParseError,
)

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("mongoharness")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

# Explicit public API
__all__ = [
    # Version
    "__version__",
    # Modules
    "mongo",
    # Core classes
    "Config",
    "DotDict",
    "DotDictPathNotFoundError",
    "ENV_PREFIX",
    "CONFIG_FILE_ENV",
    # Exceptions
    "HarnessError",
    "ConfigError",
    "BootstrapError",
    "VersionParseError",
    "FailPointError",
    "FailPointInstallError",
    "FailPointReleaseError",
]


def __getattr__(name: str) -> object:
    """Lazy import for the mongo layer."""
    import importlib

    if name == "mongo":
        module = importlib.import_module(f".{name}", __name__)
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
