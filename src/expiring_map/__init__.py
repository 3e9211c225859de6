"""Key-value map with automatically expiring entries."""

from .cache import ExpiringMap
from .config import ExpiringMapConfig, load_config
from .errors import InvalidConfigurationError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ExpiringMap",
    "ExpiringMapConfig",
    "InvalidConfigurationError",
    "load_config",
]
