"""
Base controller config module. The config here is the bootup config for the
controller, loaded from config.yaml with environment variable overrides.
"""

# Local
from .config import library_config
from .validation import get_invalid_params


# Define __getattr__ on this module to delegate to the library config.
def __getattr__(name):
    if name in library_config or hasattr({}, name):
        return getattr(library_config, name)
    raise AttributeError(f"No such config attribute {name}")


# Only expose the library config keys
__all__ = list(library_config.keys())
