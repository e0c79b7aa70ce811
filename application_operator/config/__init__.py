"""
Library config for the operator. Values come from config.yaml with
environment variable overrides and may be further updated from the command
line at startup. Keys are read as attributes of this module, for example
config.watch.retry_count.
"""

# Local
from .config import library_config, validate_config


def __getattr__(name):
    # Dict attributes such as items() are forwarded as well
    if name in library_config or hasattr({}, name):
        return getattr(library_config, name)
    raise AttributeError(f"No such config attribute {name}")


__all__ = list(library_config.keys())
