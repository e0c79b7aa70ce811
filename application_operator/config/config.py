"""
Loads the library config at import time, checks it against the validation
rules and applies its log settings
"""

# Standard
import os

# First Party
import aconfig

# Local
from ..log_format import configure_logging
from .validation import get_invalid_params

_CONFIG_DIR = os.path.dirname(__file__)

# The operator settings. Any key may be overridden from the environment.
library_config = aconfig.Config.from_yaml(
    os.path.join(_CONFIG_DIR, "config.yaml"), override_env_vars=True
)

# The rules applied to the settings. These never come from the environment.
validation_config = aconfig.Config.from_yaml(
    os.path.join(_CONFIG_DIR, "config_validation.yaml"), override_env_vars=False
)


def validate_config(config: aconfig.Config = library_config):
    """Check the config against the validation rules

    Raises:
        AssertionError:  Naming every key holding an invalid value
    """
    invalid_params = get_invalid_params(config, validation_config)
    assert (
        not invalid_params
    ), f"Library configuration found invalid values: {invalid_params}"


validate_config()
configure_logging(library_config)
