"""
Loads the library config once at import time, checks it against the
validation rules and applies the initial logging setup
"""

# Standard
import os

# First Party
import aconfig
import alog

# Local
from ..exceptions import assert_config
from .validation import get_invalid_params

CONFIG_DIR = os.path.dirname(__file__)


def _load_yaml(file_name: str, env_overrides: bool) -> aconfig.Config:
    return aconfig.Config.from_yaml(
        os.path.join(CONFIG_DIR, file_name),
        override_env_vars=env_overrides,
    )


def validate_library_config(
    config_obj: aconfig.Config, rules: aconfig.Config
) -> None:
    """Raise a ConfigError naming every key whose value breaks its rule"""
    invalid_params = get_invalid_params(config_obj, rules)
    assert_config(
        not invalid_params,
        f"Library configuration found invalid values: {invalid_params}",
    )


# Environment variables may override the library config, never the rules
library_config = _load_yaml("config.yaml", env_overrides=True)
validation_config = _load_yaml("config_validation.yaml", env_overrides=False)
validate_library_config(library_config, validation_config)

alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter="json" if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
