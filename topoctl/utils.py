"""
Common utilities shared across the controller
"""

# Standard
from datetime import timedelta
from typing import Any, Optional, Tuple, Union
import re

# First Party
import alog

# Local
from . import constants
from .exceptions import MalformedKeyError

log = alog.use_channel("TPUTL")

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict to search
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:i])} is not a dict"
            )
    return dct.get(parts[-1], dflt)


## Keys ########################################################################


def meta_namespace_key(resource: dict) -> str:
    """Make the work item key for a resource in the form <namespace>/<name>.
    Cluster-scoped resources are keyed by name alone.

    Args:
        resource:  dict
            The resource manifest (or ManagedObject) to key

    Returns:
        key:  str
            The work item key
    """
    metadata = resource.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise MalformedKeyError("Cannot make a key for an object without a name")
    namespace = metadata.get("namespace")
    if namespace:
        return f"{namespace}{constants.KEY_DELIM}{name}"
    return name


def split_meta_namespace_key(key: Any) -> Tuple[str, str]:
    """Split a work item key into its namespace and name

    Args:
        key:  Any
            The item pulled off of the work queue

    Returns:
        namespace:  str
            The namespace portion, empty for cluster-scoped keys
        name:  str
            The name portion
    """
    if not isinstance(key, str):
        raise MalformedKeyError(f"Unexpected item in the queue: {key!r}")
    parts = key.split(constants.KEY_DELIM)
    if len(parts) == 1 and parts[0]:
        return "", parts[0]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise MalformedKeyError(f"Incorrect resource key: {key!r}")


## Time ########################################################################

_duration_regex = re.compile(
    r"^((?P<hours>\d+?)hr)?((?P<minutes>\d+?)m)?((?P<seconds>\d*\.?\d+?)s)?$"
)


def parse_time_delta(
    time_str: Union[str, int, float]
) -> Optional[timedelta]:
    """Parse a duration such as 1hr, 5m, 10s or 0.005s into a timedelta.
    Bare numbers are treated as seconds.

    Args:
        time_str:  Union[str, int, float]
            The duration to parse

    Returns:
        result:  Optional[timedelta]
            The parsed timedelta or None if the string could not be parsed
    """
    if isinstance(time_str, (int, float)) and not isinstance(time_str, bool):
        return timedelta(seconds=time_str)
    parts = _duration_regex.match(time_str or "")
    if not parts or all(part is None for part in parts.groupdict().values()):
        return None
    time_params = {
        name: float(param) for name, param in parts.groupdict().items() if param
    }
    return timedelta(**time_params)
