"""
Helpers for nested manifests, comparison friendly serialization and
duration strings
"""

# Standard
from datetime import timedelta
from typing import Any, List, Optional
import json
import re

# First Party
import alog

# Local
from . import constants

log = alog.use_channel("OPUTL")

_MISSING = object()

## Dicts #######################################################################


def _split_key(key: str) -> List[str]:
    return key.split(constants.NESTED_DICT_DELIM)


def _not_a_dict(parts: List[str], depth: int) -> TypeError:
    return TypeError(
        f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:depth + 1])} "
        "is not a dict"
    )


def nested_set(dct: dict, key: str, val: Any):
    """Set a value using 'foo.bar' key notation, creating the intermediate
    dicts as needed. Intermediate None values are replaced with dicts.

    Raises:
        TypeError:  If an intermediate value exists but is not a dict
    """
    parts = _split_key(key)
    for depth, part in enumerate(parts[:-1]):
        if dct.get(part) is None:
            dct[part] = {}
        dct = dct[part]
        if not isinstance(dct, dict):
            raise _not_a_dict(parts, depth)
    dct[parts[-1]] = val


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Get a value using 'foo.bar' key notation. Missing or None intermediate
    values give the default.

    Raises:
        TypeError:  If an intermediate value exists but is not a dict
    """
    parts = _split_key(key)
    for depth, part in enumerate(parts[:-1]):
        dct = dct.get(part, _MISSING)
        if dct is _MISSING or dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise _not_a_dict(parts, depth)
    return dct.get(parts[-1], dflt)


## Serialization ###############################################################


def prune_empty(obj: Any) -> Any:
    """Recursively drop None values, empty dicts and empty lists so that an
    unset field and an explicitly empty field look the same

    Args:
        obj:  Any
            The jsonable object to prune

    Returns:
        pruned:  Any
            A pruned copy of obj, or None if nothing is left
    """
    if isinstance(obj, dict):
        pruned = {key: prune_empty(value) for key, value in obj.items()}
        pruned = {key: value for key, value in pruned.items() if value is not None}
    elif isinstance(obj, (list, tuple)):
        pruned = [prune_empty(item) for item in obj]
        pruned = [item for item in pruned if item is not None]
    else:
        return obj
    return pruned or None


def canonical_json(obj: Any) -> str:
    """Compact json with sorted keys and empty values pruned"""
    return json.dumps(prune_empty(obj), sort_keys=True, separators=(",", ":"))


## Time ########################################################################

_DURATION = re.compile(
    r"^(?:(?P<hours>\d+)hr)?(?:(?P<minutes>\d+)m)?(?:(?P<seconds>\d*\.?\d+)s)?$"
)


def parse_time_delta(time_str: str) -> Optional[timedelta]:
    """Parse a duration such as 1hr, 5m, 0.5s or 1hr5m10s

    Returns:
        delta:  Optional[timedelta]
            The duration, None when the string is empty or malformed
    """
    match = _DURATION.match(time_str)
    if not match:
        return None
    parts = {name: float(val) for name, val in match.groupdict().items() if val}
    if not parts:
        return None
    return timedelta(**parts)
