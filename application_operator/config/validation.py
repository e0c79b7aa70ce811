"""
Typed validation of the library config. The validation file mirrors the
structure of config.yaml. A mapping holding a "type" key describes the
parameter at that position; any other mapping is a nested section.
"""

# Standard
from typing import Any, Dict, List, Optional, Union
import abc

# First Party
import aconfig
import alog

# Local
from .. import constants
from ..utils import nested_get

log = alog.use_channel("CONFG")

Number = Union[int, float]

# Parameter classes keyed by the "type" name used in the validation file
_PARAMETER_TYPES: Dict[str, type] = {}


def _parameter_type(type_name: str):
    """Register a parameter class under the given type name"""

    def decorator(param_class):
        _PARAMETER_TYPES[type_name] = param_class
        return param_class

    return decorator


## Public ######################################################################


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Collect the dotted keys of every value in the config that breaks its
    validation rule

    Args:
        config:  aconfig.Config
            The loaded config including any overrides
        validation_config:  aconfig.Config
            The rules, shaped like the config

    Returns:
        invalid_params:  List[str]
            The dotted keys of the invalid values, in validation file order
    """
    invalid_params = []
    for key, param in _parse_validation_config(validation_config).items():
        problem = param.check(nested_get(config, key))
        if problem:
            log.warning("Invalid config value for [%s]: %s", key, problem)
            invalid_params.append(key)
    return invalid_params


## Parameters ##################################################################

# pylint: disable=too-few-public-methods


class _ValidatedParameter(abc.ABC):
    """Base for all parameter rules. An unset value is only accepted when the
    parameter is optional.
    """

    # The python types a value must have. bool values are only accepted when
    # bool is listed since bool is a subclass of int.
    TYPES: tuple = ()

    def __init__(self, optional: bool = False):
        self.optional = optional

    def check(self, value: Any) -> Optional[str]:
        """Describe why the value is invalid, None when it is valid"""
        if value is None:
            return None if self.optional else "required value is missing"
        if isinstance(value, bool) and bool not in self.TYPES:
            return f"unexpected bool {value}"
        if not isinstance(value, self.TYPES):
            return f"unexpected type {type(value).__name__}"
        return self._check_value(value)

    def validate(self, value: Any) -> bool:
        return self.check(value) is None

    @abc.abstractmethod
    def _check_value(self, value: Any) -> Optional[str]:
        """Rules applying to a value already known to have a valid type"""


@_parameter_type("number")
class _NumberParameter(_ValidatedParameter):
    TYPES = (int, float)

    def __init__(
        self,
        *,
        min: Optional[Number] = None,  # pylint: disable=redefined-builtin
        max: Optional[Number] = None,  # pylint: disable=redefined-builtin
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.min = min
        self.max = max

    def _check_value(self, value: Number) -> Optional[str]:
        if self.min is not None and value < self.min:
            return f"{value} is below the minimum {self.min}"
        if self.max is not None and value > self.max:
            return f"{value} is above the maximum {self.max}"
        return None


@_parameter_type("int")
class _IntParameter(_NumberParameter):
    TYPES = (int,)


@_parameter_type("float")
class _FloatParameter(_NumberParameter):
    TYPES = (float,)


@_parameter_type("str")
class _StrParameter(_ValidatedParameter):
    TYPES = (str,)

    def __init__(
        self,
        *,
        min_len: Optional[int] = None,
        max_len: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.min_len = min_len
        self.max_len = max_len

    def _check_value(self, value: str) -> Optional[str]:
        if self.min_len is not None and len(value) < self.min_len:
            return f"shorter than {self.min_len} characters"
        if self.max_len is not None and len(value) > self.max_len:
            return f"longer than {self.max_len} characters"
        return None


@_parameter_type("bool")
class _BoolParameter(_ValidatedParameter):
    TYPES = (bool,)

    def _check_value(self, value: bool) -> Optional[str]:
        return None


@_parameter_type("enum")
class _EnumParameter(_ValidatedParameter):
    """One of a fixed list of values. None is a valid value when listed."""

    TYPES = (str, int)

    def __init__(self, *, values: List[Union[str, int, None]], **kwargs):
        assert (
            isinstance(values, list) and values
        ), "Must specify at least one enum value!"
        super().__init__(**kwargs)
        self.values = values
        if None in values:
            self.optional = True

    def _check_value(self, value: Union[str, int]) -> Optional[str]:
        if value not in self.values:
            return f"{value} is not one of {self.values}"
        return None


@_parameter_type("list")
class _ListParameter(_ValidatedParameter):
    TYPES = (list,)
    ITEM_TYPES = {"str": str, "int": int, "bool": bool}

    def __init__(self, *, item_type: str = "str", **kwargs):
        assert item_type in self.ITEM_TYPES, f"Unknown list item type {item_type}"
        super().__init__(**kwargs)
        self.item_type = self.ITEM_TYPES[item_type]

    def _check_value(self, value: list) -> Optional[str]:
        for item in value:
            if not isinstance(item, self.item_type):
                return f"item {item!r} is not a {self.item_type.__name__}"
        return None


# pylint: enable=too-few-public-methods


## Parsing #####################################################################


def _construct_parameter(param_args: Dict[str, Any]) -> Optional[_ValidatedParameter]:
    """Build the parameter described by a validation file entry. Entries of an
    unknown type are not parameters and give None.
    """
    type_name = param_args.get("type")
    if not isinstance(type_name, str) or type_name not in _PARAMETER_TYPES:
        return None
    param_class = _PARAMETER_TYPES[type_name]
    kwargs = {key: val for key, val in param_args.items() if key != "type"}
    return param_class(**kwargs)


def _parse_validation_config(
    validation_config: dict,
    prefix: Optional[str] = None,
) -> Dict[str, _ValidatedParameter]:
    """Flatten the validation file into parameters keyed by dotted key"""
    params = {}
    for key, val in validation_config.items():
        if not isinstance(val, dict):
            continue
        nested_key = constants.NESTED_DICT_DELIM.join(filter(None, [prefix, key]))
        param = _construct_parameter(dict(val))
        if param is not None:
            log.debug3("Found %s parameter at %s", type(param).__name__, nested_key)
            params[nested_key] = param
        else:
            params.update(_parse_validation_config(val, prefix=nested_key))
    return params
