"""
Tests for the library config module

NOTE: Python makes it hard to change env vars in a way that will effect import
    time, so we're relying on the fact that aconfig is well tested and not
    actually validating the env-var override behavior!
"""

# Third Party
import pytest

# First Party
import aconfig

# Local
from application_operator import config


def test_config_keys():
    """Make sure that the expected keys are present with the expected types"""
    assert isinstance(config.max_concurrent_reconciles, int)
    assert isinstance(config.requeue_after_seconds, (int, float))
    assert isinstance(config.dry_run, bool)
    assert isinstance(config.watch.retry_count, int)
    assert isinstance(config.admission.default_replicas, int)


def test_config_missing_key():
    """Make sure that an unknown attribute is an AttributeError"""
    with pytest.raises(AttributeError):
        config.not_a_config_key  # pylint: disable=pointless-statement


def test_config_all_lists_keys():
    """Make sure the module only exposes the library config keys"""
    assert "watch" in config.__all__
    assert "admission" in config.__all__


#####################
## validate_config ##
#####################


def test_validate_config_library_config():
    """The shipped config must satisfy its own validation"""
    config.validate_config()


def _plain_config(cfg):
    return {
        key: _plain_config(val) if isinstance(val, dict) else val
        for key, val in cfg.items()
    }


def test_validate_config_invalid():
    """An invalid value fails validation with the offending key"""
    bad_config = _plain_config(config.library_config)
    bad_config["max_concurrent_reconciles"] = 0
    with pytest.raises(AssertionError, match="max_concurrent_reconciles"):
        config.validate_config(bad_config)


def test_validate_config_nested_invalid():
    """An invalid nested value is reported with its dotted key"""
    bad_config = _plain_config(config.library_config)
    bad_config["admission"]["port"] = 70000
    with pytest.raises(AssertionError, match="admission.port"):
        config.validate_config(bad_config)


########################
## get_invalid_params ##
########################


def test_get_invalid_params_all_valid_params():
    """Test that get_invalid_params returns no invalid params when all are set
    to valid values
    """
    assert not config.validation.get_invalid_params(
        config=aconfig.Config({"key": 1}),
        validation_config=aconfig.Config({"key": {"type": "int", "min": 0, "max": 1}}),
    )


def test_get_invalid_params_all_invalid_params():
    """Test that get_invalid_params returns an invalid param when all are set
    to invalid values
    """
    assert config.validation.get_invalid_params(
        config=aconfig.Config({"key": 3}),
        validation_config=aconfig.Config(
            {"key": {"type": "int", "min": 0, "max": 1}},
        ),
    ) == ["key"]


def test_get_invalid_params_some_invalid_params():
    """Test that get_invalid_params returns only the invalid parameters when
    some are invalid and some are valid
    """
    assert config.validation.get_invalid_params(
        config=aconfig.Config({"key": 3, "str": "foo"}),
        validation_config=aconfig.Config(
            {
                "key": {"type": "int", "min": 0, "max": 1},
                "str": {"type": "str", "min_len": 1},
            },
        ),
    ) == ["key"]


def test_get_invalid_params_nested():
    """Test that nested parameters are validated with dotted keys"""
    assert config.validation.get_invalid_params(
        config=aconfig.Config({"outer": {"inner": "x", "other": 1}}),
        validation_config=aconfig.Config(
            {
                "outer": {
                    "inner": {"type": "str", "min_len": 2},
                    "other": {"type": "int"},
                }
            },
        ),
    ) == ["outer.inner"]


def test_get_invalid_params_missing_key():
    """A missing required key is invalid while a missing optional key is not"""
    assert config.validation.get_invalid_params(
        config=aconfig.Config({}),
        validation_config=aconfig.Config(
            {
                "required": {"type": "int"},
                "not_required": {"type": "int", "optional": True},
            },
        ),
    ) == ["required"]


#####################
## parameter types ##
#####################

V = config.validation


@pytest.mark.parametrize(
    ["param", "value"],
    [
        (V._NumberParameter(), 1),
        (V._NumberParameter(), 1.2),
        (V._NumberParameter(min=0, max=1), 0.5),
        (V._IntParameter(min=1, max=1), 1),
        (V._FloatParameter(min=0.0), 1.0),
        (V._StrParameter(min_len=1, max_len=4), "test"),
        (V._BoolParameter(), False),
        (V._EnumParameter(values=[1, "two"]), "two"),
        (V._EnumParameter(values=[1, "two", None]), None),
        (V._ListParameter(), []),
        (V._ListParameter(item_type="int"), [1, 2, 3]),
        (V._IntParameter(optional=True), None),
    ],
)
def test_parameter_valid(param, value):
    """Valid values have no problem to report"""
    assert param.check(value) is None
    assert param.validate(value)


@pytest.mark.parametrize(
    ["param", "value", "reason"],
    [
        (V._NumberParameter(), "1", "unexpected type str"),
        (V._NumberParameter(), True, "unexpected bool"),
        (V._NumberParameter(min=0), -1, "below the minimum"),
        (V._NumberParameter(max=1), 1.5, "above the maximum"),
        (V._IntParameter(), 1.2, "unexpected type float"),
        (V._IntParameter(), False, "unexpected bool"),
        (V._FloatParameter(), 1, "unexpected type int"),
        (V._StrParameter(), b"test", "unexpected type bytes"),
        (V._StrParameter(min_len=1), "", "shorter than 1"),
        (V._StrParameter(max_len=3), "test", "longer than 3"),
        (V._BoolParameter(), 1, "unexpected type int"),
        (V._EnumParameter(values=[1, "two"]), 2, "not one of"),
        (V._ListParameter(), "abc", "unexpected type str"),
        (V._ListParameter(item_type="str"), ["one", 2], "item 2 is not a str"),
        (V._IntParameter(), None, "required value is missing"),
        (V._EnumParameter(values=[1]), None, "required value is missing"),
    ],
)
def test_parameter_invalid(param, value, reason):
    """Invalid values report why they were rejected"""
    assert reason in param.check(value)
    assert not param.validate(value)


@pytest.mark.parametrize(
    "kwargs",
    [{"values": []}, {"values": "test"}],
)
def test_enum_parameter_needs_values(kwargs):
    """An enum without a list of values cannot be built"""
    with pytest.raises(AssertionError):
        V._EnumParameter(**kwargs)


def test_list_parameter_unknown_item_type():
    """A list of an unknown item type cannot be built"""
    with pytest.raises(AssertionError):
        V._ListParameter(item_type="dict")


def test_construct_parameter():
    """Entries with a registered type become parameters, others are sections"""
    param = V._construct_parameter({"type": "int", "min": 1})
    assert isinstance(param, V._IntParameter)
    assert V._construct_parameter({"type": "unknown"}) is None
    assert V._construct_parameter({"type": {"type": "int"}}) is None
