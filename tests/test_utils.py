"""
Tests for functions in application_operator.utils
"""

# Standard
import datetime

# Third Party
import pytest

# Local
from application_operator import utils

## nested_set / nested_get #####################################################


def test_nested_set_get():
    """Test nested_set and nested_get"""
    d = {}

    # Set a nested value and make sure it can be retrieved
    utils.nested_set(d, "foo.bar", 1)
    assert utils.nested_get(d, "foo.bar") == 1
    assert d == {"foo": {"bar": 1}}

    # Make sure errors are raised when intermediate values are not dicts
    with pytest.raises(TypeError):
        utils.nested_set({"foo": 1}, "foo.bar", 1)
    with pytest.raises(TypeError):
        utils.nested_get({"foo": 1}, "foo.bar")

    # None intermediates are replaced on set
    d = {"foo": None}
    utils.nested_set(d, "foo.bar", 2)
    assert d == {"foo": {"bar": 2}}

    # Make sure the defaults are used for missing keys
    assert utils.nested_get({}, "foo.bar") is None
    assert utils.nested_get({}, "foo.bar", "default") == "default"
    assert utils.nested_get({"foo": {}}, "foo.bar", "default") == "default"
    assert utils.nested_get({"foo": None}, "foo.bar", "default") == "default"


## prune_empty / canonical_json ################################################


def test_prune_empty():
    """Make sure None, empty dicts and empty lists are all dropped"""
    assert utils.prune_empty(
        {"a": None, "b": {}, "c": [], "d": {"e": None}, "f": [None, {}], "g": 0}
    ) == {"g": 0}
    assert utils.prune_empty({}) is None
    assert utils.prune_empty(False) is False


def test_canonical_json_key_order():
    """Make sure key order does not change the canonical form"""
    assert utils.canonical_json({"a": 1, "b": {"c": 2, "d": 3}}) == (
        utils.canonical_json({"b": {"d": 3, "c": 2}, "a": 1})
    )


def test_canonical_json_empty_values():
    """Make sure an unset field and an explicitly empty one look the same"""
    assert utils.canonical_json({"a": 1}) == utils.canonical_json(
        {"a": 1, "b": None, "c": {}, "d": []}
    )
    assert utils.canonical_json(None) == utils.canonical_json({})


def test_canonical_json_list_order_matters():
    """Make sure list order is significant"""
    assert utils.canonical_json([1, 2]) != utils.canonical_json([2, 1])


## parse_time_delta ############################################################


@pytest.mark.parametrize(
    ["time_str", "expected"],
    [
        ("1hr", datetime.timedelta(hours=1)),
        ("5m", datetime.timedelta(minutes=5)),
        ("10s", datetime.timedelta(seconds=10)),
        ("0.5s", datetime.timedelta(seconds=0.5)),
        ("1hr5m10s", datetime.timedelta(hours=1, minutes=5, seconds=10)),
        ("", None),
        ("bad", None),
    ],
)
def test_parse_time_delta(time_str, expected):
    """Make sure time strings are parsed as expected"""
    assert utils.parse_time_delta(time_str) == expected
