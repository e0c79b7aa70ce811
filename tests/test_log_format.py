"""
Tests for the custom json log formatter
"""

# Standard
import json
import logging

# Local
from application_operator.log_format import OperatorJsonFormatter
from application_operator.managed_object import ManagedObject
from application_operator.test_helpers.helpers import make_application

## Helpers #####################################################################


def make_record(**extra):
    record = logging.LogRecord(
        name="TEST",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    for key, val in extra.items():
        setattr(record, key, val)
    return record


def make_resource():
    app = make_application()
    app["metadata"]["resourceVersion"] = "42"
    return app


## Tests #######################################################################


def test_format_resource_fields():
    """Make sure the identifiers of a resource extra are logged"""
    formatted = json.loads(
        OperatorJsonFormatter().format(
            make_record(
                resource=make_resource(),
                reconciliationId="ABC",
                reconcileNumber=3,
            )
        )
    )
    assert formatted["kind"] == "Application"
    assert formatted["apiVersion"] == "apps.aloys.cn/v1"
    assert formatted["namespace"] == "test"
    assert formatted["resourceName"] == "test-app"
    assert formatted["resourceVersion"] == "42"
    assert formatted["reconciliationId"] == "ABC"
    assert formatted["reconcileNumber"] == 3


def test_format_managed_object():
    """Make sure ManagedObject extras are unwrapped"""
    formatted = json.loads(
        OperatorJsonFormatter().format(
            make_record(resource=ManagedObject(make_resource()))
        )
    )
    assert formatted["kind"] == "Application"
    assert formatted["resourceName"] == "test-app"


def test_format_default_manifest_and_id():
    """Make sure the formatter's own manifest and id are used when the record
    carries none
    """
    formatter = OperatorJsonFormatter(
        manifest=make_resource(), reconciliation_id="XYZ"
    )
    formatted = json.loads(formatter.format(make_record()))
    assert formatted["resourceName"] == "test-app"
    assert formatted["reconciliationId"] == "XYZ"


def test_format_without_resource():
    """Make sure records without a resource still format"""
    formatted = json.loads(OperatorJsonFormatter().format(make_record()))
    assert "resourceName" not in formatted
