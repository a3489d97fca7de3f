import json
import logging
import sys
import unittest
from decimal import Decimal

from defi_flow.logging.correlation import correlation_context, step_context
from defi_flow.logging.json_formatter import StructuredJSONFormatter


def _record(msg: str = "Test message", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test_logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONRedaction(unittest.TestCase):
    def test_redaction(self):
        formatter = StructuredJSONFormatter()
        record = _record(
            api_key="secret_key_value",
            privateKey="camel_private",
            mnemonic="abandon abandon",
            nested={"private_key": "secret_private_key", "public_data": "visible"},
            list_data=[{"token": "secret_token"}, {"other": "visible"}],
        )

        data = json.loads(formatter.format(record))

        self.assertEqual(data["api_key"], "[REDACTED]")
        self.assertEqual(data["privateKey"], "[REDACTED]")
        self.assertEqual(data["mnemonic"], "[REDACTED]")
        self.assertEqual(data["nested"]["private_key"], "[REDACTED]")
        self.assertEqual(data["nested"]["public_data"], "visible")
        self.assertEqual(data["list_data"][0]["token"], "[REDACTED]")
        self.assertEqual(data["list_data"][1]["other"], "visible")

    def test_amounts_stay_exact(self):
        formatter = StructuredJSONFormatter()
        record = _record(balance=Decimal("0.000001"), skipped=frozenset({4, 2}))

        data = json.loads(formatter.format(record))

        self.assertEqual(data["balance"], "0.000001")
        self.assertEqual(data["skipped"], [2, 4])

    def test_correlation_and_step_fields(self):
        formatter = StructuredJSONFormatter(sort_keys=True)

        with correlation_context("run-1", operation="plan"):
            with step_context("Step 2", "logic-3"):
                data = json.loads(formatter.format(_record("Logic check")))

        self.assertEqual(data["correlation_id"], "run-1")
        self.assertEqual(data["operation"], "plan")
        self.assertEqual(data["step"], "Step 2")
        self.assertEqual(data["node_id"], "logic-3")
        self.assertEqual(data["message"], "Logic check")

    def test_reserved_fields_are_not_overwritten_by_extras(self):
        formatter = StructuredJSONFormatter()
        record = _record(component="planner")
        record.level = "custom"

        data = json.loads(formatter.format(record))

        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["component"], "planner")

    def test_exception_details(self):
        formatter = StructuredJSONFormatter()
        try:
            raise ValueError("bad amount")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(formatter.format(record))

        self.assertEqual(data["exception"]["type"], "ValueError")
        self.assertEqual(data["exception"]["message"], "bad amount")


if __name__ == "__main__":
    unittest.main()
