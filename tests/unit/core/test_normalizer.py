#!/usr/bin/env python3
"""
Tests for the Field Normalizer.

Usage:
    python -m pytest tests/unit/core/test_normalizer.py -v
"""

import unittest
from datetime import date

from core.config_loader import IntakeConfig
from core.errors import ValidationError
from core.intake import EMPTY_VALUE, normalize_event, normalize_payload
from core.intake.normalizer import (
    MappingNode,
    ScalarNode,
    SequenceNode,
    extract_scalar,
    find_first,
    to_node,
)


class TestExtractScalar(unittest.TestCase):
    """One representative scalar per raw field shape."""

    def test_value_shape(self):
        self.assertEqual(extract_scalar(to_node({"value": "Acme Water"})), "Acme Water")

    def test_label_shape_uses_nested_text(self):
        raw = {"label": {"index": 1, "text": "Yes"}}
        self.assertEqual(extract_scalar(to_node(raw)), "Yes")

    def test_date_shape_becomes_date(self):
        raw = {"date": "2024-05-01", "time": None}
        self.assertEqual(extract_scalar(to_node(raw)), date(2024, 5, 1))

    def test_unparseable_date_kept_as_text(self):
        self.assertEqual(extract_scalar(to_node({"date": "soon"})), "soon")

    def test_country_shape(self):
        raw = {"countryCode": "KE", "countryName": "Kenya"}
        self.assertEqual(extract_scalar(to_node(raw)), "Kenya")

    def test_checkbox_shape(self):
        self.assertIs(extract_scalar(to_node({"checked": "true"})), True)
        self.assertIs(extract_scalar(to_node({"checked": "false"})), False)
        self.assertIs(extract_scalar(to_node({"checked": True})), True)

    def test_number_under_value(self):
        self.assertEqual(extract_scalar(to_node({"value": 42})), 42)

    def test_bare_scalar(self):
        self.assertEqual(extract_scalar(to_node("plain")), "plain")
        self.assertEqual(extract_scalar(to_node(None)), EMPTY_VALUE)

    def test_null_value_falls_through_to_text(self):
        raw = {"value": None, "text": "fallback"}
        self.assertEqual(extract_scalar(to_node(raw)), "fallback")

    def test_value_preferred_over_text(self):
        raw = {"text": "display", "value": "stored"}
        self.assertEqual(extract_scalar(to_node(raw)), "stored")

    def test_nested_shape_under_value(self):
        raw = {"value": {"text": "inner"}}
        self.assertEqual(extract_scalar(to_node(raw)), "inner")

    def test_unknown_shape_is_empty(self):
        self.assertEqual(extract_scalar(to_node({"files": []})), EMPTY_VALUE)
        self.assertEqual(extract_scalar(to_node({})), EMPTY_VALUE)


class TestFieldNodes(unittest.TestCase):

    def test_to_node_builds_tree(self):
        node = to_node({"a": [1, {"b": None}]})
        self.assertIsInstance(node, MappingNode)
        name, child = node.entries[0]
        self.assertEqual(name, "a")
        self.assertIsInstance(child, SequenceNode)
        self.assertEqual(child.items[0], ScalarNode(1))

    def test_find_first_prefers_shallow_match(self):
        node = to_node({"outer": {"text": "deep"}, "text": "shallow"})
        self.assertEqual(find_first(node, "text"), ScalarNode("shallow"))

    def test_find_first_searches_sequences(self):
        node = to_node({"items": [{"other": 1}, {"text": "second"}]})
        self.assertEqual(find_first(node, "text"), ScalarNode("second"))

    def test_find_first_missing(self):
        self.assertIsNone(find_first(to_node({"a": 1}), "text"))


class TestNormalizePayload(unittest.TestCase):

    def test_field_map_renames_and_passes_through(self):
        result = normalize_payload(
            {"text0": {"value": "Acme"}, "extra": {"text": "kept"}},
            {"text0": "org-name"}
        )
        self.assertEqual(dict(result), {"org-name": "Acme", "extra": "kept"})

    def test_empty_fields_do_not_fail(self):
        result = normalize_payload({"files": {"files": []}, "ok": {"value": "x"}})
        self.assertEqual(result["files"], EMPTY_VALUE)
        self.assertEqual(result["ok"], "x")

    def test_result_is_read_only(self):
        result = normalize_payload({"a": {"value": "x"}})
        with self.assertRaises(TypeError):
            result["a"] = "y"

    def test_deep_nesting_treated_as_empty(self):
        raw = {}
        for _ in range(5000):
            raw = {"wrap": raw}
        result = normalize_payload({"deep": raw})
        self.assertEqual(result["deep"], EMPTY_VALUE)


class TestNormalizeEvent(unittest.TestCase):

    def setUp(self):
        self.config = IntakeConfig(field_map={"text0": "org-name"})

    def _body(self, **event):
        base = {"type": "create_pulse", "pulseName": "Acme Water",
                "columnValues": {"text0": {"value": "Acme Co"}}}
        base.update(event)
        return {"event": base}

    def test_valid_event(self):
        event = normalize_event(self._body(), self.config)
        self.assertEqual(event.event_type, "create_pulse")
        self.assertEqual(event.submission["org-name"], "Acme Co")
        self.assertEqual(event.submission["project-name"], "Acme Water")
        self.assertIsNotNone(event.received_at.tzinfo)

    def test_project_column_wins_over_pulse_name(self):
        body = self._body(columnValues={"project-name": {"value": "From column"}})
        event = normalize_event(body, self.config)
        self.assertEqual(event.submission["project-name"], "From column")

    def test_rejects_non_object_body(self):
        for body in (None, [], "text", 3):
            with self.assertRaises(ValidationError):
                normalize_event(body, self.config)

    def test_rejects_missing_event(self):
        with self.assertRaises(ValidationError):
            normalize_event({"something": "else"}, self.config)

    def test_rejects_unhandled_event_type(self):
        with self.assertRaises(ValidationError):
            normalize_event(self._body(type="delete_pulse"), self.config)

    def test_rejects_missing_column_values(self):
        with self.assertRaises(ValidationError):
            normalize_event(self._body(columnValues="nope"), self.config)

    def test_rejects_event_without_fields(self):
        with self.assertRaises(ValidationError):
            normalize_event(self._body(columnValues={}, pulseName=""), self.config)


if __name__ == '__main__':
    unittest.main()
